from typing import Dict, Optional


class MemoryStore:
    """In-process key-value store with the same async contract as ``Database``.

    Values are kept as the encoded strings, so a round trip through this
    store exercises the same JSON codec as the SQLite one.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

