import asyncio
import json
import logging
from typing import List, Optional

from timetally.config import STORAGE_KEY_ACTIVE_ENTRY, STORAGE_KEY_ENTRIES
from timetally.database import DatabaseError
from timetally.events import AppEvent, EventBus
from timetally.models.entities import TimeEntry, TrackerState

logger = logging.getLogger(__name__)


class TimeEntryService:
    """Service for time entry persistence.

    Encodes entries as JSON records in a key-value store: the running
    entry and the completed log live under separate keys. Writes are
    serialized with an async lock so overlapping saves cannot interleave.
    All data operations are async and raise DatabaseError on failure.
    """

    def __init__(self, store) -> None:
        self._store = store
        self._write_lock = asyncio.Lock()

    async def load_entries(self) -> List[TimeEntry]:
        """Load the completed-entry log, most recent first."""
        raw = await self._store.get_item(STORAGE_KEY_ENTRIES)
        if not raw:
            return []
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise TypeError(f"expected a list, got {type(records).__name__}")
            return [TimeEntry.from_dict(r) for r in records]
        except (ValueError, KeyError, TypeError) as e:
            raise DatabaseError(f"Corrupt time entry log: {e}") from e

    async def save_entries(self, entries: List[TimeEntry]) -> None:
        payload = json.dumps([e.to_dict() for e in entries])
        async with self._write_lock:
            await self._store.set_item(STORAGE_KEY_ENTRIES, payload)

    async def clear_entries(self) -> None:
        async with self._write_lock:
            await self._store.remove_item(STORAGE_KEY_ENTRIES)

    async def load_active_entry(self) -> Optional[TimeEntry]:
        """Load the running entry saved for crash recovery, if any."""
        raw = await self._store.get_item(STORAGE_KEY_ACTIVE_ENTRY)
        if not raw:
            return None
        try:
            return TimeEntry.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            raise DatabaseError(f"Corrupt active entry record: {e}") from e

    async def save_active_entry(self, entry: Optional[TimeEntry]) -> None:
        """Persist the running entry, or remove the record when None."""
        async with self._write_lock:
            if entry is None:
                await self._store.remove_item(STORAGE_KEY_ACTIVE_ENTRY)
            else:
                await self._store.set_item(STORAGE_KEY_ACTIVE_ENTRY, json.dumps(entry.to_dict()))
        logger.debug(f"Active entry record {'cleared' if entry is None else 'saved'}")


def record_persistence_error(
    state: TrackerState,
    event_bus: EventBus,
    message: str,
    error: Exception,
) -> None:
    """Log a storage failure and surface it on the tracker state.

    In-memory state is left as it is so the current session keeps working.
    """
    logger.error(f"{message}: {error}")
    state.error = message
    event_bus.emit(AppEvent.PERSISTENCE_ERROR, {"message": message, "error": error})
