import logging
import sqlite3
from typing import Optional

from timetally.database.helpers import DatabaseError

logger = logging.getLogger(__name__)


class KeyValueMixin:
    """String key-value records on top of the ``kv_store`` table."""

    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for ``key``, or None if absent."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT value FROM kv_store WHERE key=?",
                    (key,)
                ) as cursor:
                    row = await cursor.fetchone()
                    return row["value"] if row else None
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error reading {key}: {e}")
            raise DatabaseError(f"Failed to read {key}: {e}") from e

    async def set_item(self, key: str, value: str) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) "
                    "VALUES (?, ?, CURRENT_TIMESTAMP)",
                    (key, value)
                )
                await conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error writing {key}: {e}")
            raise DatabaseError(f"Failed to write {key}: {e}") from e

    async def remove_item(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
                await conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Error removing {key}: {e}")
            raise DatabaseError(f"Failed to remove {key}: {e}") from e
