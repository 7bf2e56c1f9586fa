"""Database package - async SQLite key-value store with mixin-based composition.

Public API: ``from timetally.database import db, DatabaseError, MemoryStore``.
Every store exposes the same async key-value contract (``get_item``,
``set_item``, ``remove_item``) so services can be handed either one.
"""
from pathlib import Path

from timetally.config import DB_PATH as _DEFAULT_DB_PATH

DB_PATH: Path = Path(_DEFAULT_DB_PATH)

from timetally.database.helpers import DatabaseError  # noqa: E402
from timetally.database.core import DatabaseCore  # noqa: E402
from timetally.database.kv_store import KeyValueMixin  # noqa: E402
from timetally.database.memory import MemoryStore  # noqa: E402


class Database(DatabaseCore, KeyValueMixin):
    """Composed database class combining all mixins."""
    pass


def configure_db_path(path: Path) -> None:
    """Set a custom database path before any connection is opened.

    Raises:
        RuntimeError: If the database connection is already open.
    """
    global DB_PATH
    if Database._instance is not None and Database._instance._conn is not None:
        raise RuntimeError(
            "Cannot change DB_PATH after a database connection has been opened. "
            "Call configure_db_path() before any database operations."
        )
    DB_PATH = Path(path)


db = Database()

__all__ = [
    "DB_PATH",
    "Database",
    "DatabaseError",
    "MemoryStore",
    "configure_db_path",
    "db",
]
