import aiosqlite
import asyncio
import sqlite3
import logging
import threading
from contextlib import asynccontextmanager
from typing import Optional, AsyncIterator

import timetally.database as _pkg
from timetally.database.helpers import DatabaseError

logger = logging.getLogger(__name__)


class DatabaseCore:
    """Async SQLite database with persistent connection and async lock.

    Uses a single persistent connection with an async lock to serialize
    access (SQLite limitation). The connection is lazily initialized on
    first use and reused until explicitly closed.
    """
    _instance: Optional["DatabaseCore"] = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "DatabaseCore":
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
                    cls._instance._init_lock: Optional[asyncio.Lock] = None
                    cls._instance._conn: Optional[aiosqlite.Connection] = None
                    cls._instance._conn_lock: Optional[asyncio.Lock] = None
        return cls._instance

    async def _ensure_connection(self) -> aiosqlite.Connection:
        """Ensure we have an open connection, creating one if needed."""
        if self._conn is None:
            try:
                self._conn = await aiosqlite.connect(_pkg.DB_PATH)
                self._conn.row_factory = aiosqlite.Row
                await self._conn.execute("PRAGMA journal_mode=WAL")
                await self._conn.execute("PRAGMA busy_timeout=5000")
            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise DatabaseError(f"Cannot open database at {_pkg.DB_PATH}: {e}") from e
        return self._conn

    async def _get_lock(self) -> asyncio.Lock:
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        return self._conn_lock

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get a database connection with serialized access.

        Creates the schema on first use so callers never see a missing table.
        """
        await self.init_db()
        lock = await self._get_lock()
        async with lock:
            conn = await self._ensure_connection()
            yield conn

    async def close(self) -> None:
        """Close the persistent connection.

        The schema flag is reset as well, since the next connection may
        point at a different file.
        """
        if self._conn is not None:
            try:
                await self._conn.close()
            except (sqlite3.Error, OSError) as e:
                logger.warning(f"Error closing database connection: {e}")
            finally:
                self._conn = None
        self._initialized = False
        self._conn_lock = None
        self._init_lock = None

    async def _get_init_lock(self) -> asyncio.Lock:
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    async def init_db(self) -> None:
        """Initialize the database schema if needed."""
        if self._initialized:
            return
        lock = await self._get_init_lock()
        async with lock:
            if self._initialized:
                return
            conn_lock = await self._get_lock()
            async with conn_lock:
                conn = await self._ensure_connection()
                await self._init_schema(conn)
                await conn.commit()
            self._initialized = True

    async def _init_schema(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.executescript("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );
            """)
        except sqlite3.Error as e:
            logger.error(f"Error initializing database schema: {e}")
            raise DatabaseError(f"Failed to initialize schema: {e}") from e

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance.

        Used by tests to get a fresh Database between cases; not called in
        production code.
        """
        with cls._instance_lock:
            if cls._instance is not None:
                cls._instance._initialized = False
                cls._instance._conn = None
                cls._instance._conn_lock = None
                cls._instance._init_lock = None
                cls._instance = None
