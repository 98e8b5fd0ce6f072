import aiosqlite
import asyncio
import sqlite3
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, Any, AsyncIterator

import database as _pkg
from database.helpers import DatabaseError, decode_json, encode_json

logger = logging.getLogger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS storage (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT
    )
"""


class DatabaseCore:
    """Key-value storage in a local SQLite file.

    The connection is opened on first use, kept until close(), and shared by
    every caller under an asyncio lock. Values go in and out as JSON; the
    key space is the fixed set of constants in config.
    """

    def __init__(self) -> None:
        self._conn: Optional[aiosqlite.Connection] = None
        self._conn_lock: Optional[asyncio.Lock] = None
        self._init_lock: Optional[asyncio.Lock] = None
        self._initialized = False

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def _open(self) -> aiosqlite.Connection:
        path = _pkg.DB_PATH
        try:
            conn = await aiosqlite.connect(path)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA busy_timeout=5000")
        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Cannot open database at {path}: {e}") from e
        logger.debug(f"Opened local storage at {path}")
        return conn

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Hold the lock and yield the shared connection, opening it if needed."""
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        async with self._conn_lock:
            if self._conn is None:
                self._conn = await self._open()
            yield self._conn

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        self._initialized = False
        if conn is None:
            return
        try:
            await conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Error closing database connection: {e}")

    async def init_db(self) -> None:
        """Create the storage table if needed. Safe to call repeatedly."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        async with self._init_lock:
            if self._initialized:
                return
            try:
                async with self._get_connection() as conn:
                    await conn.execute(_SCHEMA)
                    await conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Error initializing database schema: {e}")
                raise DatabaseError(f"Failed to initialize schema: {e}") from e
            self._initialized = True

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Read a stored value.

        Missing keys, corrupt JSON and storage errors all yield default.
        """
        try:
            await self.init_db()
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT value FROM storage WHERE key=?", (key,)
                ) as cursor:
                    row = await cursor.fetchone()
        except (sqlite3.Error, DatabaseError) as e:
            logger.warning(f"Error reading {key}: {e}")
            return default
        return decode_json(row["value"] if row else None, key, default)

    async def set_value(self, key: str, value: Any) -> None:
        payload = encode_json(value)
        try:
            await self.init_db()
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO storage (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, payload, datetime.now().isoformat())
                )
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error writing {key}: {e}")
            raise DatabaseError(f"Failed to save {key}: {e}") from e

    async def delete_value(self, key: str) -> None:
        try:
            await self.init_db()
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM storage WHERE key=?", (key,))
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error deleting {key}: {e}")
            raise DatabaseError(f"Failed to delete {key}: {e}") from e
