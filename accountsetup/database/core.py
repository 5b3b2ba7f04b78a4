import asyncio
import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

import aiosqlite

from config import DB_PATH

logger = logging.getLogger(__name__)


class LocalStoreError(Exception):
    """Custom exception for local store operations."""
    pass


class LocalStore:
    """Async SQLite key-value table with a persistent connection.

    Uses a single persistent connection with an async lock to serialize
    access (SQLite limitation). The connection is lazily opened on first
    use and reused until explicitly closed. Values are stored as JSON.
    """

    def __init__(self, db_path: Union[str, Path, None] = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self._conn: Optional[aiosqlite.Connection] = None
        self._conn_lock: Optional[asyncio.Lock] = None
        self._initialized = False

    async def _ensure_connection(self) -> aiosqlite.Connection:
        """Ensure we have an open connection with the schema in place."""
        if self._conn is None:
            try:
                self._conn = await aiosqlite.connect(self.db_path)
                self._conn.row_factory = aiosqlite.Row
                await self._conn.execute("PRAGMA busy_timeout=5000")
            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise LocalStoreError(f"Cannot open database at {self.db_path}: {e}") from e
        if not self._initialized:
            await self._init_schema(self._conn)
            self._initialized = True
        return self._conn

    def _get_lock(self) -> asyncio.Lock:
        if self._conn_lock is None:
            self._conn_lock = asyncio.Lock()
        return self._conn_lock

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Get a database connection with serialized access."""
        async with self._get_lock():
            conn = await self._ensure_connection()
            yield conn

    async def _init_schema(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.execute(
                "CREATE TABLE IF NOT EXISTS kv_store (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error initializing database schema: {e}")
            raise LocalStoreError(f"Failed to initialize schema: {e}") from e

    async def close(self) -> None:
        """Close the persistent connection."""
        if self._conn is not None:
            try:
                await self._conn.close()
            except (sqlite3.Error, OSError) as e:
                logger.warning(f"Error closing database connection: {e}")
            finally:
                self._conn = None
                self._initialized = False

    async def get_item(self, key: str, default: Any = None) -> Any:
        """Get a stored value. Returns default if not found."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT value FROM kv_store WHERE key=?",
                    (key,)
                ) as cursor:
                    row = await cursor.fetchone()
                    return json.loads(row["value"]) if row else default
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Error getting item {key}: {e}")
            raise LocalStoreError(f"Failed to read item: {e}") from e

    async def set_item(self, key: str, value: Any) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key,value) VALUES (?,?)",
                    (key, json.dumps(value))
                )
                await conn.commit()
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error setting item {key}: {e}")
            raise LocalStoreError(f"Failed to save item: {e}") from e

    async def remove_item(self, key: str) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error removing item {key}: {e}")
            raise LocalStoreError(f"Failed to remove item: {e}") from e
