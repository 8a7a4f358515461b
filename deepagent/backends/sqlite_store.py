"""SQLite implementation of KeyValueStore."""

import json
from typing import Any

import aiosqlite

from deepagent.backends.store import KeyValueStore, StoreItem
from deepagent.config import settings
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

NAMESPACE_SEPARATOR = "\x1f"


class SQLiteStore(KeyValueStore):
    """Durable single-file store; one row per (namespace, key)."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path or settings.sqlite_path
        self._connection: aiosqlite.Connection | None = None
        self._initialized = False

    async def connect(self) -> None:
        """Initialize database connection and create tables."""
        if self._initialized:
            return

        self._connection = await aiosqlite.connect(self.db_path)
        await self._create_tables()
        self._initialized = True

        logger.info("sqlite_store_connected", db_path=self.db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._initialized = False

    async def _create_tables(self) -> None:
        if not self._connection:
            raise RuntimeError("Database connection not established")

        await self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_items (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            )
        """
        )
        await self._connection.commit()

    async def _ensure_connection(self) -> aiosqlite.Connection:
        if not self._initialized:
            await self.connect()
        return self._connection

    @staticmethod
    def _ns(namespace: list[str]) -> str:
        return NAMESPACE_SEPARATOR.join(namespace)

    async def get(self, namespace: list[str], key: str) -> dict[str, Any] | None:
        conn = await self._ensure_connection()
        async with conn.execute(
            "SELECT value FROM kv_items WHERE namespace = ? AND key = ?",
            (self._ns(namespace), key),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("sqlite_store_corrupt_value", namespace=namespace, key=key)
            return None

    async def put(self, namespace: list[str], key: str, value: dict[str, Any]) -> None:
        conn = await self._ensure_connection()
        await conn.execute(
            "INSERT OR REPLACE INTO kv_items (namespace, key, value) VALUES (?, ?, ?)",
            (self._ns(namespace), key, json.dumps(value, ensure_ascii=False)),
        )
        await conn.commit()

    async def delete(self, namespace: list[str], key: str) -> None:
        conn = await self._ensure_connection()
        await conn.execute(
            "DELETE FROM kv_items WHERE namespace = ? AND key = ?",
            (self._ns(namespace), key),
        )
        await conn.commit()

    async def list(self, namespace: list[str]) -> list[StoreItem]:
        conn = await self._ensure_connection()
        items = []
        async with conn.execute(
            "SELECT key, value FROM kv_items WHERE namespace = ? ORDER BY key",
            (self._ns(namespace),),
        ) as cursor:
            async for key, raw in cursor:
                try:
                    items.append(StoreItem(key=key, value=json.loads(raw)))
                except json.JSONDecodeError:
                    logger.warning("sqlite_store_corrupt_value", namespace=namespace, key=key)
        return items


__all__ = ["SQLiteStore"]
