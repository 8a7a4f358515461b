"""
Redis key-value store
"""

import json
from typing import Any

import redis.asyncio as redis

from deepagent.backends.store import KeyValueStore, StoreItem
from deepagent.config import settings
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)


class RedisStore(KeyValueStore):
    """
    Redis-backed store shared across processes.

    Each namespace is one Redis hash (``<prefix>:<ns1>:<ns2>``); keys are
    hash fields holding JSON. HSET is atomic per field.
    """

    def __init__(self, redis_url: str | None = None, prefix: str = "deepagent", client=None, **kwargs):
        self.redis_url = redis_url or settings.redis_url
        self.prefix = prefix
        self.client = client
        self.kwargs = kwargs

    async def _get_client(self):
        """Lazy initialization of Redis client."""
        if self.client is None:
            self.client = redis.from_url(self.redis_url, decode_responses=True, **self.kwargs)
        return self.client

    def _hash_key(self, namespace: list[str]) -> str:
        return ":".join([self.prefix, *namespace])

    async def get(self, namespace: list[str], key: str) -> dict[str, Any] | None:
        client = await self._get_client()
        raw = await client.hget(self._hash_key(namespace), key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("redis_store_corrupt_value", namespace=namespace, key=key)
            return None

    async def put(self, namespace: list[str], key: str, value: dict[str, Any]) -> None:
        client = await self._get_client()
        await client.hset(self._hash_key(namespace), key, json.dumps(value, ensure_ascii=False))

    async def delete(self, namespace: list[str], key: str) -> None:
        client = await self._get_client()
        await client.hdel(self._hash_key(namespace), key)

    async def list(self, namespace: list[str]) -> list[StoreItem]:
        client = await self._get_client()
        raw_items = await client.hgetall(self._hash_key(namespace))
        items = []
        for key in sorted(raw_items):
            try:
                items.append(StoreItem(key=key, value=json.loads(raw_items[key])))
            except json.JSONDecodeError:
                logger.warning("redis_store_corrupt_value", namespace=namespace, key=key)
        return items

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None


__all__ = ["RedisStore"]
