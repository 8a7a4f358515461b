"""
Generic key-value store protocol used by PersistentBackend and
KeyValueStoreSaver, plus the in-process implementation.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class StoreItem(BaseModel):
    key: str
    value: dict[str, Any] = Field(default_factory=dict)


class KeyValueStore(ABC):
    """
    Namespaced JSON-object store.

    A namespace is a list of strings, e.g. ``["default", "filesystem"]``.
    ``list`` returns only the items stored directly in the namespace, never
    those of nested namespaces. A ``put`` must be atomic per key.
    """

    @abstractmethod
    async def get(self, namespace: list[str], key: str) -> dict[str, Any] | None:
        """Return the stored value or None."""

    @abstractmethod
    async def put(self, namespace: list[str], key: str, value: dict[str, Any]) -> None:
        """Create or replace a value."""

    @abstractmethod
    async def delete(self, namespace: list[str], key: str) -> None:
        """Remove a value; missing keys are ignored."""

    @abstractmethod
    async def list(self, namespace: list[str]) -> list[StoreItem]:
        """All items of a namespace, sorted by key."""

    async def close(self) -> None:
        """Release connections."""
        return None


class InMemoryStore(KeyValueStore):
    """Process-local store; contents vanish with the process."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, ...], dict[str, dict[str, Any]]] = {}

    async def get(self, namespace: list[str], key: str) -> dict[str, Any] | None:
        value = self._data.get(tuple(namespace), {}).get(key)
        return copy.deepcopy(value) if value is not None else None

    async def put(self, namespace: list[str], key: str, value: dict[str, Any]) -> None:
        self._data.setdefault(tuple(namespace), {})[key] = copy.deepcopy(value)

    async def delete(self, namespace: list[str], key: str) -> None:
        self._data.get(tuple(namespace), {}).pop(key, None)

    async def list(self, namespace: list[str]) -> list[StoreItem]:
        bucket = self._data.get(tuple(namespace), {})
        return [StoreItem(key=k, value=copy.deepcopy(bucket[k])) for k in sorted(bucket)]

    def clear(self) -> None:
        self._data.clear()

    def size(self) -> int:
        return sum(len(bucket) for bucket in self._data.values())


__all__ = ["InMemoryStore", "KeyValueStore", "StoreItem"]
