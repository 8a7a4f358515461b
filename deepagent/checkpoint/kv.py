"""
Checkpoint saver over any KeyValueStore (in-memory, Redis, SQLite...).
"""

from pydantic import ValidationError

from deepagent.backends.store import KeyValueStore
from deepagent.checkpoint.base import BaseCheckpointSaver
from deepagent.domain import Checkpoint, utc_now_iso
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)


class KeyValueStoreSaver(BaseCheckpointSaver):
    def __init__(self, store: KeyValueStore, namespace: str | None = None):
        super().__init__(namespace)
        self.store = store
        self._store_namespace = [namespace or "default", "checkpoints"]

    async def save(self, checkpoint: Checkpoint) -> None:
        stored = checkpoint.model_copy(update={"updated_at": utc_now_iso()})
        await self.store.put(self._store_namespace, checkpoint.thread_id, stored.model_dump(mode="json"))

    async def load(self, thread_id: str) -> Checkpoint | None:
        value = await self.store.get(self._store_namespace, thread_id)
        if value is None:
            return None
        try:
            return Checkpoint.model_validate(value)
        except ValidationError as e:
            logger.warning("checkpoint_kv_unreadable", thread_id=thread_id, error=str(e))
            return None

    async def list(self) -> list[str]:
        return [item.key for item in await self.store.list(self._store_namespace)]

    async def delete(self, thread_id: str) -> None:
        await self.store.delete(self._store_namespace, thread_id)


__all__ = ["KeyValueStoreSaver"]
