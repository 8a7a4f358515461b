"""
In-process checkpoint saver. Not durable.
"""

from deepagent.checkpoint.base import BaseCheckpointSaver
from deepagent.domain import Checkpoint, utc_now_iso


class MemorySaver(BaseCheckpointSaver):
    def __init__(self, namespace: str | None = None, storage: dict[str, Checkpoint] | None = None):
        """
        Args:
            namespace: Prefix isolating this saver's thread ids
            storage: Dict shared between savers; a private one by default
        """
        super().__init__(namespace)
        self._checkpoints: dict[str, Checkpoint] = storage if storage is not None else {}

    def _key(self, thread_id: str) -> str:
        return f"{self.namespace or 'default'}:{thread_id}"

    async def save(self, checkpoint: Checkpoint) -> None:
        stored = checkpoint.model_copy(deep=True, update={"updated_at": utc_now_iso()})
        self._checkpoints[self._key(checkpoint.thread_id)] = stored

    async def load(self, thread_id: str) -> Checkpoint | None:
        checkpoint = self._checkpoints.get(self._key(thread_id))
        return checkpoint.model_copy(deep=True) if checkpoint else None

    async def list(self) -> list[str]:
        prefix = f"{self.namespace or 'default'}:"
        return [key[len(prefix) :] for key in self._checkpoints if key.startswith(prefix)]

    async def delete(self, thread_id: str) -> None:
        self._checkpoints.pop(self._key(thread_id), None)

    async def exists(self, thread_id: str) -> bool:
        return self._key(thread_id) in self._checkpoints

    def clear(self) -> None:
        """Drop every checkpoint in this namespace."""
        prefix = f"{self.namespace or 'default'}:"
        for key in [k for k in self._checkpoints if k.startswith(prefix)]:
            del self._checkpoints[key]

    def size(self) -> int:
        prefix = f"{self.namespace or 'default'}:"
        return sum(1 for key in self._checkpoints if key.startswith(prefix))


__all__ = ["MemorySaver"]
