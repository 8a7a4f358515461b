"""
Checkpoint store protocol.
"""

from abc import ABC, abstractmethod

from deepagent.domain import Checkpoint


class BaseCheckpointSaver(ABC):
    """
    Save/load point-in-time snapshots keyed by thread id.

    Responsibilities:
    1. Overwrite-by-thread_id saves (one current checkpoint per thread)
    2. Namespace isolation so several applications can share one store
    3. Treat unreadable data as "not found"
    """

    def __init__(self, namespace: str | None = None):
        self.namespace = namespace

    @abstractmethod
    async def save(self, checkpoint: Checkpoint) -> None:
        """Persist a checkpoint, replacing any previous one for its thread."""

    @abstractmethod
    async def load(self, thread_id: str) -> Checkpoint | None:
        """Return the current checkpoint for a thread, or None."""

    @abstractmethod
    async def list(self) -> list[str]:
        """Thread ids with a saved checkpoint in this namespace."""

    @abstractmethod
    async def delete(self, thread_id: str) -> None:
        """Remove a thread's checkpoint; missing threads are ignored."""

    async def exists(self, thread_id: str) -> bool:
        return await self.load(thread_id) is not None


__all__ = ["BaseCheckpointSaver"]
