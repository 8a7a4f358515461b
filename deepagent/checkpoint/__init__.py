from deepagent.checkpoint.base import BaseCheckpointSaver
from deepagent.checkpoint.file import FileSaver, sanitize_thread_id
from deepagent.checkpoint.kv import KeyValueStoreSaver
from deepagent.checkpoint.memory import MemorySaver

__all__ = [
    "BaseCheckpointSaver",
    "FileSaver",
    "KeyValueStoreSaver",
    "MemorySaver",
    "sanitize_thread_id",
]
