"""
Storage backends implementing the uniform file-operation protocol.

The persistent stores that need network or database drivers
(``RedisStore``, ``SQLiteStore``) are imported from their own modules.
"""

from deepagent.backends.composite import CompositeBackend
from deepagent.backends.filesystem import FilesystemBackend
from deepagent.backends.local_sandbox import LocalSandbox
from deepagent.backends.persistent import PersistentBackend
from deepagent.backends.protocol import BackendProtocol, SandboxBackendProtocol, is_sandbox_backend
from deepagent.backends.sandbox import BaseSandbox
from deepagent.backends.state import StateBackend
from deepagent.backends.store import InMemoryStore, KeyValueStore, StoreItem

__all__ = [
    "BackendProtocol",
    "BaseSandbox",
    "CompositeBackend",
    "FilesystemBackend",
    "InMemoryStore",
    "KeyValueStore",
    "LocalSandbox",
    "PersistentBackend",
    "SandboxBackendProtocol",
    "StateBackend",
    "StoreItem",
    "is_sandbox_backend",
]
