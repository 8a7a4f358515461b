"""Exceptions raised by the deepagent runtime."""


class DeepAgentError(Exception):
    """Base exception for deepagent errors."""

    pass


class ConfigurationError(DeepAgentError):
    """Contradictory or missing invocation options."""

    pass


class AgentRunError(DeepAgentError):
    """A run terminated with an error event."""

    def __init__(self, message: str, error_type: str | None = None):
        super().__init__(message)
        self.error_type = error_type


class BackendError(DeepAgentError):
    """Unrecoverable storage backend failure (I/O, network, process)."""

    pass


class CheckpointError(DeepAgentError):
    """Checkpoint store failure."""

    pass


__all__ = [
    "AgentRunError",
    "BackendError",
    "CheckpointError",
    "ConfigurationError",
    "DeepAgentError",
]
