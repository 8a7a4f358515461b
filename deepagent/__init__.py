"""
deepagent - step-loop agent runtime

Top-level exports for easy access to core functionality.
"""

# Top-level Agent class
from deepagent.agent import DeepAgent, RunOutput

# Domain models
from deepagent.domain import (
    AgentState,
    Checkpoint,
    DoneEvent,
    ErrorEvent,
    Event,
    EventType,
    FileData,
    InterruptData,
    ResumeDecision,
    ResumeOptions,
    TodoItem,
    TodoStatus,
    ToolResult,
)

# Providers
from deepagent.llm import Model, OpenAIModel, StreamChunk
from deepagent.backends import (
    BackendProtocol,
    CompositeBackend,
    FilesystemBackend,
    LocalSandbox,
    PersistentBackend,
    StateBackend,
)
from deepagent.checkpoint import BaseCheckpointSaver, FileSaver, KeyValueStoreSaver, MemorySaver
from deepagent.tools import BaseTool, SubAgent, tool

# Runtime
from deepagent.runtime import AbortSignal, ApprovalConfig, ApprovalRequest, has_tool_call, step_count_is

# Config
from deepagent.config import ExecutionConfig, SummarizationConfig, settings
from deepagent.exceptions import (
    AgentRunError,
    BackendError,
    CheckpointError,
    ConfigurationError,
    DeepAgentError,
)

__version__ = "0.1.0"

__all__ = [
    # Agent
    "DeepAgent",
    "RunOutput",
    # Domain
    "AgentState",
    "Checkpoint",
    "DoneEvent",
    "ErrorEvent",
    "Event",
    "EventType",
    "FileData",
    "InterruptData",
    "ResumeDecision",
    "ResumeOptions",
    "TodoItem",
    "TodoStatus",
    "ToolResult",
    # Providers - LLM
    "Model",
    "OpenAIModel",
    "StreamChunk",
    # Providers - Backends
    "BackendProtocol",
    "CompositeBackend",
    "FilesystemBackend",
    "LocalSandbox",
    "PersistentBackend",
    "StateBackend",
    # Providers - Checkpoints
    "BaseCheckpointSaver",
    "FileSaver",
    "KeyValueStoreSaver",
    "MemorySaver",
    # Providers - Tools
    "BaseTool",
    "SubAgent",
    "tool",
    # Runtime
    "AbortSignal",
    "ApprovalConfig",
    "ApprovalRequest",
    "has_tool_call",
    "step_count_is",
    # Config
    "ExecutionConfig",
    "SummarizationConfig",
    "settings",
    # Errors
    "AgentRunError",
    "BackendError",
    "CheckpointError",
    "ConfigurationError",
    "DeepAgentError",
]
