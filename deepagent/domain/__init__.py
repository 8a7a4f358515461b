from deepagent.domain.checkpoint import (
    Checkpoint,
    InterruptData,
    PendingToolCall,
    ResumeDecision,
    ResumeOptions,
    utc_now_iso,
)
from deepagent.domain.events import (
    ApprovalRequestedEvent,
    ApprovalResponseEvent,
    BaseEvent,
    CheckpointLoadedEvent,
    CheckpointSavedEvent,
    DoneEvent,
    ErrorEvent,
    Event,
    EventType,
    ExecuteFinishEvent,
    ExecuteStartEvent,
    FetchUrlFinishEvent,
    FetchUrlStartEvent,
    FileEditedEvent,
    FileReadEvent,
    FileWriteStartEvent,
    FileWrittenEvent,
    GlobEvent,
    GrepEvent,
    HttpRequestFinishEvent,
    HttpRequestStartEvent,
    LsEvent,
    StepFinishEvent,
    StepStartEvent,
    SubagentFinishEvent,
    SubagentStartEvent,
    SubagentStepEvent,
    TextEvent,
    TodosChangedEvent,
    ToolCallEvent,
    ToolCallRecord,
    ToolResultEvent,
    WebSearchFinishEvent,
    WebSearchStartEvent,
    parse_event,
)
from deepagent.domain.files import (
    EditResult,
    ExecuteResponse,
    FileDownloadResponse,
    FileInfo,
    FileOperationError,
    FileUploadResponse,
    GrepMatch,
    WriteResult,
)
from deepagent.domain.messages import (
    MessageRole,
    assistant_message,
    message_text,
    system_message,
    tool_message,
    user_message,
)
from deepagent.domain.state import AgentState, FileData, TodoItem, TodoStatus
from deepagent.domain.tools import ToolResult

__all__ = [
    # State
    "AgentState",
    "FileData",
    "TodoItem",
    "TodoStatus",
    # Backend values
    "EditResult",
    "ExecuteResponse",
    "FileDownloadResponse",
    "FileInfo",
    "FileOperationError",
    "FileUploadResponse",
    "GrepMatch",
    "WriteResult",
    # Checkpoint
    "Checkpoint",
    "InterruptData",
    "PendingToolCall",
    "ResumeDecision",
    "ResumeOptions",
    "utc_now_iso",
    # Messages
    "MessageRole",
    "assistant_message",
    "message_text",
    "system_message",
    "tool_message",
    "user_message",
    # Tools
    "ToolResult",
    # Events
    "ApprovalRequestedEvent",
    "ApprovalResponseEvent",
    "BaseEvent",
    "CheckpointLoadedEvent",
    "CheckpointSavedEvent",
    "DoneEvent",
    "ErrorEvent",
    "Event",
    "EventType",
    "ExecuteFinishEvent",
    "ExecuteStartEvent",
    "FetchUrlFinishEvent",
    "FetchUrlStartEvent",
    "FileEditedEvent",
    "FileReadEvent",
    "FileWriteStartEvent",
    "FileWrittenEvent",
    "GlobEvent",
    "GrepEvent",
    "HttpRequestFinishEvent",
    "HttpRequestStartEvent",
    "LsEvent",
    "StepFinishEvent",
    "StepStartEvent",
    "SubagentFinishEvent",
    "SubagentStartEvent",
    "SubagentStepEvent",
    "TextEvent",
    "TodosChangedEvent",
    "ToolCallEvent",
    "ToolCallRecord",
    "ToolResultEvent",
    "WebSearchFinishEvent",
    "WebSearchStartEvent",
    "parse_event",
]
