"""
Event protocol for streaming agent execution.

Every event is a pydantic model whose ``type`` field is a literal
``EventType`` member; ``Event`` is the discriminated union of all of
them, so consumers can ``match`` on the concrete class exhaustively.
Events are never persisted, only checkpoints are.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from deepagent.domain.checkpoint import InterruptData
from deepagent.domain.state import AgentState, TodoItem


class EventType(str, Enum):
    """Event types for streaming"""

    # Model output
    TEXT = "text"

    # Step boundaries
    STEP_START = "step-start"
    STEP_FINISH = "step-finish"

    # Generic tool lifecycle
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"

    # Built-in tool events
    TODOS_CHANGED = "todos-changed"
    FILE_WRITE_START = "file-write-start"
    FILE_WRITTEN = "file-written"
    FILE_EDITED = "file-edited"
    FILE_READ = "file-read"
    LS = "ls"
    GLOB = "glob"
    GREP = "grep"
    EXECUTE_START = "execute-start"
    EXECUTE_FINISH = "execute-finish"
    WEB_SEARCH_START = "web-search-start"
    WEB_SEARCH_FINISH = "web-search-finish"
    HTTP_REQUEST_START = "http-request-start"
    HTTP_REQUEST_FINISH = "http-request-finish"
    FETCH_URL_START = "fetch-url-start"
    FETCH_URL_FINISH = "fetch-url-finish"

    # Delegation
    SUBAGENT_START = "subagent-start"
    SUBAGENT_STEP = "subagent-step"
    SUBAGENT_FINISH = "subagent-finish"

    # Approval
    APPROVAL_REQUESTED = "approval-requested"
    APPROVAL_RESPONSE = "approval-response"

    # Persistence
    CHECKPOINT_SAVED = "checkpoint-saved"
    CHECKPOINT_LOADED = "checkpoint-loaded"

    # Terminal
    DONE = "done"
    ERROR = "error"


class BaseEvent(BaseModel):
    """Fields shared by every event."""

    run_id: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class TextEvent(BaseEvent):
    type: Literal[EventType.TEXT] = EventType.TEXT
    text: str


class StepStartEvent(BaseEvent):
    type: Literal[EventType.STEP_START] = EventType.STEP_START
    step_number: int


class ToolCallRecord(BaseModel):
    """A tool call made during a step together with its result."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: str | None = None
    is_success: bool = True


class StepFinishEvent(BaseEvent):
    type: Literal[EventType.STEP_FINISH] = EventType.STEP_FINISH
    step_number: int
    text: str = ""
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    usage: dict[str, int] | None = None


class ToolCallEvent(BaseEvent):
    type: Literal[EventType.TOOL_CALL] = EventType.TOOL_CALL
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseEvent):
    type: Literal[EventType.TOOL_RESULT] = EventType.TOOL_RESULT
    tool_call_id: str
    tool_name: str
    result: str
    is_success: bool = True


class TodosChangedEvent(BaseEvent):
    type: Literal[EventType.TODOS_CHANGED] = EventType.TODOS_CHANGED
    todos: list[TodoItem]


class FileWriteStartEvent(BaseEvent):
    type: Literal[EventType.FILE_WRITE_START] = EventType.FILE_WRITE_START
    path: str
    content: str


class FileWrittenEvent(BaseEvent):
    type: Literal[EventType.FILE_WRITTEN] = EventType.FILE_WRITTEN
    path: str
    content: str


class FileEditedEvent(BaseEvent):
    type: Literal[EventType.FILE_EDITED] = EventType.FILE_EDITED
    path: str
    occurrences: int


class FileReadEvent(BaseEvent):
    type: Literal[EventType.FILE_READ] = EventType.FILE_READ
    path: str
    lines: int


class LsEvent(BaseEvent):
    type: Literal[EventType.LS] = EventType.LS
    path: str
    count: int


class GlobEvent(BaseEvent):
    type: Literal[EventType.GLOB] = EventType.GLOB
    pattern: str
    count: int


class GrepEvent(BaseEvent):
    type: Literal[EventType.GREP] = EventType.GREP
    pattern: str
    count: int


class ExecuteStartEvent(BaseEvent):
    type: Literal[EventType.EXECUTE_START] = EventType.EXECUTE_START
    command: str
    sandbox_id: str


class ExecuteFinishEvent(BaseEvent):
    type: Literal[EventType.EXECUTE_FINISH] = EventType.EXECUTE_FINISH
    command: str
    sandbox_id: str
    exit_code: int | None = None
    truncated: bool = False


class WebSearchStartEvent(BaseEvent):
    type: Literal[EventType.WEB_SEARCH_START] = EventType.WEB_SEARCH_START
    query: str


class WebSearchFinishEvent(BaseEvent):
    type: Literal[EventType.WEB_SEARCH_FINISH] = EventType.WEB_SEARCH_FINISH
    query: str
    result_count: int


class HttpRequestStartEvent(BaseEvent):
    type: Literal[EventType.HTTP_REQUEST_START] = EventType.HTTP_REQUEST_START
    url: str
    method: str


class HttpRequestFinishEvent(BaseEvent):
    type: Literal[EventType.HTTP_REQUEST_FINISH] = EventType.HTTP_REQUEST_FINISH
    url: str
    status_code: int | None = None


class FetchUrlStartEvent(BaseEvent):
    type: Literal[EventType.FETCH_URL_START] = EventType.FETCH_URL_START
    url: str


class FetchUrlFinishEvent(BaseEvent):
    type: Literal[EventType.FETCH_URL_FINISH] = EventType.FETCH_URL_FINISH
    url: str
    success: bool


class SubagentStartEvent(BaseEvent):
    type: Literal[EventType.SUBAGENT_START] = EventType.SUBAGENT_START
    subagent_run_id: str
    subagent_type: str
    description: str


class SubagentStepEvent(BaseEvent):
    type: Literal[EventType.SUBAGENT_STEP] = EventType.SUBAGENT_STEP
    subagent_run_id: str
    subagent_type: str
    step_number: int
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)


class SubagentFinishEvent(BaseEvent):
    type: Literal[EventType.SUBAGENT_FINISH] = EventType.SUBAGENT_FINISH
    subagent_run_id: str
    subagent_type: str
    result: str


class ApprovalRequestedEvent(BaseEvent):
    type: Literal[EventType.APPROVAL_REQUESTED] = EventType.APPROVAL_REQUESTED
    approval_id: str
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ApprovalResponseEvent(BaseEvent):
    type: Literal[EventType.APPROVAL_RESPONSE] = EventType.APPROVAL_RESPONSE
    approval_id: str
    approved: bool


class CheckpointSavedEvent(BaseEvent):
    type: Literal[EventType.CHECKPOINT_SAVED] = EventType.CHECKPOINT_SAVED
    thread_id: str
    step: int


class CheckpointLoadedEvent(BaseEvent):
    type: Literal[EventType.CHECKPOINT_LOADED] = EventType.CHECKPOINT_LOADED
    thread_id: str
    step: int
    messages_count: int


class DoneEvent(BaseEvent):
    type: Literal[EventType.DONE] = EventType.DONE
    text: str = ""
    state: AgentState
    messages: list[dict[str, Any]] = Field(default_factory=list)
    # Set when the run paused on a tool call awaiting approval
    interrupt: InterruptData | None = None


class ErrorEvent(BaseEvent):
    type: Literal[EventType.ERROR] = EventType.ERROR
    message: str
    error_type: str | None = None


Event = Annotated[
    Union[
        TextEvent,
        StepStartEvent,
        StepFinishEvent,
        ToolCallEvent,
        ToolResultEvent,
        TodosChangedEvent,
        FileWriteStartEvent,
        FileWrittenEvent,
        FileEditedEvent,
        FileReadEvent,
        LsEvent,
        GlobEvent,
        GrepEvent,
        ExecuteStartEvent,
        ExecuteFinishEvent,
        WebSearchStartEvent,
        WebSearchFinishEvent,
        HttpRequestStartEvent,
        HttpRequestFinishEvent,
        FetchUrlStartEvent,
        FetchUrlFinishEvent,
        SubagentStartEvent,
        SubagentStepEvent,
        SubagentFinishEvent,
        ApprovalRequestedEvent,
        ApprovalResponseEvent,
        CheckpointSavedEvent,
        CheckpointLoadedEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

event_adapter: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(data: dict[str, Any]) -> Event:
    """Rebuild a concrete event from its JSON form (e.g. after an SSE hop)."""
    return event_adapter.validate_python(data)


__all__ = [
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
    "event_adapter",
    "parse_event",
]
