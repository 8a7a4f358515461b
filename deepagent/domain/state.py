"""
Shared agent state: the todo list and the virtual file map.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TodoStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TodoItem(BaseModel):
    """One entry of the agent's task list."""

    id: str = Field(description="Stable identifier used for merging updates")
    content: str = Field(min_length=1, max_length=100)
    status: TodoStatus = TodoStatus.PENDING


class FileData(BaseModel):
    """
    A file stored in agent state.

    Content is kept as a list of lines; created_at never changes after the
    first write, modified_at is bumped on every edit.
    """

    content: list[str]
    created_at: str
    modified_at: str

    def text(self) -> str:
        return "\n".join(self.content)


class AgentState(BaseModel):
    """
    Mutable state shared by every tool of one invocation.

    Not safe for concurrent mutation: concurrent runs must use distinct
    instances.
    """

    model_config = ConfigDict(validate_assignment=False)

    todos: list[TodoItem] = Field(default_factory=list)
    files: dict[str, FileData] = Field(default_factory=dict)

    def snapshot(self) -> "AgentState":
        """Deep copy captured into checkpoints."""
        return self.model_copy(deep=True)

    def restore(self, other: "AgentState") -> None:
        """Replace contents in place so existing references stay valid."""
        self.todos[:] = [t.model_copy() for t in other.todos]
        self.files.clear()
        self.files.update({p: f.model_copy(deep=True) for p, f in other.files.items()})


__all__ = ["AgentState", "FileData", "TodoItem", "TodoStatus"]
