"""
Checkpoint models - point-in-time snapshot of one conversation thread.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from deepagent.domain.state import AgentState


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PendingToolCall(BaseModel):
    """Identity and arguments of a tool call held for approval."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class InterruptData(BaseModel):
    """A tool call intercepted for approval and not yet executed."""

    tool_call: PendingToolCall
    step: int


class Checkpoint(BaseModel):
    """
    Snapshot saved at a step boundary.

    At most one checkpoint is current per thread_id in a store; saving again
    overwrites it.
    """

    thread_id: str
    step: int = Field(ge=0)
    messages: list[dict[str, Any]] = Field(default_factory=list)
    state: AgentState = Field(default_factory=AgentState)
    interrupt: InterruptData | None = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class ResumeDecision(BaseModel):
    type: Literal["approve", "deny"]
    # Replaces the held call's arguments when approving
    modified_args: dict[str, Any] | None = None


class ResumeOptions(BaseModel):
    decisions: list[ResumeDecision] = Field(min_length=1)


__all__ = [
    "Checkpoint",
    "InterruptData",
    "PendingToolCall",
    "ResumeDecision",
    "ResumeOptions",
    "utc_now_iso",
]
