from typing import Any

from pydantic import BaseModel, Field


class ToolResult(BaseModel):
    tool_name: str
    tool_call_id: str
    input_args: dict[str, Any] = Field(default_factory=dict)
    content: str  # what the model sees
    output: Any = None  # raw execution result
    error: str | None = None
    start_time: float
    end_time: float
    duration: float
    is_success: bool = True

    def to_message(self) -> dict[str, Any]:
        """History entry for this result (OpenAI tool message)."""
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "name": self.tool_name,
            "content": self.content,
        }
