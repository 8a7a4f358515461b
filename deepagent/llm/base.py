"""
Model abstraction layer - Pure LLM Interface

Responsibilities:
- Encapsulate different LLM provider APIs
- Provide unified streaming interface
- Standardize output format

Does NOT handle:
- Tool Loop logic
- Event wrapping
- State management
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from pydantic import BaseModel, ConfigDict, Field


class StreamChunk(BaseModel):
    """
    Minimal unit of LLM streaming output.

    All Model implementations must standardize their vendor-specific
    streaming output to this format.
    """

    model_config = ConfigDict(frozen=False)

    content: str | None = Field(default=None, description="Text content delta")
    tool_calls: list[dict] | None = Field(
        default=None, description="Tool calls delta (OpenAI format, with index)"
    )
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage stats {prompt_tokens, completion_tokens, total_tokens}",
    )
    finish_reason: str | None = Field(
        default=None, description="Finish reason: stop, tool_calls, length, etc."
    )


class ModelResponse(BaseModel):
    """A whole (non-streamed) model turn."""

    content: str | None = None
    tool_calls: list[dict] = Field(default_factory=list)
    usage: dict[str, int] | None = None
    finish_reason: str | None = None


class ToolCallAccumulator:
    """
    Accumulate streaming tool calls.

    OpenAI returns tool calls incrementally, need to accumulate before execution.
    """

    def __init__(self):
        self._calls: dict[int, dict] = {}

    def accumulate(self, delta_calls: list[dict]):
        for tc in delta_calls:
            idx = tc.get("index", 0)

            if idx not in self._calls:
                self._calls[idx] = {
                    "id": None,
                    "type": "function",
                    "function": {"name": "", "arguments": ""},
                }

            acc = self._calls[idx]

            if tc.get("id"):
                acc["id"] = tc["id"]

            if tc.get("type"):
                acc["type"] = tc["type"]

            if tc.get("function"):
                fn = tc["function"]
                if fn.get("name"):
                    acc["function"]["name"] += fn["name"]
                if fn.get("arguments"):
                    acc["function"]["arguments"] += fn["arguments"]

    def finalize(self) -> list[dict]:
        """Complete tool calls in index order (calls without an id are dropped)."""
        return [self._calls[idx] for idx in sorted(self._calls) if self._calls[idx]["id"] is not None]

    def clear(self):
        self._calls.clear()


class Model(BaseModel, ABC):
    """
    Unified Model abstract base class.

    Implementations override ``arun_stream``; ``arun`` is derived from it.
    History entries may carry ``provider_options``; an implementation
    either maps them onto its API or drops them.
    """

    id: str = Field(description="Model identifier, format: provider/model-name")
    name: str = Field(description="Model name")

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    @abstractmethod
    async def arun_stream(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Unified streaming interface.

        Args:
            messages: Message list, standard OpenAI format
            tools: Tool definition list, OpenAI format

        Yields:
            StreamChunk: Streaming output chunk
        """
        pass

    async def arun(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
    ) -> ModelResponse:
        """Drain ``arun_stream`` into a single response."""
        text = ""
        accumulator = ToolCallAccumulator()
        usage = None
        finish_reason = None

        async for chunk in self.arun_stream(messages, tools=tools):
            if chunk.content:
                text += chunk.content
            if chunk.tool_calls:
                accumulator.accumulate(chunk.tool_calls)
            if chunk.usage:
                usage = chunk.usage
            if chunk.finish_reason:
                finish_reason = chunk.finish_reason

        return ModelResponse(
            content=text or None,
            tool_calls=accumulator.finalize(),
            usage=usage,
            finish_reason=finish_reason,
        )


__all__ = ["Model", "ModelResponse", "StreamChunk", "ToolCallAccumulator"]
