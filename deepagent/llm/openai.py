"""
Chat Completions adapter.

Works against api.openai.com and any endpoint speaking the same protocol
(set ``base_url``). Only opening the stream is retried.
"""

from typing import Any, AsyncIterator

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from pydantic import ConfigDict, Field, SecretStr

from deepagent.config import settings
from deepagent.domain.messages import PROVIDER_OPTIONS_KEY
from deepagent.llm.base import Model, StreamChunk
from deepagent.utils.logging import get_logger
from deepagent.utils.retry import retry_async

logger = get_logger(__name__)

OPENAI_RETRYABLE = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    APITimeoutError,
)

# Key inside ``provider_options`` read by this adapter
PROVIDER_NAME = "openai"


def to_openai_messages(messages: list[dict]) -> list[dict]:
    """
    Convert history entries to Chat Completions messages.

    ``provider_options["openai"]`` is merged into the entry as extra message
    fields; options addressed to other providers are dropped.
    """
    converted = []
    for message in messages:
        options = message.get(PROVIDER_OPTIONS_KEY) or {}
        entry = {k: v for k, v in message.items() if k != PROVIDER_OPTIONS_KEY}
        entry.update(options.get(PROVIDER_NAME) or {})
        converted.append(entry)
    return converted


def _to_stream_chunk(chunk: Any) -> StreamChunk | None:
    """Normalize one SDK chunk; None when it carries nothing useful."""
    out = StreamChunk()
    if chunk.usage:
        out.usage = {
            "prompt_tokens": chunk.usage.prompt_tokens,
            "completion_tokens": chunk.usage.completion_tokens,
            "total_tokens": chunk.usage.total_tokens,
        }
    if chunk.choices:
        choice = chunk.choices[0]
        out.content = choice.delta.content or None
        if choice.delta.tool_calls:
            out.tool_calls = [tc.model_dump(exclude_none=True) for tc in choice.delta.tool_calls]
        out.finish_reason = choice.finish_reason or None

    if out.content is None and out.tool_calls is None and out.usage is None and out.finish_reason is None:
        return None
    return out


class OpenAIModel(Model):
    """
    OpenAI-compatible chat model.

    Credentials resolve from the arguments, then ``DEEPAGENT_OPENAI_*``
    settings, then the SDK's own ``OPENAI_API_KEY`` / ``OPENAI_BASE_URL``.
    ``extra_body`` is sent with every request untouched, for endpoint
    specific parameters.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    id: str = "openai/gpt-4o"
    name: str = "gpt-4o"
    model_name: str | None = Field(default=None, description="Model name sent to the API, defaults to name")
    api_key: SecretStr | None = Field(default=None, exclude=True)
    base_url: str | None = None
    client: AsyncOpenAI | None = Field(default=None, exclude=True)
    extra_body: dict[str, Any] | None = None

    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)

    def model_post_init(self, __context) -> None:
        if self.client is None:
            key = self.api_key or settings.openai_api_key
            self.client = AsyncOpenAI(
                api_key=key.get_secret_value() if key else None,
                base_url=self.base_url or settings.openai_base_url,
            )
        super().model_post_init(__context)

    @property
    def api_model(self) -> str:
        return self.model_name or self.name

    def build_request(self, messages: list[dict], tools: list[dict] | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.api_model,
            "messages": to_openai_messages(messages),
            "temperature": self.temperature,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        optional = {"top_p": self.top_p, "max_tokens": self.max_tokens, "extra_body": self.extra_body}
        params.update({k: v for k, v in optional.items() if v is not None})
        if tools:
            params["tools"] = tools
        return params

    @retry_async(exceptions=OPENAI_RETRYABLE)
    async def _open_stream(self, params: dict[str, Any]):
        return await self.client.chat.completions.create(**params)

    async def arun_stream(
        self,
        messages: list[dict],
        tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        params = self.build_request(messages, tools)
        logger.debug(
            "llm_request",
            model=self.api_model,
            messages_count=len(messages),
            tools_count=len(tools or []),
        )

        try:
            stream = await self._open_stream(params)
        except Exception as e:
            logger.error(
                "llm_request_failed",
                model=self.api_model,
                error=str(e),
                error_type=type(e).__name__,
                messages_count=len(messages),
                exc_info=True,
            )
            raise

        async for chunk in stream:
            normalized = _to_stream_chunk(chunk)
            if normalized is None:
                continue
            if normalized.usage:
                logger.debug("llm_usage", model=self.api_model, **normalized.usage)
            yield normalized


__all__ = ["OpenAIModel", "to_openai_messages"]
