"""
Runtime execution configuration.
"""

from pydantic import BaseModel, ConfigDict, Field

from deepagent.config.settings import settings


class SummarizationConfig(BaseModel):
    """Whole-history compression settings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    enabled: bool = Field(default=True, description="Enable summarization")
    token_threshold: int = Field(
        default=170_000, ge=1, description="Estimated token count that triggers summarization"
    )
    keep_messages: int = Field(
        default=6, ge=0, description="Most recent messages kept verbatim"
    )
    # Optional cheaper model used to write the summary; falls back to the agent model
    model: object | None = Field(default=None, exclude=True)


class ExecutionConfig(BaseModel):
    """
    Knobs for one DeepAgent.

    Per-invocation arguments (max_steps, thread_id, ...) override the
    matching values here.
    """

    # Loop configuration
    max_steps: int = Field(
        default_factory=lambda: settings.default_max_steps,
        ge=1,
        description="Maximum steps per invocation",
    )
    event_queue_size: int = Field(
        default=1, ge=1, description="Events buffered between producer and consumer"
    )

    # Tool configuration
    include_general_purpose_agent: bool = Field(
        default=True, description="Register the general-purpose subagent"
    )
    enable_web_tools: bool = Field(default=False, description="Expose web_search/http_request/fetch_url")
    tool_result_eviction_limit: int | None = Field(
        default=None, ge=1, description="Token cap above which tool results are offloaded"
    )

    # Subagents
    subagent_max_steps: int = Field(default=50, ge=1, description="Step limit for subagent runs")
    max_delegation_depth: int = Field(default=5, ge=1, description="Maximum subagent nesting")
    forward_subagent_steps: bool = Field(
        default=True, description="Forward subagent step-finish events as subagent-step"
    )

    # Provider hints
    enable_prompt_caching: bool = Field(
        default=False, description="Attach a cache-control hint to the system message"
    )


__all__ = ["ExecutionConfig", "SummarizationConfig"]
