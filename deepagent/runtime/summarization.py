"""
History summarization.

When the estimated size of the history passes a threshold, everything but
the most recent entries is condensed by a model call into one synthetic
message. A tool result is never separated from the assistant message that
requested it: the cut moves later until it lands on a non-tool entry, so
results whose call was summarized are summarized with it.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel

from deepagent.domain import message_text, user_message
from deepagent.runtime.eviction import estimate_tokens
from deepagent.utils.logging import get_logger

if TYPE_CHECKING:
    from deepagent.llm.base import Model

logger = get_logger(__name__)

DEFAULT_SUMMARIZATION_THRESHOLD = 170000
DEFAULT_KEEP_MESSAGES = 6

SUMMARY_PREFIX = "[Summary of earlier conversation]"

SUMMARIZATION_PROMPT = """You are compressing the earlier part of a conversation between a user and an AI agent so the agent can keep working with a smaller context.

Write a concise summary that preserves:
- the user's goals and any constraints they stated
- decisions made and conclusions reached
- files created or modified and what they contain
- tool calls that matter for the remaining work and their outcomes
- open questions and the next steps that were planned

Reply with the summary only."""


class SummarizationResult(BaseModel):
    messages: list[dict]
    summarized: bool
    tokens_before: int
    tokens_after: int | None = None


def _message_size_text(message: dict) -> str:
    text = message_text(message)
    for tc in message.get("tool_calls") or []:
        fn = tc.get("function", {})
        text += fn.get("name", "") + (fn.get("arguments") or "")
    return text


def estimate_messages_tokens(messages: list[dict]) -> int:
    return sum(estimate_tokens(_message_size_text(m)) for m in messages)


def needs_summarization(messages: list[dict], token_threshold: int = DEFAULT_SUMMARIZATION_THRESHOLD) -> bool:
    return estimate_messages_tokens(messages) > token_threshold


def find_safe_cutoff(messages: list[dict], keep_messages: int) -> int:
    """
    Index of the first kept entry; 0 means there is nothing to summarize.

    The kept tail is never longer than ``keep_messages`` and never starts with
    a tool result. It may be empty.
    """
    cut = len(messages) - keep_messages
    if cut <= 0:
        return 0
    while cut < len(messages) and messages[cut].get("role") == "tool":
        cut += 1
    return cut


def _render_transcript(messages: list[dict]) -> str:
    lines = []
    for m in messages:
        role = m.get("role", "unknown")
        text = message_text(m)
        if m.get("tool_calls"):
            calls = ", ".join(
                f"{tc.get('function', {}).get('name')}({tc.get('function', {}).get('arguments') or ''})"
                for tc in m["tool_calls"]
            )
            text = f"{text}\n[tool calls: {calls}]" if text else f"[tool calls: {calls}]"
        if role == "tool":
            role = f"tool:{m.get('name') or m.get('tool_call_id')}"
        lines.append(f"{role}: {text}")
    return "\n\n".join(lines)


async def summarize_if_needed(
    messages: list[dict],
    model: "Model",
    token_threshold: int = DEFAULT_SUMMARIZATION_THRESHOLD,
    keep_messages: int = DEFAULT_KEEP_MESSAGES,
) -> SummarizationResult:
    """
    Summarize ``messages`` when over ``token_threshold``.

    Any failure of the summary call falls back to the original history.
    """
    tokens_before = estimate_messages_tokens(messages)
    unchanged = SummarizationResult(messages=messages, summarized=False, tokens_before=tokens_before)

    if tokens_before <= token_threshold:
        return unchanged

    cut = find_safe_cutoff(messages, keep_messages)
    if cut == 0:
        return unchanged

    older, recent = messages[:cut], messages[cut:]
    request = [
        {"role": "system", "content": SUMMARIZATION_PROMPT},
        user_message(_render_transcript(older)),
    ]

    try:
        response = await model.arun(request)
    except Exception as e:
        logger.warning("summarization_failed", error=str(e), error_type=type(e).__name__)
        return unchanged

    summary = (response.content or "").strip()
    if not summary:
        logger.warning("summarization_empty")
        return unchanged

    summarized = [user_message(f"{SUMMARY_PREFIX}\n\n{summary}"), *recent]
    tokens_after = estimate_messages_tokens(summarized)
    logger.info(
        "history_summarized",
        summarized_messages=len(older),
        kept_messages=len(recent),
        tokens_before=tokens_before,
        tokens_after=tokens_after,
    )
    return SummarizationResult(
        messages=summarized,
        summarized=True,
        tokens_before=tokens_before,
        tokens_after=tokens_after,
    )


__all__ = [
    "DEFAULT_KEEP_MESSAGES",
    "DEFAULT_SUMMARIZATION_THRESHOLD",
    "SUMMARY_PREFIX",
    "SummarizationResult",
    "estimate_messages_tokens",
    "find_safe_cutoff",
    "needs_summarization",
    "summarize_if_needed",
]
