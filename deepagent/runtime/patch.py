"""
Repair dangling tool calls in a history.

Providers reject a history in which an assistant ``tool_calls`` entry has
no matching tool result. ``patch_tool_calls`` inserts a synthetic
"cancelled" result right after such an assistant entry.
"""

from deepagent.domain import tool_message
from deepagent.domain.messages import tool_call_name


def _answered_ids(messages: list[dict], start: int) -> set[str]:
    return {
        m.get("tool_call_id")
        for m in messages[start:]
        if m.get("role") == "tool" and m.get("tool_call_id")
    }


def cancelled_tool_result(tool_call_id: str, tool_name: str) -> dict:
    return tool_message(
        tool_call_id,
        f"Tool call {tool_name} with id {tool_call_id} was cancelled - "
        "another message came in before it could be completed.",
        name=tool_name,
    )


def patch_tool_calls(messages: list[dict]) -> list[dict]:
    """Return a new list with a cancellation result for each unanswered call."""
    if not messages:
        return messages

    result: list[dict] = []
    for i, message in enumerate(messages):
        result.append(message)
        if message.get("role") != "assistant" or not message.get("tool_calls"):
            continue
        answered = _answered_ids(messages, i + 1)
        for tc in message["tool_calls"]:
            if tc.get("id") not in answered:
                result.append(cancelled_tool_result(tc.get("id", ""), tool_call_name(tc)))
    return result


def has_dangling_tool_calls(messages: list[dict]) -> bool:
    for i, message in enumerate(messages or []):
        if message.get("role") != "assistant" or not message.get("tool_calls"):
            continue
        answered = _answered_ids(messages, i + 1)
        if any(tc.get("id") not in answered for tc in message["tool_calls"]):
            return True
    return False


__all__ = ["cancelled_tool_result", "has_dangling_tool_calls", "patch_tool_calls"]
