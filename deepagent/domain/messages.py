"""
History entries are plain OpenAI-format dicts.

Roles: system, user, assistant (optionally with ``tool_calls``) and tool
(with ``tool_call_id``). Any entry may carry ``provider_options``; the
runtime never interprets it and model adapters decide what to do with it.
"""

from enum import Enum
from typing import Any


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


PROVIDER_OPTIONS_KEY = "provider_options"


def system_message(content: str, provider_options: dict | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"role": MessageRole.SYSTEM.value, "content": content}
    if provider_options:
        message[PROVIDER_OPTIONS_KEY] = provider_options
    return message


def user_message(content: str) -> dict[str, Any]:
    return {"role": MessageRole.USER.value, "content": content}


def assistant_message(content: str | None, tool_calls: list[dict] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"role": MessageRole.ASSISTANT.value, "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return message


def tool_message(tool_call_id: str, content: str, name: str | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {
        "role": MessageRole.TOOL.value,
        "tool_call_id": tool_call_id,
        "content": content,
    }
    if name:
        message["name"] = name
    return message


def tool_call_name(tool_call: dict) -> str:
    return tool_call.get("function", {}).get("name") or "unknown"


def message_text(message: dict) -> str:
    """Flatten string or content-part list into text."""
    content = message.get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
        elif isinstance(part, str):
            parts.append(part)
    return "".join(parts)


__all__ = [
    "MessageRole",
    "PROVIDER_OPTIONS_KEY",
    "assistant_message",
    "message_text",
    "system_message",
    "tool_call_name",
    "tool_message",
    "user_message",
]
