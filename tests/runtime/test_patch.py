"""Dangling tool call repair tests"""

from deepagent.domain import assistant_message, tool_message, user_message
from deepagent.runtime import has_dangling_tool_calls, patch_tool_calls


def _call(call_id: str, name: str = "ls") -> dict:
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": "{}"}}


def test_unanswered_call_gets_cancellation_after_its_assistant_message():
    messages = [
        user_message("list files"),
        assistant_message(None, [_call("a"), _call("b", "grep")]),
        tool_message("a", "/notes.md"),
        user_message("never mind"),
    ]
    assert has_dangling_tool_calls(messages)

    patched = patch_tool_calls(messages)

    assert len(patched) == 5
    assert patched[2]["role"] == "tool"
    assert patched[2]["tool_call_id"] == "b"
    assert patched[2]["content"] == (
        "Tool call grep with id b was cancelled - another message came in before it could be completed."
    )
    assert patched[3] == messages[2]
    assert not has_dangling_tool_calls(patched)
    # input left untouched
    assert len(messages) == 4


def test_answered_history_is_unchanged():
    messages = [
        user_message("list files"),
        assistant_message(None, [_call("a")]),
        tool_message("a", "/notes.md"),
        assistant_message("Done"),
    ]
    assert patch_tool_calls(messages) == messages
    assert not has_dangling_tool_calls(messages)


def test_empty_history():
    assert patch_tool_calls([]) == []
