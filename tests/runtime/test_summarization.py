"""History summarization tests"""

import pytest

from deepagent.domain import assistant_message, tool_message, user_message
from deepagent.runtime.summarization import (
    SUMMARIZATION_PROMPT,
    SUMMARY_PREFIX,
    estimate_messages_tokens,
    find_safe_cutoff,
    needs_summarization,
    summarize_if_needed,
)


def _call(call_id: str) -> dict:
    return {"id": call_id, "type": "function", "function": {"name": "grep", "arguments": '{"pattern": "x"}'}}


def long_history(turns: int = 10) -> list[dict]:
    messages = []
    for i in range(turns):
        messages.append(user_message(f"question {i} " + "q" * 200))
        messages.append(assistant_message(f"answer {i} " + "a" * 200))
    return messages


def test_estimate_counts_tool_call_arguments():
    plain = [assistant_message("hi")]
    with_call = [assistant_message("hi", [_call("1")])]
    assert estimate_messages_tokens(with_call) > estimate_messages_tokens(plain)


def test_needs_summarization_threshold():
    messages = [user_message("x" * 400)]
    assert needs_summarization(messages, token_threshold=50)
    assert not needs_summarization(messages, token_threshold=100)


def test_cutoff_never_splits_a_tool_call_from_its_results():
    messages = [
        user_message("start"),
        assistant_message(None, [_call("1"), _call("2")]),
        tool_message("1", "r1"),
        tool_message("2", "r2"),
        user_message("next"),
    ]
    # a cut on a tool result moves past it into the next turn
    assert find_safe_cutoff(messages, keep_messages=2) == 4
    assert find_safe_cutoff(messages, keep_messages=4) == 1
    assert find_safe_cutoff(messages, keep_messages=10) == 0


class TestSummarizeIfNeeded:
    @pytest.mark.asyncio
    async def test_below_threshold_is_untouched(self, make_model):
        model = make_model("unused summary")
        messages = long_history(2)

        result = await summarize_if_needed(messages, model, token_threshold=10_000, keep_messages=2)

        assert not result.summarized
        assert result.messages is messages
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_older_messages_are_replaced_by_summary(self, make_model):
        model = make_model("User asked ten questions; all answered.")
        messages = long_history(10)

        result = await summarize_if_needed(messages, model, token_threshold=500, keep_messages=4)

        assert result.summarized
        assert len(result.messages) <= 4 + 1
        summary = result.messages[0]
        assert summary["role"] == "user"
        assert summary["content"].startswith(SUMMARY_PREFIX)
        assert "User asked ten questions" in summary["content"]
        assert result.messages[1:] == messages[-4:]
        assert result.tokens_after < result.tokens_before

        request = model.calls[0]["messages"]
        assert request[0] == {"role": "system", "content": SUMMARIZATION_PROMPT}
        assert "question 0" in request[1]["content"]

    @pytest.mark.asyncio
    async def test_tool_pairs_stay_together(self, make_model):
        model = make_model("summary")
        messages = long_history(5) + [
            assistant_message(None, [_call("c1")]),
            tool_message("c1", "result " + "r" * 200),
            assistant_message("final " + "f" * 200),
        ]
        keep = 2

        # keeping two entries would start the kept tail with a tool result
        result = await summarize_if_needed(messages, model, token_threshold=200, keep_messages=keep)

        assert result.summarized
        assert len(result.messages) <= keep + 1
        kept = result.messages[1:]
        assert kept == messages[-1:]
        assert "result rrr" in model.calls[0]["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_trailing_tool_results_are_summarized_with_their_call(self, make_model):
        model = make_model("summary")
        messages = [user_message(f"question {i} " + "q" * 200) for i in range(5)] + [
            assistant_message(None, [_call("c1"), _call("c2"), _call("c3")]),
            tool_message("c1", "r1"),
            tool_message("c2", "r2"),
            tool_message("c3", "r3"),
        ]
        keep = 2

        result = await summarize_if_needed(messages, model, token_threshold=100, keep_messages=keep)

        assert result.summarized
        assert len(result.messages) <= keep + 1
        assert all(m["role"] != "tool" for m in result.messages)
        assert result.messages[0]["content"].startswith(SUMMARY_PREFIX)

    @pytest.mark.asyncio
    async def test_model_failure_falls_back_to_original(self, make_model):
        model = make_model(RuntimeError("provider down"))
        messages = long_history(10)

        result = await summarize_if_needed(messages, model, token_threshold=500, keep_messages=4)

        assert not result.summarized
        assert result.messages == messages

    @pytest.mark.asyncio
    async def test_empty_summary_falls_back_to_original(self, make_model):
        model = make_model("   ")
        messages = long_history(10)

        result = await summarize_if_needed(messages, model, token_threshold=500, keep_messages=4)

        assert not result.summarized
