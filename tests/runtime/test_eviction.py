"""Tool result eviction tests"""

import pytest

from deepagent.backends import StateBackend
from deepagent.domain import AgentState
from deepagent.runtime.eviction import estimate_tokens, evict_tool_result, sanitize_tool_call_id


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_sanitize_tool_call_id():
    assert sanitize_tool_call_id("call/1:x") == "call_1_x"
    assert len(sanitize_tool_call_id("x" * 300)) == 100


class TestEvictToolResult:
    @pytest.fixture
    def state(self):
        return AgentState()

    @pytest.fixture
    def backend(self, state):
        return StateBackend(state)

    @pytest.mark.asyncio
    async def test_small_result_is_kept(self, backend, state):
        result = await evict_tool_result("short", "call_1", "grep", backend, token_limit=50)

        assert not result.evicted
        assert result.content == "short"
        assert state.files == {}

    @pytest.mark.asyncio
    async def test_large_result_is_offloaded(self, backend, state):
        big = "x" * 400

        result = await evict_tool_result(big, "call_1", "grep", backend, token_limit=50)

        assert result.evicted
        assert result.evicted_path == "/large_tool_results/grep_call_1.txt"
        assert result.content == (
            "Tool result too large (~100 tokens). Content saved to /large_tool_results/grep_call_1.txt. "
            "Use read_file to access the full content."
        )
        assert state.files["/large_tool_results/grep_call_1.txt"].text() == big

    @pytest.mark.asyncio
    async def test_failed_write_keeps_original(self, backend):
        await backend.write("/large_tool_results/grep_call_1.txt", "taken")
        big = "y" * 400

        result = await evict_tool_result(big, "call_1", "grep", backend, token_limit=50)

        assert not result.evicted
        assert result.content == big
