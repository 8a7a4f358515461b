"""ToolExecutor tests"""

import json

import pytest

from deepagent.exceptions import BackendError
from deepagent.runtime import ToolExecutor
from deepagent.tools import tool


@tool
def add(a: int, b: int) -> int:
    """Add two numbers."""
    return a + b


@tool
async def whoami(context) -> str:
    """Report the calling run."""
    return context.run_id


@tool(name="explode")
def boom() -> str:
    raise RuntimeError("boom")


@tool(name="disk_failure")
def disk_failure() -> str:
    raise BackendError("disk unavailable")


def _tool_call(name: str, args, call_id: str = "call_1") -> dict:
    arguments = args if isinstance(args, str) else json.dumps(args)
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


class TestToolExecutor:
    @pytest.fixture
    def executor(self):
        return ToolExecutor([add, whoami, boom, disk_failure])

    @pytest.mark.asyncio
    async def test_successful_call(self, executor, context):
        result = await executor.execute(_tool_call("add", {"a": 1, "b": 2}), context)

        assert result.is_success
        assert result.content == "3"
        assert result.output == 3
        assert result.tool_call_id == "call_1"
        assert result.input_args == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_context_is_injected(self, executor, context):
        result = await executor.execute(_tool_call("whoami", {}), context)
        assert result.content == "test_run"
        assert "context" not in whoami.get_parameters().get("properties", {})

    @pytest.mark.asyncio
    async def test_unknown_tool(self, executor, context):
        result = await executor.execute(_tool_call("nope", {}), context)

        assert not result.is_success
        assert result.content == "Error: Tool nope not found"

    @pytest.mark.asyncio
    async def test_invalid_json_arguments(self, executor, context):
        result = await executor.execute(_tool_call("add", "{not json"), context)

        assert not result.is_success
        assert result.content.startswith("Error: Invalid JSON arguments")

    @pytest.mark.asyncio
    async def test_invalid_argument_types(self, executor, context):
        result = await executor.execute(_tool_call("add", {"a": "one", "b": 2}), context)

        assert not result.is_success
        assert result.content.startswith("Error: Invalid arguments")

    @pytest.mark.asyncio
    async def test_tool_exception_becomes_error_result(self, executor, context):
        result = await executor.execute(_tool_call("explode", {}), context)

        assert not result.is_success
        assert result.content == "Error: Tool execution failed: boom"

    @pytest.mark.asyncio
    async def test_backend_error_propagates(self, executor, context):
        with pytest.raises(BackendError):
            await executor.execute(_tool_call("disk_failure", {}), context)

    @pytest.mark.asyncio
    async def test_preparsed_arguments_win(self, executor, context):
        result = await executor.execute(_tool_call("add", {"a": 1, "b": 1}), context, args={"a": 5, "b": 5})
        assert result.content == "10"
