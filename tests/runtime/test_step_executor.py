"""StepExecutor loop tests"""

import pytest

from deepagent.backends import StateBackend
from deepagent.checkpoint import MemorySaver
from deepagent.domain import (
    ApprovalRequestedEvent,
    ApprovalResponseEvent,
    CheckpointSavedEvent,
    InterruptData,
    PendingToolCall,
    ResumeDecision,
    StepFinishEvent,
    StepStartEvent,
    TextEvent,
    ToolCallEvent,
    ToolResultEvent,
    user_message,
)
from deepagent.runtime import AbortSignal, StepExecutor, ToolContext, apply_interrupt_config, has_tool_call
from deepagent.runtime.executor import DENIED_MESSAGE
from deepagent.tools import ReadFileTool, tool


@tool
def add(a: int, b: int) -> int:
    """Add two numbers."""
    return a + b


class Launcher:
    """Records launches; exposed to the model as a gated tool."""

    def __init__(self):
        self.launched: list[str] = []

        @tool(name="launch")
        def launch(target: str) -> str:
            """Launch something irreversible."""
            self.launched.append(target)
            return f"launched {target}"

        self.tool = launch


class TestStepLoop:
    @pytest.mark.asyncio
    async def test_single_text_step(self, make_model, context, sink):
        model = make_model("Hello there")
        executor = StepExecutor(model, [add], system_prompt="Be brief.")
        messages = [user_message("hi")]

        result = await executor.run(messages, context, max_steps=5)

        assert result.stop_reason == "completed"
        assert result.text == "Hello there"
        assert result.steps_run == 1
        assert messages[-1] == {"role": "assistant", "content": "Hello there"}
        assert [type(e) for e in sink.events] == [StepStartEvent, TextEvent, StepFinishEvent]
        assert sink.events[-1].usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}

    @pytest.mark.asyncio
    async def test_system_prompt_is_sent_but_not_stored(self, make_model, context):
        model = make_model("ok")
        executor = StepExecutor(
            model,
            [add],
            system_prompt="Be brief.",
            system_provider_options={"anthropic": {"cacheControl": {"type": "ephemeral"}}},
        )
        messages = [user_message("hi")]

        await executor.run(messages, context, max_steps=1)

        sent = model.calls[0]["messages"]
        assert sent[0]["role"] == "system"
        assert sent[0]["content"] == "Be brief."
        assert sent[0]["provider_options"] == {"anthropic": {"cacheControl": {"type": "ephemeral"}}}
        assert messages[0] == user_message("hi")
        assert [t["function"]["name"] for t in model.calls[0]["tools"]] == ["add"]

    @pytest.mark.asyncio
    async def test_tool_loop(self, make_model, context, sink):
        model = make_model({"tool_calls": [("add", {"a": 2, "b": 3})]}, "The answer is 5")
        executor = StepExecutor(model, [add])
        messages = [user_message("what is 2+3?")]

        result = await executor.run(messages, context, max_steps=5)

        assert result.stop_reason == "completed"
        assert result.steps_run == 2
        assert result.text == "The answer is 5"
        assert [m["role"] for m in messages] == ["user", "assistant", "tool", "assistant"]
        assert messages[1]["tool_calls"][0]["id"] == "call_1_0"
        assert messages[2] == {"role": "tool", "tool_call_id": "call_1_0", "name": "add", "content": "5"}

        tool_events = sink.of_type(ToolCallEvent) + sink.of_type(ToolResultEvent)
        assert [type(e) for e in tool_events] == [ToolCallEvent, ToolResultEvent]
        first_step = sink.of_type(StepFinishEvent)[0]
        assert first_step.tool_calls[0].result == "5"
        # the second request carries the tool result
        assert model.calls[1]["messages"][-1]["content"] == "5"

    @pytest.mark.asyncio
    async def test_max_steps(self, make_model, context):
        model = make_model(*[{"tool_calls": [("add", {"a": 1, "b": 1})]} for _ in range(5)])
        executor = StepExecutor(model, [add])
        messages = [user_message("loop")]

        result = await executor.run(messages, context, max_steps=2)

        assert result.stop_reason == "max_steps"
        assert result.steps_run == 2
        assert messages[-1]["role"] == "tool"
        assert model.remaining_turns == 3

    @pytest.mark.asyncio
    async def test_start_step_continues_numbering(self, make_model, context, sink):
        executor = StepExecutor(make_model("ok"), [add])
        result = await executor.run([user_message("hi")], context, max_steps=3, start_step=4)

        assert result.step == 5
        assert sink.of_type(StepStartEvent)[0].step_number == 5

    @pytest.mark.asyncio
    async def test_stop_condition(self, make_model, context):
        model = make_model({"tool_calls": [("add", {"a": 1, "b": 1})]}, "unreached")
        executor = StepExecutor(model, [add], stop_when=[has_tool_call("add")])

        result = await executor.run([user_message("go")], context, max_steps=5)

        assert result.stop_reason == "stop_condition"
        assert result.steps_run == 1

    @pytest.mark.asyncio
    async def test_invalid_tool_arguments_reach_the_model(self, make_model, context, sink):
        model = make_model({"tool_calls": [("add", "{oops")]}, "sorry")
        executor = StepExecutor(model, [add])
        messages = [user_message("go")]

        await executor.run(messages, context, max_steps=5)

        assert messages[2]["content"].startswith("Error: Invalid JSON arguments")
        assert sink.of_type(ToolCallEvent)[0].args == {}

    @pytest.mark.asyncio
    async def test_model_failure_propagates(self, make_model, context):
        executor = StepExecutor(make_model(RuntimeError("provider down")), [add])
        with pytest.raises(RuntimeError, match="provider down"):
            await executor.run([user_message("go")], context, max_steps=5)


class TestAbort:
    @pytest.mark.asyncio
    async def test_aborted_before_first_step(self, make_model, state, sink):
        signal = AbortSignal()
        signal.abort("stop")
        context = ToolContext(state=state, backend=StateBackend(state), run_id="r", wire=sink, abort_signal=signal)
        model = make_model("never")

        result = await StepExecutor(model, [add]).run([user_message("go")], context, max_steps=5)

        assert result.stop_reason == "aborted"
        assert result.steps_run == 0
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_remaining_calls_are_cancelled(self, make_model, state, sink):
        signal = AbortSignal()

        @tool(name="stop_everything")
        def stop_everything() -> str:
            signal.abort("user pressed stop")
            return "stopping"

        context = ToolContext(state=state, backend=StateBackend(state), run_id="r", wire=sink, abort_signal=signal)
        model = make_model({"tool_calls": [("stop_everything", {}), ("add", {"a": 1, "b": 2})]})
        messages = [user_message("go")]

        result = await StepExecutor(model, [add, stop_everything]).run(messages, context, max_steps=5)

        assert result.stop_reason == "aborted"
        assert [m["role"] for m in messages] == ["user", "assistant", "tool", "tool"]
        assert messages[2]["content"] == "stopping"
        assert "was cancelled" in messages[3]["content"]
        assert messages[3]["tool_call_id"] == "call_1_1"


class TestApprovalGating:
    @pytest.fixture
    def launcher(self):
        return Launcher()

    def _executor(self, model, launcher):
        tools = [launcher.tool, add]
        return StepExecutor(model, tools, approval_policy=apply_interrupt_config(tools, {"launch": True}))

    @pytest.mark.asyncio
    async def test_callback_denies(self, make_model, launcher, state, sink):
        requests = []

        def decide(request):
            requests.append(request)
            return False

        context = ToolContext(
            state=state, backend=StateBackend(state), run_id="r", wire=sink, on_approval_request=decide
        )
        model = make_model({"tool_calls": [("launch", {"target": "rocket"})]}, "ok")
        messages = [user_message("launch it")]

        await self._executor(model, launcher).run(messages, context, max_steps=5)

        assert launcher.launched == []
        assert messages[2]["content"] == DENIED_MESSAGE
        assert requests[0].tool_name == "launch"
        assert requests[0].args == {"target": "rocket"}
        requested = sink.of_type(ApprovalRequestedEvent)[0]
        response = sink.of_type(ApprovalResponseEvent)[0]
        assert requested.approval_id == response.approval_id
        assert not response.approved

    @pytest.mark.asyncio
    async def test_async_callback_approves(self, make_model, launcher, state, sink):
        async def approve(request):
            return True

        context = ToolContext(
            state=state, backend=StateBackend(state), run_id="r", wire=sink, on_approval_request=approve
        )
        model = make_model({"tool_calls": [("launch", {"target": "rocket"})]}, "ok")

        await self._executor(model, launcher).run([user_message("go")], context, max_steps=5)

        assert launcher.launched == ["rocket"]

    @pytest.mark.asyncio
    async def test_no_callback_and_no_checkpointer_denies(self, make_model, launcher, context):
        model = make_model({"tool_calls": [("launch", {"target": "rocket"})]}, "ok")
        messages = [user_message("go")]

        result = await self._executor(model, launcher).run(messages, context, max_steps=5)

        assert launcher.launched == []
        assert messages[2]["content"] == DENIED_MESSAGE
        assert result.interrupt is None

    @pytest.mark.asyncio
    async def test_interrupt_with_checkpointer(self, make_model, launcher, context, sink):
        saver = MemorySaver()
        model = make_model({"tool_calls": [("launch", {"target": "rocket"}), ("add", {"a": 1, "b": 1})]})
        messages = [user_message("go")]

        result = await self._executor(model, launcher).run(
            messages, context, max_steps=5, checkpointer=saver, thread_id="t1"
        )

        assert result.stop_reason == "interrupted"
        assert result.interrupt.tool_call.tool_name == "launch"
        assert result.interrupt.tool_call.args == {"target": "rocket"}
        assert result.interrupt.step == 1
        assert launcher.launched == []
        # the held call has no result yet; later calls are cancelled
        assert [m.get("tool_call_id") for m in messages[2:]] == ["call_1_1"]
        assert "was cancelled" in messages[2]["content"]
        assert len(sink.of_type(ApprovalRequestedEvent)) == 1

        saved = await saver.load("t1")
        assert saved.interrupt == result.interrupt
        assert saved.messages == messages

    @pytest.mark.asyncio
    async def test_resume_approve_with_modified_args(self, make_model, launcher, context):
        executor = self._executor(make_model(), launcher)
        interrupt = InterruptData(
            tool_call=PendingToolCall(tool_call_id="call_9", tool_name="launch", args={"target": "rocket"}),
            step=1,
        )
        messages: list[dict] = []

        record = await executor.resume_tool_call(
            interrupt, ResumeDecision(type="approve", modified_args={"target": "balloon"}), messages, context
        )

        assert launcher.launched == ["balloon"]
        assert record.result == "launched balloon"
        assert messages == [{"role": "tool", "tool_call_id": "call_9", "name": "launch", "content": "launched balloon"}]

    @pytest.mark.asyncio
    async def test_resume_deny(self, make_model, launcher, context):
        executor = self._executor(make_model(), launcher)
        interrupt = InterruptData(
            tool_call=PendingToolCall(tool_call_id="call_9", tool_name="launch", args={"target": "rocket"}),
            step=1,
        )
        messages: list[dict] = []

        record = await executor.resume_tool_call(interrupt, ResumeDecision(type="deny"), messages, context)

        assert launcher.launched == []
        assert not record.is_success
        assert messages[0]["content"] == DENIED_MESSAGE


class TestCheckpointingAndEviction:
    @pytest.mark.asyncio
    async def test_checkpoint_after_every_step(self, make_model, context, sink):
        saver = MemorySaver()
        model = make_model({"tool_calls": [("add", {"a": 1, "b": 1})]}, "two")

        await StepExecutor(model, [add]).run(
            [user_message("go")], context, max_steps=5, checkpointer=saver, thread_id="t1"
        )

        assert [e.step for e in sink.of_type(CheckpointSavedEvent)] == [1, 2]
        saved = await saver.load("t1")
        assert saved.step == 2
        assert saved.interrupt is None
        assert saved.messages[-1]["content"] == "two"

    @pytest.mark.asyncio
    async def test_failed_save_does_not_stop_the_run(self, make_model, context, sink):
        class BrokenSaver(MemorySaver):
            async def save(self, checkpoint):
                raise OSError("disk full")

        result = await StepExecutor(make_model("fine"), [add]).run(
            [user_message("go")], context, max_steps=5, checkpointer=BrokenSaver(), thread_id="t1"
        )

        assert result.stop_reason == "completed"
        assert sink.of_type(CheckpointSavedEvent) == []

    @pytest.mark.asyncio
    async def test_large_results_are_evicted(self, make_model, context, state):
        @tool(name="dump")
        def dump() -> str:
            return "z" * 400

        model = make_model({"tool_calls": [("dump", {}, "call_big")]}, "done")
        messages = [user_message("go")]

        await StepExecutor(model, [dump], eviction_limit=20).run(messages, context, max_steps=5)

        assert messages[2]["content"].startswith("Tool result too large (~100 tokens)")
        assert state.files["/large_tool_results/dump_call_big.txt"].text() == "z" * 400

    @pytest.mark.asyncio
    async def test_read_file_results_are_never_evicted(self, make_model, context, state):
        await context.backend.write("/big.txt", "w" * 400)
        model = make_model({"tool_calls": [("read_file", {"file_path": "/big.txt"})]}, "done")
        messages = [user_message("go")]

        await StepExecutor(model, [ReadFileTool()], eviction_limit=20).run(messages, context, max_steps=5)

        assert messages[2]["content"] == "     1\t" + "w" * 400
        assert list(state.files) == ["/big.txt"]


def test_executor_module_exports_only_its_own_names():
    import deepagent.runtime.executor as executor_module

    assert "ToolCallAccumulator" not in executor_module.__all__
    assert {"DENIED_MESSAGE", "StepExecutor", "StepLoopResult", "denied_result"} <= set(executor_module.__all__)
