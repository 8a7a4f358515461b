"""DeepAgent end-to-end tests with a scripted model"""

import asyncio
import warnings

import pytest

from deepagent import (
    AbortSignal,
    AgentRunError,
    AgentState,
    DeepAgent,
    ExecutionConfig,
    LocalSandbox,
    MemorySaver,
    StateBackend,
    SubAgent,
    tool,
)
from deepagent.agent import PROMPT_CACHE_OPTIONS
from deepagent.domain import (
    ApprovalRequestedEvent,
    CheckpointLoadedEvent,
    DoneEvent,
    ErrorEvent,
    StepStartEvent,
    SubagentStartEvent,
    user_message,
)
from deepagent.runtime.executor import DENIED_MESSAGE


def _tool_names(call: dict) -> list[str]:
    return [t["function"]["name"] for t in call["tools"] or []]


async def _collect(stream) -> list:
    return [event async for event in stream]


class TestInvocation:
    @pytest.mark.asyncio
    async def test_creates_file_and_ends_with_done(self, make_model):
        model = make_model(
            {"tool_calls": [("write_file", {"file_path": "/a.txt", "content": "hi"})]},
            "Created /a.txt",
        )
        agent = DeepAgent(model=model)
        state = AgentState()

        events = await _collect(agent.stream_with_events("create file /a.txt with 'hi'", state=state))

        done = events[-1]
        assert isinstance(done, DoneEvent)
        assert done.text == "Created /a.txt"
        assert "hi" in state.files["/a.txt"].content
        assert done.state is state
        assert isinstance(events[0], StepStartEvent)
        assert len({e.run_id for e in events}) == 1

    @pytest.mark.asyncio
    async def test_generate_returns_output(self, make_model):
        agent = DeepAgent(model=make_model("Hello!"), system_prompt="You are terse.")

        output = await agent.generate("hi")

        assert output.text == "Hello!"
        assert output.interrupt is None
        assert output.messages == [user_message("hi"), {"role": "assistant", "content": "Hello!"}]

        system = agent.model.calls[0]["messages"][0]
        assert system["role"] == "system"
        assert system["content"].startswith("You are terse.")
        assert "provider_options" not in system

    @pytest.mark.asyncio
    async def test_builtin_tools(self, make_model):
        model = make_model("ok")
        await DeepAgent(model=model).generate("hi")

        assert _tool_names(model.calls[0]) == [
            "write_todos",
            "ls",
            "read_file",
            "write_file",
            "edit_file",
            "glob",
            "grep",
            "task",
        ]

    @pytest.mark.asyncio
    async def test_optional_tools(self, make_model, tmp_path):
        model = make_model("ok")
        agent = DeepAgent(
            model=model,
            backend=LocalSandbox(cwd=tmp_path),
            config=ExecutionConfig(enable_web_tools=True, include_general_purpose_agent=False),
        )

        await agent.generate("hi")

        names = _tool_names(model.calls[0])
        assert "execute" in names
        assert {"web_search", "http_request", "fetch_url"} <= set(names)
        assert "task" not in names

    @pytest.mark.asyncio
    async def test_user_tool_replaces_builtin(self, make_model):
        @tool(name="write_file")
        def write_file(file_path: str, content: str) -> str:
            """Pretend to write."""
            return f"pretended to write {file_path}"

        model = make_model(
            {"tool_calls": [("write_file", {"file_path": "/x.txt", "content": "x"})]},
            "done",
        )
        output = await DeepAgent(model=model, tools=[write_file]).generate("write")

        names = _tool_names(model.calls[0])
        assert names.count("write_file") == 1
        assert output.state.files == {}
        assert model.calls[1]["messages"][-1]["content"] == "pretended to write /x.txt"

    @pytest.mark.asyncio
    async def test_prompt_caching_hint(self, make_model):
        model = make_model("ok")
        await DeepAgent(model=model, config=ExecutionConfig(enable_prompt_caching=True)).generate("hi")

        assert model.calls[0]["messages"][0]["provider_options"] == PROMPT_CACHE_OPTIONS

    @pytest.mark.asyncio
    async def test_backend_factory_receives_run_state(self, make_model):
        seen = []

        def factory(state):
            seen.append(state)
            return StateBackend(state)

        model = make_model({"tool_calls": [("write_file", {"file_path": "/f.md", "content": "x"})]}, "ok")
        state = AgentState()

        await DeepAgent(model=model, backend=factory).generate("go", state=state)

        assert seen == [state]
        assert "/f.md" in state.files

    @pytest.mark.asyncio
    async def test_subagent_events_reach_the_caller(self, make_model):
        model = make_model(
            {"tool_calls": [("task", {"description": "look into it", "subagent_type": "researcher"})]},
            "research result",
            "Summary of research",
        )
        researcher = SubAgent(name="researcher", description="Researches", system_prompt="Research.")
        agent = DeepAgent(model=model, subagents=[researcher])

        events = await _collect(agent.stream_with_events("research"))

        starts = [e for e in events if isinstance(e, SubagentStartEvent)]
        assert starts[0].subagent_type == "researcher"
        assert events[-1].text == "Summary of research"


class TestThreads:
    @pytest.mark.asyncio
    async def test_history_is_restored(self, make_model):
        model = make_model("Noted.", "You said 42.")
        agent = DeepAgent(model=model, checkpointer=MemorySaver())

        await agent.generate("Remember 42", thread_id="t1")
        events = await _collect(
            agent.stream_with_events(messages=[user_message("What number?")], thread_id="t1")
        )

        assert isinstance(events[0], CheckpointLoadedEvent)
        assert events[0].messages_count == 2
        assert model.calls[1]["messages"][1:] == [
            user_message("Remember 42"),
            {"role": "assistant", "content": "Noted."},
            user_message("What number?"),
        ]
        assert events[-1].text == "You said 42."

    @pytest.mark.asyncio
    async def test_restored_prefix_is_not_duplicated(self, make_model):
        model = make_model("Noted.", "ok")
        agent = DeepAgent(model=model, checkpointer=MemorySaver())

        first = await agent.generate("Remember 42", thread_id="t1")
        await agent.generate(messages=[*first.messages, user_message("next")], thread_id="t1")

        sent = model.calls[1]["messages"][1:]
        assert [m["content"] for m in sent] == ["Remember 42", "Noted.", "next"]

    @pytest.mark.asyncio
    async def test_state_is_restored(self, make_model):
        model = make_model({"tool_calls": [("write_file", {"file_path": "/kept.md", "content": "x"})]}, "ok", "ok")
        agent = DeepAgent(model=model, checkpointer=MemorySaver())

        await agent.generate("write", thread_id="t1")
        output = await agent.generate("again", thread_id="t1")

        assert "/kept.md" in output.state.files

    @pytest.mark.asyncio
    async def test_threads_are_isolated(self, make_model):
        model = make_model("one", "two")
        agent = DeepAgent(model=model, checkpointer=MemorySaver())

        await agent.generate("first", thread_id="a")
        await agent.generate("second", thread_id="b")

        assert [m["content"] for m in model.calls[1]["messages"][1:]] == ["second"]

    @pytest.mark.asyncio
    async def test_thread_with_checkpoint_runs_without_prompt(self, make_model):
        model = make_model("first", "continued")
        agent = DeepAgent(model=model, checkpointer=MemorySaver())

        await agent.generate("start", thread_id="t1")
        output = await agent.generate(thread_id="t1")

        assert output.text == "continued"


class TestApproval:
    @pytest.fixture
    def script(self):
        return (
            {"tool_calls": [("write_file", {"file_path": "/a.txt", "content": "hi"})]},
            "Finished.",
        )

    @pytest.mark.asyncio
    async def test_gated_tool_without_callback_is_denied(self, make_model, script):
        model = make_model(*script)
        agent = DeepAgent(model=model, interrupt_on={"write_file": True})

        output = await agent.generate("write it")

        assert output.state.files == {}
        assert output.interrupt is None
        assert model.calls[1]["messages"][-1]["content"] == DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_callback_decides(self, make_model, script):
        agent = DeepAgent(model=make_model(*script), interrupt_on={"write_file": True})
        requests = []

        async def approve(request):
            requests.append(request)
            return True

        events = await _collect(agent.stream_with_events("write it", on_approval_request=approve))

        assert requests[0].args == {"file_path": "/a.txt", "content": "hi"}
        assert any(isinstance(e, ApprovalRequestedEvent) for e in events)
        assert "/a.txt" in events[-1].state.files

    @pytest.mark.asyncio
    async def test_interrupt_then_approve(self, make_model, script):
        model = make_model(*script)
        saver = MemorySaver()
        agent = DeepAgent(model=model, checkpointer=saver, interrupt_on={"write_file": True})

        paused = await agent.generate("write it", thread_id="t1")

        assert paused.interrupt is not None
        assert paused.interrupt.tool_call.tool_name == "write_file"
        assert paused.state.files == {}
        assert (await saver.load("t1")).interrupt is not None

        resumed = await agent.generate(thread_id="t1", resume={"decisions": [{"type": "approve"}]})

        assert resumed.text == "Finished."
        assert resumed.interrupt is None
        assert resumed.state.files["/a.txt"].content == ["hi"]
        assert model.calls[1]["messages"][-1]["content"] == "Successfully wrote to '/a.txt'"
        assert (await saver.load("t1")).interrupt is None

    @pytest.mark.asyncio
    async def test_interrupt_then_deny(self, make_model, script):
        model = make_model(*script)
        agent = DeepAgent(model=model, checkpointer=MemorySaver(), interrupt_on={"write_file": True})

        await agent.generate("write it", thread_id="t1")
        resumed = await agent.generate(thread_id="t1", resume={"decisions": [{"type": "deny"}]})

        assert resumed.state.files == {}
        assert model.calls[1]["messages"][-1]["content"] == DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_resume_without_pending_interrupt(self, make_model):
        agent = DeepAgent(model=make_model("hi"), checkpointer=MemorySaver())
        await agent.generate("hello", thread_id="t1")

        with pytest.raises(AgentRunError) as exc_info:
            await agent.generate(thread_id="t1", resume={"decisions": [{"type": "approve"}]})

        assert exc_info.value.error_type == "ConfigurationError"
        assert "No pending interrupt" in str(exc_info.value)


class TestRunControl:
    @pytest.mark.asyncio
    async def test_abort_before_start(self, make_model):
        model = make_model("never")
        signal = AbortSignal()
        signal.abort("user cancelled")

        output = await DeepAgent(model=model).generate("hi", abort_signal=signal)

        assert output.text == ""
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_closing_the_stream_cancels_the_run(self, make_model):
        model = make_model(*[{"tool_calls": [("ls", {})]} for _ in range(20)])
        agent = DeepAgent(model=model, config=ExecutionConfig(max_steps=50))

        stream = agent.stream_with_events("loop forever")
        first = await stream.__anext__()
        await stream.aclose()
        await asyncio.sleep(0)

        assert isinstance(first, StepStartEvent)
        assert model.remaining_turns > 15

    @pytest.mark.asyncio
    async def test_max_steps_override(self, make_model):
        model = make_model(*[{"tool_calls": [("ls", {})]} for _ in range(5)])

        await DeepAgent(model=model).generate("loop", max_steps=2)

        assert len(model.calls) == 2


class TestInputs:
    @pytest.mark.asyncio
    async def test_empty_messages_is_a_noop(self, make_model):
        model = make_model("unused")

        events = await _collect(DeepAgent(model=model).stream_with_events(messages=[]))

        assert len(events) == 1
        assert isinstance(events[0], DoneEvent)
        assert events[0].text == ""
        assert model.calls == []

    @pytest.mark.asyncio
    async def test_messages_win_over_prompt(self, make_model):
        model = make_model("ok")

        with pytest.warns(DeprecationWarning):
            await DeepAgent(model=model).generate("ignored", messages=[user_message("used")])

        assert [m["content"] for m in model.calls[0]["messages"][1:]] == ["used"]

    @pytest.mark.asyncio
    async def test_prompt_with_empty_messages(self, make_model):
        model = make_model("ok")

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            await DeepAgent(model=model).generate("hello", messages=[])

        assert not [w for w in caught if "prompt is ignored" in str(w.message)]
        assert model.calls[0]["messages"][1:] == [user_message("hello")]


class TestErrors:
    @pytest.mark.asyncio
    async def test_nothing_to_run(self, make_model):
        events = await _collect(DeepAgent(model=make_model()).stream_with_events())

        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)
        assert events[0].error_type == "ConfigurationError"

    @pytest.mark.asyncio
    async def test_invalid_max_steps(self, make_model):
        with pytest.raises(AgentRunError, match="max_steps must be at least 1"):
            await DeepAgent(model=make_model()).generate("hi", max_steps=0)

    @pytest.mark.asyncio
    async def test_resume_requires_checkpointer(self, make_model):
        with pytest.raises(AgentRunError, match="resume requires"):
            await DeepAgent(model=make_model()).generate(
                thread_id="t1", resume={"decisions": [{"type": "approve"}]}
            )

    @pytest.mark.asyncio
    async def test_model_failure_ends_with_error_event(self, make_model):
        agent = DeepAgent(model=make_model(RuntimeError("provider down")))

        events = await _collect(agent.stream_with_events("hi"))

        assert isinstance(events[-1], ErrorEvent)
        assert events[-1].message == "provider down"

        with pytest.raises(AgentRunError) as exc_info:
            await DeepAgent(model=make_model(RuntimeError("provider down"))).generate("hi")
        assert exc_info.value.error_type == "RuntimeError"
