"""
DeepAgent - Top-level agent class.

This is the main entry point for creating and running agents.

Wire-based Architecture:
- stream_with_events() creates a Wire and runs the invocation in a task
- Every event (including tool and subagent events) is written to the wire
- The caller pulls events lazily; closing the generator cancels the run
"""

import asyncio
import warnings
from typing import Any, AsyncIterator
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from deepagent.backends.protocol import BackendProtocol, is_sandbox_backend
from deepagent.backends.state import StateBackend
from deepagent.checkpoint.base import BaseCheckpointSaver
from deepagent.config import ExecutionConfig, SummarizationConfig
from deepagent.domain import (
    AgentState,
    Checkpoint,
    CheckpointLoadedEvent,
    DoneEvent,
    ErrorEvent,
    Event,
    InterruptData,
    ResumeOptions,
    user_message,
)
from deepagent.exceptions import AgentRunError, ConfigurationError
from deepagent.llm.base import Model
from deepagent.prompts import build_system_prompt
from deepagent.runtime.approval import ApprovalCallback, InterruptOnConfig, apply_interrupt_config
from deepagent.runtime.context import BackendFactory, ToolContext
from deepagent.runtime.control import AbortSignal
from deepagent.runtime.executor import StepExecutor
from deepagent.runtime.patch import patch_tool_calls
from deepagent.runtime.stop import StopCondition
from deepagent.runtime.summarization import summarize_if_needed
from deepagent.runtime.wire import Wire
from deepagent.tools.base import BaseTool
from deepagent.tools.execute import ExecuteTool
from deepagent.tools.filesystem import create_filesystem_tools
from deepagent.tools.subagent import SubAgent, TaskTool
from deepagent.tools.todos import WriteTodosTool
from deepagent.tools.web import create_web_tools
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

# Provider hint attached to the system message when prompt caching is on
PROMPT_CACHE_OPTIONS = {"anthropic": {"cacheControl": {"type": "ephemeral"}}}


class RunOutput(BaseModel):
    """Result of DeepAgent.generate()."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    text: str = ""
    state: AgentState
    messages: list[dict[str, Any]] = Field(default_factory=list)
    interrupt: InterruptData | None = None


class DeepAgent:
    """
    Agent Configuration Container.

    Holds the model, tools, backend, checkpointer and knobs. Each call to
    ``stream_with_events`` is one invocation: it restores the thread (when
    ``thread_id`` is given), runs the step loop and ends with ``done`` or
    ``error``.

    Usage:
        agent = DeepAgent(model=OpenAIModel(), checkpointer=MemorySaver())

        async for event in agent.stream_with_events("Write /notes.md", thread_id="t1"):
            print(event.type)
    """

    def __init__(
        self,
        model: Model,
        tools: list[BaseTool] | None = None,
        system_prompt: str | None = None,
        *,
        subagents: list[SubAgent] | None = None,
        backend: BackendProtocol | BackendFactory | None = None,
        checkpointer: BaseCheckpointSaver | None = None,
        interrupt_on: InterruptOnConfig | None = None,
        stop_when: list[StopCondition] | None = None,
        summarization: SummarizationConfig | None = None,
        config: ExecutionConfig | None = None,
        http_client: Any = None,
        name: str = "deepagent",
    ):
        self.model = model
        self.tools: list[BaseTool] = tools or []
        self.system_prompt = system_prompt
        self.subagents = subagents or []
        self.backend = backend
        self.checkpointer = checkpointer
        self.interrupt_on = interrupt_on
        self.stop_when = stop_when or []
        self.summarization = summarization
        self.config = config or ExecutionConfig()
        self.http_client = http_client
        self.name = name

    @property
    def id(self) -> str:
        return self.name

    def _resolve_backend(self, state: AgentState) -> BackendProtocol:
        if self.backend is None:
            return StateBackend(state)
        if isinstance(self.backend, BackendProtocol):
            return self.backend
        return self.backend(state)

    def _backend_factory(self) -> BackendFactory | None:
        if self.backend is None or isinstance(self.backend, BackendProtocol):
            return None
        return self.backend

    def _build_tools(self, backend: BackendProtocol) -> list[BaseTool]:
        """
        Built-in tools, then user tools (a user tool replaces a built-in of
        the same name), then ``task`` when any subagent is available.
        """
        builtin: list[BaseTool] = [WriteTodosTool(), *create_filesystem_tools()]
        if is_sandbox_backend(backend):
            builtin.append(ExecuteTool())
        if self.config.enable_web_tools:
            builtin.extend(create_web_tools(client=self.http_client))

        user_names = {t.name for t in self.tools}
        tools = [t for t in builtin if t.name not in user_names] + list(self.tools)

        if self.subagents or self.config.include_general_purpose_agent:
            tools.append(
                TaskTool(
                    model=self.model,
                    default_tools=list(tools),
                    subagents=self.subagents,
                    include_general_purpose_agent=self.config.include_general_purpose_agent,
                    default_interrupt_on=self.interrupt_on,
                    backend_factory=self._backend_factory(),
                    max_steps=self.config.subagent_max_steps,
                    max_depth=self.config.max_delegation_depth,
                    forward_steps=self.config.forward_subagent_steps,
                    eviction_limit=self.config.tool_result_eviction_limit,
                )
            )
        return tools

    def _create_executor(self, tools: list[BaseTool], backend: BackendProtocol) -> StepExecutor:
        system_prompt = build_system_prompt(
            self.system_prompt,
            has_subagents=any(t.name == "task" for t in tools),
            has_execute=is_sandbox_backend(backend),
        )
        return StepExecutor(
            model=self.model,
            tools=tools,
            system_prompt=system_prompt,
            system_provider_options=PROMPT_CACHE_OPTIONS if self.config.enable_prompt_caching else None,
            approval_policy=apply_interrupt_config(tools, self.interrupt_on),
            stop_when=self.stop_when,
            eviction_limit=self.config.tool_result_eviction_limit,
        )

    async def stream_with_events(
        self,
        prompt: str | None = None,
        *,
        messages: list[dict] | None = None,
        state: AgentState | None = None,
        thread_id: str | None = None,
        resume: ResumeOptions | dict | None = None,
        max_steps: int | None = None,
        abort_signal: AbortSignal | None = None,
        on_approval_request: ApprovalCallback | None = None,
    ) -> AsyncIterator[Event]:
        """
        Run one invocation and yield its events.

        Args:
            prompt: New user turn
            messages: Explicit history (wins over ``prompt``; ``[]`` means
                explicitly empty, not absent)
            state: State object to run against; mutated in place
            thread_id: Thread to restore from and checkpoint into
            resume: Decision for the tool call a previous run interrupted on
            max_steps: Overrides ``config.max_steps`` for this invocation
            abort_signal: Cooperative cancellation
            on_approval_request: Decides gated tool calls inline

        Yields:
            Events in order; the last one is ``done`` or ``error``.
        """
        run_id = f"run_{uuid4().hex[:12]}"
        wire = Wire(maxsize=self.config.event_queue_size)

        async def _run():
            try:
                await self._run(
                    wire,
                    run_id,
                    prompt=prompt,
                    messages=messages,
                    state=state,
                    thread_id=thread_id,
                    resume=resume,
                    max_steps=max_steps,
                    abort_signal=abort_signal,
                    on_approval_request=on_approval_request,
                )
            finally:
                await wire.close()

        task = asyncio.create_task(_run())

        try:
            async for event in wire.read():
                yield event
            await task
        finally:
            if not task.done():
                wire.detach()
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    logger.info("agent_run_cancelled", run_id=run_id)

    async def generate(self, prompt: str | None = None, **kwargs) -> RunOutput:
        """
        Run one invocation to completion.

        Raises:
            AgentRunError: The invocation ended with an error event
        """
        output: RunOutput | None = None
        async for event in self.stream_with_events(prompt, **kwargs):
            if isinstance(event, ErrorEvent):
                raise AgentRunError(event.message, error_type=event.error_type)
            if isinstance(event, DoneEvent):
                output = RunOutput(
                    text=event.text,
                    state=event.state,
                    messages=event.messages,
                    interrupt=event.interrupt,
                )
        if output is None:
            raise AgentRunError("Run ended without a done event")
        return output

    async def _run(self, wire: Wire, run_id: str, **options) -> None:
        """Produce the invocation's events; always ends with done or error."""
        try:
            done = await self._execute(wire, run_id, **options)
        except ConfigurationError as e:
            logger.warning("agent_run_rejected", run_id=run_id, error=str(e))
            await wire.write(ErrorEvent(run_id=run_id, message=str(e), error_type=type(e).__name__))
            return
        except Exception as e:
            logger.error(
                "agent_run_failed",
                run_id=run_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await wire.write(ErrorEvent(run_id=run_id, message=str(e), error_type=type(e).__name__))
            return
        await wire.write(done)

    async def _execute(
        self,
        wire: Wire,
        run_id: str,
        *,
        prompt: str | None,
        messages: list[dict] | None,
        state: AgentState | None,
        thread_id: str | None,
        resume: ResumeOptions | dict | None,
        max_steps: int | None,
        abort_signal: AbortSignal | None,
        on_approval_request: ApprovalCallback | None,
    ) -> DoneEvent:
        max_steps = max_steps if max_steps is not None else self.config.max_steps
        if max_steps < 1:
            raise ConfigurationError(f"max_steps must be at least 1, got {max_steps}")
        if resume is not None:
            resume = ResumeOptions.model_validate(resume)
            if thread_id is None or self.checkpointer is None:
                raise ConfigurationError("resume requires a thread_id and a checkpointer")

        checkpoint = await self._load_checkpoint(thread_id)
        if prompt is None and messages is None and resume is None and checkpoint is None:
            raise ConfigurationError(
                "Nothing to run: provide a prompt, messages, resume, or a thread_id with a saved checkpoint"
            )
        if resume is not None and (checkpoint is None or checkpoint.interrupt is None):
            raise ConfigurationError(f"No pending interrupt to resume for thread '{thread_id}'")

        logger.info(
            "agent_run_started",
            run_id=run_id,
            agent=self.name,
            thread_id=thread_id,
            restored=checkpoint is not None,
            resume=resume is not None,
        )

        run_state = state if state is not None else AgentState()
        restored: list[dict] = []
        if checkpoint is not None:
            await wire.write(
                CheckpointLoadedEvent(
                    run_id=run_id,
                    thread_id=checkpoint.thread_id,
                    step=checkpoint.step,
                    messages_count=len(checkpoint.messages),
                )
            )
            run_state.restore(checkpoint.state)
            restored = list(checkpoint.messages)

        backend = self._resolve_backend(run_state)
        tools = self._build_tools(backend)
        executor = self._create_executor(tools, backend)
        context = ToolContext(
            state=run_state,
            backend=backend,
            run_id=run_id,
            wire=wire,
            abort_signal=abort_signal,
            on_approval_request=on_approval_request,
        )

        history = list(restored)
        if resume is not None:
            await executor.resume_tool_call(checkpoint.interrupt, resume.decisions[0], history, context)
            await executor.save_checkpoint(
                self.checkpointer, thread_id, checkpoint.step, history, context, None, checkpoint.created_at
            )

        if messages is not None and len(messages) == 0 and prompt is None and resume is None:
            logger.info("agent_run_noop", run_id=run_id)
            return DoneEvent(run_id=run_id, text="", state=run_state, messages=history)

        history.extend(self._new_turns(prompt, messages, restored))
        history = patch_tool_calls(history)

        if self.summarization is not None and self.summarization.enabled:
            summarized = await summarize_if_needed(
                history,
                model=self.summarization.model or self.model,
                token_threshold=self.summarization.token_threshold,
                keep_messages=self.summarization.keep_messages,
            )
            history = list(summarized.messages)

        result = await executor.run(
            history,
            context,
            max_steps=max_steps,
            start_step=checkpoint.step if checkpoint else 0,
            checkpointer=self.checkpointer if thread_id else None,
            thread_id=thread_id,
            created_at=checkpoint.created_at if checkpoint else None,
        )
        logger.info(
            "agent_run_completed",
            run_id=run_id,
            thread_id=thread_id,
            steps=result.steps_run,
            stop_reason=result.stop_reason,
            interrupted=result.interrupt is not None,
        )
        return DoneEvent(
            run_id=run_id,
            text=result.text,
            state=run_state,
            messages=result.messages,
            interrupt=result.interrupt,
        )

    async def _load_checkpoint(self, thread_id: str | None) -> Checkpoint | None:
        if thread_id is None or self.checkpointer is None:
            return None
        try:
            return await self.checkpointer.load(thread_id)
        except Exception as e:
            logger.warning(
                "checkpoint_load_failed",
                thread_id=thread_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    @staticmethod
    def _new_turns(prompt: str | None, messages: list[dict] | None, restored: list[dict]) -> list[dict]:
        """
        Turns to append after the restored history.

        Explicit messages win over the prompt. Messages that already start
        with the restored history contribute only what follows it.
        """
        if messages is None:
            return [user_message(prompt)] if prompt is not None else []

        if messages and prompt is not None:
            warnings.warn(
                "Passing both prompt and messages is deprecated; the prompt is ignored",
                DeprecationWarning,
                stacklevel=2,
            )
            logger.warning("prompt_ignored_with_messages")

        supplied = list(messages)
        if restored and supplied[: len(restored)] == restored:
            supplied = supplied[len(restored):]
        if not messages and prompt is not None:
            supplied.append(user_message(prompt))
        return supplied


__all__ = ["DeepAgent", "PROMPT_CACHE_OPTIONS", "RunOutput"]
