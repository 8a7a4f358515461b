"""
StepExecutor - Step-based LLM Call Loop

Responsibilities:
- Implement LLM <-> Tool loop logic
- Emit step, text and tool events to the run's wire
- Gate tool calls that need approval
- Persist a checkpoint after every step when configured

Does NOT handle:
- Building the tool set or the initial history
- Loading checkpoints and deciding how a resume applies (handled by DeepAgent)
"""

import json
import time
from typing import Literal, TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from deepagent.domain import (
    ApprovalRequestedEvent,
    ApprovalResponseEvent,
    Checkpoint,
    CheckpointSavedEvent,
    InterruptData,
    PendingToolCall,
    ResumeDecision,
    StepFinishEvent,
    StepStartEvent,
    TextEvent,
    ToolCallEvent,
    ToolCallRecord,
    ToolResult,
    ToolResultEvent,
    assistant_message,
    system_message,
    utc_now_iso,
)
from deepagent.domain.messages import tool_call_name
from deepagent.llm.base import ToolCallAccumulator
from deepagent.runtime.approval import ApprovalPolicy, ApprovalRequest, request_approval
from deepagent.runtime.eviction import evict_tool_result
from deepagent.runtime.patch import cancelled_tool_result
from deepagent.runtime.stop import StopCondition, should_stop
from deepagent.runtime.tool_executor import ToolExecutor, parse_tool_arguments
from deepagent.utils.logging import get_logger

if TYPE_CHECKING:
    from deepagent.checkpoint.base import BaseCheckpointSaver
    from deepagent.llm.base import Model
    from deepagent.runtime.context import ToolContext
    from deepagent.tools.base import BaseTool

logger = get_logger(__name__)

DENIED_MESSAGE = "Tool call was denied by the user"

# Results of these tools are never offloaded to the backend
EVICTION_EXEMPT_TOOLS = frozenset({"read_file"})

StopReason = Literal["completed", "max_steps", "stop_condition", "aborted", "interrupted"]


class StepLoopResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    text: str = ""
    messages: list[dict] = Field(default_factory=list)
    step: int = 0
    steps_run: int = 0
    interrupt: InterruptData | None = None
    stop_reason: StopReason = "completed"


class _Interrupted(Exception):
    """Internal: a gated call must wait for a resume."""

    def __init__(self, interrupt: InterruptData):
        self.interrupt = interrupt


def denied_result(tool_call_id: str, tool_name: str, args: dict | None = None) -> ToolResult:
    now = time.time()
    return ToolResult(
        tool_name=tool_name,
        tool_call_id=tool_call_id,
        input_args=args or {},
        content=DENIED_MESSAGE,
        error=DENIED_MESSAGE,
        start_time=now,
        end_time=now,
        duration=0.0,
        is_success=False,
    )


class StepExecutor:
    """
    Step-based LLM Call Loop executor.

    One step = one model call followed by sequential execution of the tool
    calls it produced. ``messages`` is modified in place.
    """

    def __init__(
        self,
        model: "Model",
        tools: list["BaseTool"],
        system_prompt: str | None = None,
        *,
        system_provider_options: dict | None = None,
        approval_policy: ApprovalPolicy | None = None,
        stop_when: list[StopCondition] | None = None,
        eviction_limit: int | None = None,
    ):
        self.model = model
        self.tools = tools
        self.tool_executor = ToolExecutor(tools)
        self.system_prompt = system_prompt
        self.system_provider_options = system_provider_options
        self.approval_policy = approval_policy or ApprovalPolicy()
        self.stop_when = stop_when or []
        self.eviction_limit = eviction_limit

    async def run(
        self,
        messages: list[dict],
        context: "ToolContext",
        *,
        max_steps: int,
        start_step: int = 0,
        checkpointer: "BaseCheckpointSaver | None" = None,
        thread_id: str | None = None,
        created_at: str | None = None,
    ) -> StepLoopResult:
        """
        Execute the loop until the model stops calling tools, a stop
        condition matches, ``max_steps`` steps ran, the run is aborted or a
        gated call interrupts it.

        Args:
            messages: History (OpenAI format), modified in place
            context: Context of this run (state, backend, wire)
            max_steps: Maximum steps for this invocation
            start_step: Step counter restored from a checkpoint
            checkpointer: Where to persist a checkpoint after each step
            thread_id: Thread the checkpoints belong to
            created_at: Creation time of the thread's first checkpoint

        Raises:
            Whatever the model raises; tool failures never propagate
            except BackendError.
        """
        step = start_step
        steps_run = 0
        finished: list[StepFinishEvent] = []
        final_text = ""
        stop_reason: StopReason = "max_steps"
        interrupt: InterruptData | None = None
        checkpointing = checkpointer is not None and thread_id is not None
        created_at = created_at or utc_now_iso()
        tool_schemas = self._get_tool_schemas() if self.tools else None

        while steps_run < max_steps:
            if context.is_aborted():
                logger.info("step_executor_aborted", run_id=context.run_id, reason=context.abort_signal.reason)
                stop_reason = "aborted"
                break

            step += 1
            steps_run += 1
            logger.debug("executor_step_started", run_id=context.run_id, step=step)
            await context.emit(StepStartEvent(run_id=context.run_id, step_number=step))

            text, tool_calls, usage = await self._call_model(messages, tool_schemas, context)
            messages.append(assistant_message(text or None, tool_calls or None))
            if text:
                final_text = text

            records: list[ToolCallRecord] = []
            for index, tool_call in enumerate(tool_calls):
                if context.is_aborted():
                    for skipped in tool_calls[index:]:
                        messages.append(cancelled_tool_result(skipped.get("id", ""), tool_call_name(skipped)))
                    stop_reason = "aborted"
                    break
                try:
                    records.append(
                        await self._run_tool_call(tool_call, messages, context, step, checkpointing)
                    )
                except _Interrupted as e:
                    interrupt = e.interrupt
                    for skipped in tool_calls[index + 1 :]:
                        messages.append(cancelled_tool_result(skipped.get("id", ""), tool_call_name(skipped)))
                    stop_reason = "interrupted"
                    break

            if checkpointing:
                saved = await self.save_checkpoint(
                    checkpointer, thread_id, step, messages, context, interrupt, created_at
                )
            else:
                saved = False

            step_event = StepFinishEvent(
                run_id=context.run_id,
                step_number=step,
                text=text,
                tool_calls=records,
                usage=usage,
            )
            finished.append(step_event)
            await context.emit(step_event)
            if saved:
                await context.emit(CheckpointSavedEvent(run_id=context.run_id, thread_id=thread_id, step=step))

            if stop_reason in ("aborted", "interrupted"):
                break
            if context.is_aborted():
                stop_reason = "aborted"
                break
            if not tool_calls:
                stop_reason = "completed"
                break
            if should_stop(self.stop_when, finished):
                stop_reason = "stop_condition"
                break

        logger.info(
            "executor_finished",
            run_id=context.run_id,
            steps=steps_run,
            last_step=step,
            stop_reason=stop_reason,
        )
        return StepLoopResult(
            text=final_text,
            messages=messages,
            step=step,
            steps_run=steps_run,
            interrupt=interrupt,
            stop_reason=stop_reason,
        )

    async def resume_tool_call(
        self,
        interrupt: InterruptData,
        decision: ResumeDecision,
        messages: list[dict],
        context: "ToolContext",
    ) -> ToolCallRecord:
        """
        Settle the call held by ``interrupt``: run it when approved (with
        ``modified_args`` if given), synthesize the denial otherwise. The
        tool result is appended to ``messages``.
        """
        held = interrupt.tool_call
        if decision.type == "approve":
            args = decision.modified_args if decision.modified_args is not None else held.args
            tool_call = {
                "id": held.tool_call_id,
                "type": "function",
                "function": {"name": held.tool_name, "arguments": json.dumps(args)},
            }
            result = await self.tool_executor.execute(tool_call, context, args=args)
        else:
            result = denied_result(held.tool_call_id, held.tool_name, held.args)

        logger.info(
            "interrupted_tool_call_resumed",
            run_id=context.run_id,
            tool_name=held.tool_name,
            tool_call_id=held.tool_call_id,
            decision=decision.type,
        )
        return await self._record_result(result, messages, context)

    async def _call_model(
        self,
        messages: list[dict],
        tool_schemas: list[dict] | None,
        context: "ToolContext",
    ) -> tuple[str, list[dict], dict | None]:
        full_content = ""
        accumulator = ToolCallAccumulator()
        usage = None

        async for chunk in self.model.arun_stream(self._model_messages(messages), tools=tool_schemas):
            if chunk.content:
                full_content += chunk.content
                await context.emit(TextEvent(run_id=context.run_id, text=chunk.content))
            if chunk.tool_calls:
                accumulator.accumulate(chunk.tool_calls)
            if chunk.usage:
                usage = chunk.usage
            if context.is_aborted():
                # Partial tool calls are discarded
                return full_content, [], usage

        return full_content, accumulator.finalize(), usage

    def _model_messages(self, messages: list[dict]) -> list[dict]:
        if not self.system_prompt:
            return messages
        return [system_message(self.system_prompt, self.system_provider_options), *messages]

    async def _run_tool_call(
        self,
        tool_call: dict,
        messages: list[dict],
        context: "ToolContext",
        step: int,
        can_interrupt: bool,
    ) -> ToolCallRecord:
        call_id = tool_call.get("id") or ""
        name = tool_call_name(tool_call)
        try:
            args = parse_tool_arguments(tool_call)
        except ValueError:
            args = None

        await context.emit(ToolCallEvent(run_id=context.run_id, tool_call_id=call_id, tool_name=name, args=args or {}))

        result: ToolResult | None = None
        if args is not None and self.approval_policy.gates(name):
            if await self.approval_policy.requires_approval(name, args):
                result = await self._gate(call_id, name, args, context, step, can_interrupt)

        if result is None:
            result = await self.tool_executor.execute(tool_call, context, args=args)

        return await self._record_result(result, messages, context)

    async def _gate(
        self,
        call_id: str,
        name: str,
        args: dict,
        context: "ToolContext",
        step: int,
        can_interrupt: bool,
    ) -> ToolResult | None:
        """Returns None when approved, a denial result otherwise."""
        approval_id = f"approval_{uuid4().hex[:12]}"
        requested = ApprovalRequestedEvent(
            run_id=context.run_id,
            approval_id=approval_id,
            tool_call_id=call_id,
            tool_name=name,
            args=args,
        )

        if context.on_approval_request is not None:
            await context.emit(requested)
            approved = await request_approval(
                context.on_approval_request,
                ApprovalRequest(approval_id=approval_id, tool_call_id=call_id, tool_name=name, args=args),
            )
            await context.emit(ApprovalResponseEvent(run_id=context.run_id, approval_id=approval_id, approved=approved))
            logger.info("tool_approval_decided", tool_name=name, tool_call_id=call_id, approved=approved)
            return None if approved else denied_result(call_id, name, args)

        if can_interrupt:
            await context.emit(requested)
            logger.info("tool_approval_interrupt", tool_name=name, tool_call_id=call_id, step=step)
            raise _Interrupted(
                InterruptData(
                    tool_call=PendingToolCall(tool_call_id=call_id, tool_name=name, args=args),
                    step=step,
                )
            )

        logger.warning("tool_approval_unavailable", tool_name=name, tool_call_id=call_id)
        return denied_result(call_id, name, args)

    async def _record_result(
        self,
        result: ToolResult,
        messages: list[dict],
        context: "ToolContext",
    ) -> ToolCallRecord:
        if self.eviction_limit and result.tool_name not in EVICTION_EXEMPT_TOOLS:
            evicted = await evict_tool_result(
                result.content,
                result.tool_call_id,
                result.tool_name,
                context.backend,
                token_limit=self.eviction_limit,
            )
            if evicted.evicted:
                result = result.model_copy(update={"content": evicted.content})

        await context.emit(
            ToolResultEvent(
                run_id=context.run_id,
                tool_call_id=result.tool_call_id,
                tool_name=result.tool_name,
                result=result.content,
                is_success=result.is_success,
            )
        )
        messages.append(result.to_message())
        return ToolCallRecord(
            tool_call_id=result.tool_call_id,
            tool_name=result.tool_name,
            args=result.input_args,
            result=result.content,
            is_success=result.is_success,
        )

    async def save_checkpoint(
        self,
        checkpointer: "BaseCheckpointSaver",
        thread_id: str,
        step: int,
        messages: list[dict],
        context: "ToolContext",
        interrupt: InterruptData | None,
        created_at: str,
    ) -> bool:
        checkpoint = Checkpoint(
            thread_id=thread_id,
            step=step,
            messages=list(messages),
            state=context.state.snapshot(),
            interrupt=interrupt,
            created_at=created_at,
            updated_at=utc_now_iso(),
        )
        try:
            await checkpointer.save(checkpoint)
        except Exception as e:
            logger.error(
                "checkpoint_save_failed",
                thread_id=thread_id,
                step=step,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.debug("checkpoint_saved", thread_id=thread_id, step=step)
        return True

    def _get_tool_schemas(self) -> list[dict]:
        """Get OpenAI schema for tools."""
        return [tool.to_openai_schema() for tool in self.tools]


__all__ = [
    "DENIED_MESSAGE",
    "StepExecutor",
    "StepLoopResult",
    "denied_result",
]
