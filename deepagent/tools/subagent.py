"""
task - delegate an isolated piece of work to a subagent.

The subagent runs a nested StepExecutor with its own prompt, tools and
todo list; it shares the caller's files. Only its final text comes back
to the calling model.

Safety features:
- Maximum delegation depth
- Call stack tracking so a subagent type never re-enters itself
"""

import time
from typing import Any, TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel, ConfigDict

from deepagent.backends.protocol import is_sandbox_backend
from deepagent.domain import (
    AgentState,
    ApprovalRequestedEvent,
    ApprovalResponseEvent,
    StepFinishEvent,
    SubagentFinishEvent,
    SubagentStartEvent,
    SubagentStepEvent,
    ToolResult,
    user_message,
)
from deepagent.prompts import (
    DEFAULT_GENERAL_PURPOSE_DESCRIPTION,
    DEFAULT_SUBAGENT_PROMPT,
    build_subagent_system_prompt,
    get_task_tool_description,
)
from deepagent.runtime.approval import InterruptOnConfig, apply_interrupt_config
from deepagent.runtime.executor import StepExecutor
from deepagent.tools.base import BaseTool
from deepagent.utils.logging import get_logger

if TYPE_CHECKING:
    from deepagent.domain import Event
    from deepagent.llm.base import Model
    from deepagent.runtime.context import BackendFactory, ToolContext
    from deepagent.runtime.wire import EventSink

logger = get_logger(__name__)

GENERAL_PURPOSE_AGENT = "general-purpose"
DEFAULT_SUBAGENT_MAX_STEPS = 50
DEFAULT_MAX_DELEGATION_DEPTH = 5
EMPTY_RESULT = "Task completed successfully."


class SubAgent(BaseModel):
    """
    A specialist the main agent can delegate to.

    ``tools`` and ``model`` default to the main agent's. ``interrupt_on``
    defaults to the main agent's approval rules. ``task`` is only offered
    to the subagent itself when ``allow_delegation`` is set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    system_prompt: str
    tools: list[Any] | None = None
    model: Any | None = None
    interrupt_on: InterruptOnConfig | None = None
    allow_delegation: bool = False


class SubagentEventRelay:
    """
    Event sink placed between a subagent run and the parent's wire.

    Step-finish events become subagent-step events; nested delegation and
    approval events pass through; everything else stays inside the
    subagent.
    """

    _PASSTHROUGH = (
        SubagentStartEvent,
        SubagentStepEvent,
        SubagentFinishEvent,
        ApprovalRequestedEvent,
        ApprovalResponseEvent,
    )

    def __init__(
        self,
        sink: "EventSink | None",
        *,
        parent_run_id: str,
        subagent_run_id: str,
        subagent_type: str,
        forward_steps: bool = True,
    ):
        self.sink = sink
        self.parent_run_id = parent_run_id
        self.subagent_run_id = subagent_run_id
        self.subagent_type = subagent_type
        self.forward_steps = forward_steps

    async def write(self, event: "Event") -> None:
        if self.sink is None:
            return
        if isinstance(event, StepFinishEvent):
            if self.forward_steps:
                await self.sink.write(
                    SubagentStepEvent(
                        run_id=self.parent_run_id,
                        subagent_run_id=self.subagent_run_id,
                        subagent_type=self.subagent_type,
                        step_number=event.step_number,
                        tool_calls=event.tool_calls,
                    )
                )
        elif isinstance(event, self._PASSTHROUGH):
            await self.sink.write(event)


class TaskTool(BaseTool):
    """
    Spawn a subagent for one task and return its final answer.

    Usage:
        researcher = SubAgent(
            name="researcher",
            description="Finds and summarizes sources",
            system_prompt="You are a careful researcher.",
        )
        task = TaskTool(model=model, default_tools=tools, subagents=[researcher])
    """

    def __init__(
        self,
        model: "Model",
        default_tools: list[BaseTool],
        subagents: list[SubAgent] | None = None,
        *,
        include_general_purpose_agent: bool = True,
        default_interrupt_on: InterruptOnConfig | None = None,
        backend_factory: "BackendFactory | None" = None,
        max_steps: int = DEFAULT_SUBAGENT_MAX_STEPS,
        max_depth: int = DEFAULT_MAX_DELEGATION_DEPTH,
        forward_steps: bool = True,
        eviction_limit: int | None = None,
    ):
        self.model = model
        self.default_tools = [t for t in default_tools if t.get_name() != "task"]
        self.default_interrupt_on = default_interrupt_on
        self.backend_factory = backend_factory
        self.max_steps = max_steps
        self.max_depth = max_depth
        self.forward_steps = forward_steps
        self.eviction_limit = eviction_limit

        self.registry: dict[str, SubAgent] = {}
        if include_general_purpose_agent:
            self.registry[GENERAL_PURPOSE_AGENT] = SubAgent(
                name=GENERAL_PURPOSE_AGENT,
                description=DEFAULT_GENERAL_PURPOSE_DESCRIPTION,
                system_prompt=DEFAULT_SUBAGENT_PROMPT,
            )
        for subagent in subagents or []:
            self.registry[subagent.name] = subagent
        super().__init__()

    def get_name(self) -> str:
        return "task"

    def get_description(self) -> str:
        return get_task_tool_description([f"- {a.name}: {a.description}" for a in self.registry.values()])

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "description": {
                    "type": "string",
                    "description": "The task for the subagent, with all the context it needs",
                },
                "subagent_type": {
                    "type": "string",
                    "enum": list(self.registry),
                    "description": "Which subagent to use",
                },
            },
            "required": ["description", "subagent_type"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        description = parameters.get("description") or ""
        subagent_type = parameters.get("subagent_type") or ""

        subagent = self.registry.get(subagent_type)
        if subagent is None:
            allowed = ", ".join(f"`{name}`" for name in self.registry)
            return self._create_error_result(
                parameters,
                f"Error: invoked agent of type {subagent_type}, the only allowed types are {allowed}",
                start_time,
            )

        call_stack = list(context.call_stack)
        if context.depth + 1 > self.max_depth:
            chain = " -> ".join([*call_stack, subagent_type])
            return self._create_error_result(
                parameters,
                f"Maximum delegation depth ({self.max_depth}) exceeded. Call chain: {chain}",
                start_time,
            )
        if subagent_type in call_stack:
            chain = " -> ".join([*call_stack, subagent_type])
            return self._create_error_result(
                parameters,
                f"Circular delegation detected: {subagent_type} is already running. Call chain: {chain}",
                start_time,
            )
        if context.is_aborted():
            return self._create_abort_result(parameters, start_time)

        sub_run_id = f"sub_{uuid4().hex[:12]}"
        await context.emit(
            SubagentStartEvent(
                run_id=context.run_id,
                subagent_run_id=sub_run_id,
                subagent_type=subagent_type,
                description=description,
            )
        )
        logger.info(
            "subagent_started",
            run_id=context.run_id,
            subagent_run_id=sub_run_id,
            subagent_type=subagent_type,
            depth=context.depth + 1,
        )

        try:
            text = await self._run_subagent(subagent, description, context, sub_run_id, call_stack)
        except Exception as e:
            logger.error(
                "subagent_failed",
                subagent_run_id=sub_run_id,
                subagent_type=subagent_type,
                error=str(e),
                exc_info=True,
            )
            message = f"Error executing subagent: {e}"
            await context.emit(
                SubagentFinishEvent(
                    run_id=context.run_id,
                    subagent_run_id=sub_run_id,
                    subagent_type=subagent_type,
                    result=message,
                )
            )
            return self._create_error_result(parameters, message, start_time)

        await context.emit(
            SubagentFinishEvent(
                run_id=context.run_id,
                subagent_run_id=sub_run_id,
                subagent_type=subagent_type,
                result=text,
            )
        )
        logger.info("subagent_finished", subagent_run_id=sub_run_id, subagent_type=subagent_type)
        return self._create_result(parameters, text, start_time, output=text)

    async def _run_subagent(
        self,
        subagent: SubAgent,
        description: str,
        context: "ToolContext",
        sub_run_id: str,
        call_stack: list[str],
    ) -> str:
        # Own todo list, same files dict as the caller
        sub_state = AgentState()
        sub_state.files = context.state.files
        backend = self.backend_factory(sub_state) if self.backend_factory else context.backend

        tools = list(subagent.tools) if subagent.tools is not None else list(self.default_tools)
        if subagent.allow_delegation:
            tools.append(self)
        interrupt_on = subagent.interrupt_on if subagent.interrupt_on is not None else self.default_interrupt_on

        executor = StepExecutor(
            model=subagent.model or self.model,
            tools=tools,
            system_prompt=build_subagent_system_prompt(
                subagent.system_prompt, has_execute=is_sandbox_backend(backend)
            ),
            approval_policy=apply_interrupt_config(tools, interrupt_on),
            eviction_limit=self.eviction_limit,
        )
        relay = SubagentEventRelay(
            context.wire,
            parent_run_id=context.run_id,
            subagent_run_id=sub_run_id,
            subagent_type=subagent.name,
            forward_steps=self.forward_steps,
        )
        sub_context = context.child(
            sub_run_id,
            state=sub_state,
            backend=backend,
            wire=relay,
            call_stack=(*call_stack, subagent.name),
        )

        result = await executor.run([user_message(description)], sub_context, max_steps=self.max_steps)
        return result.text or EMPTY_RESULT


__all__ = [
    "DEFAULT_MAX_DELEGATION_DEPTH",
    "DEFAULT_SUBAGENT_MAX_STEPS",
    "GENERAL_PURPOSE_AGENT",
    "SubAgent",
    "SubagentEventRelay",
    "TaskTool",
]
