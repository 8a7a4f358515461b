"""
ToolContext - everything a tool needs from the run that invoked it.

Tools never reach into the orchestrator; the shared state, the resolved
backend and the event sink travel with every call instead.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, TYPE_CHECKING

if TYPE_CHECKING:
    from deepagent.backends.protocol import BackendProtocol
    from deepagent.domain import AgentState, Event
    from deepagent.runtime.control import AbortSignal
    from deepagent.runtime.wire import EventSink

BackendFactory = Callable[["AgentState"], "BackendProtocol"]


@dataclass(frozen=True)
class ToolContext:
    """
    Per-run execution context handed to each tool call.

    Attributes:
        state: Shared AgentState (mutated in place by tools)
        backend: Backend resolved for this run
        run_id: Run that owns this context
        wire: Sink that events are written to (None = discard)
        depth: Delegation depth (0 = top-level run)
        parent_run_id: Run that delegated to this one
        abort_signal: Cancellation flag for this run
        on_approval_request: Callback deciding gated tool calls
        metadata: Free-form values (e.g. the delegation call stack)
    """

    state: "AgentState"
    backend: "BackendProtocol"
    run_id: str
    wire: "EventSink | None" = None
    depth: int = 0
    parent_run_id: str | None = None
    abort_signal: "AbortSignal | None" = None
    on_approval_request: Callable[..., Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    async def emit(self, event: "Event") -> None:
        if self.wire is not None:
            await self.wire.write(event)

    def is_aborted(self) -> bool:
        return self.abort_signal is not None and self.abort_signal.is_aborted()

    @property
    def call_stack(self) -> tuple[str, ...]:
        return tuple(self.metadata.get("call_stack", ()))

    def child(
        self,
        run_id: str,
        *,
        state: "AgentState",
        backend: "BackendProtocol",
        wire: "EventSink | None" = None,
        **metadata,
    ) -> "ToolContext":
        """
        Create the context of a delegated run.

        The child gets its own state and backend, one more level of depth,
        and a copy of the parent's metadata merged with ``metadata``.
        """
        merged = dict(self.metadata)
        merged.update(metadata)
        return ToolContext(
            state=state,
            backend=backend,
            run_id=run_id,
            wire=wire if wire is not None else self.wire,
            depth=self.depth + 1,
            parent_run_id=self.run_id,
            abort_signal=self.abort_signal,
            on_approval_request=self.on_approval_request,
            metadata=merged,
        )


__all__ = ["BackendFactory", "ToolContext"]
