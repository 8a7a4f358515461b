"""
Runtime module - step loop and everything a run needs around it.
"""

from deepagent.runtime.approval import (
    ApprovalCallback,
    ApprovalConfig,
    ApprovalPolicy,
    ApprovalRequest,
    InterruptOnConfig,
    apply_interrupt_config,
    has_approval_tools,
)
from deepagent.runtime.context import BackendFactory, ToolContext
from deepagent.runtime.control import AbortSignal
from deepagent.runtime.eviction import estimate_tokens, evict_tool_result
from deepagent.runtime.executor import StepExecutor, StepLoopResult
from deepagent.runtime.patch import has_dangling_tool_calls, patch_tool_calls
from deepagent.runtime.stop import StopCondition, has_tool_call, step_count_is
from deepagent.runtime.summarization import SummarizationResult, summarize_if_needed
from deepagent.runtime.tool_executor import ToolExecutor
from deepagent.runtime.wire import EventSink, Wire

__all__ = [
    "AbortSignal",
    "ApprovalCallback",
    "ApprovalConfig",
    "ApprovalPolicy",
    "ApprovalRequest",
    "BackendFactory",
    "EventSink",
    "InterruptOnConfig",
    "StepExecutor",
    "StepLoopResult",
    "StopCondition",
    "SummarizationResult",
    "ToolContext",
    "ToolExecutor",
    "Wire",
    "apply_interrupt_config",
    "estimate_tokens",
    "evict_tool_result",
    "has_approval_tools",
    "has_dangling_tool_calls",
    "has_tool_call",
    "patch_tool_calls",
    "step_count_is",
    "summarize_if_needed",
]
