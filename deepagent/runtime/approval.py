"""
Tool approval ("interrupt on") configuration.

``interrupt_on`` maps tool names to either a bool or an
``ApprovalConfig`` whose ``should_approve(args)`` predicate decides per
call:

    interrupt_on = {
        "write_file": True,
        "execute": ApprovalConfig(should_approve=lambda args: "rm" in args["command"]),
    }
"""

import inspect
from typing import Any, Awaitable, Callable, Iterable, TYPE_CHECKING, Union

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from deepagent.tools.base import BaseTool

ShouldApprove = Callable[[dict[str, Any]], Union[bool, Awaitable[bool]]]


class ApprovalConfig(BaseModel):
    should_approve: ShouldApprove | None = Field(
        default=None, description="Return True when this call needs approval"
    )


InterruptOnConfig = dict[str, Union[bool, ApprovalConfig, dict]]


class ApprovalRequest(BaseModel):
    """What the approval callback is asked to decide."""

    approval_id: str
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


ApprovalCallback = Callable[[ApprovalRequest], Union[bool, Awaitable[bool]]]


def _normalize(config: bool | ApprovalConfig | dict) -> bool | ShouldApprove:
    if isinstance(config, bool):
        return config
    if isinstance(config, dict):
        config = ApprovalConfig.model_validate(config)
    if config.should_approve is not None:
        return config.should_approve
    return True


class ApprovalPolicy:
    """Resolved gating rules for one tool set."""

    def __init__(self, rules: dict[str, bool | ShouldApprove] | None = None):
        self._rules = {name: rule for name, rule in (rules or {}).items() if rule is not False}

    def gates(self, tool_name: str) -> bool:
        return tool_name in self._rules

    async def requires_approval(self, tool_name: str, args: dict[str, Any]) -> bool:
        rule = self._rules.get(tool_name)
        if rule is None:
            return False
        if rule is True:
            return True
        decision = rule(args)
        if inspect.isawaitable(decision):
            decision = await decision
        return bool(decision)

    @property
    def gated_tools(self) -> list[str]:
        return sorted(self._rules)

    def __bool__(self) -> bool:
        return bool(self._rules)


def apply_interrupt_config(
    tools: Iterable["BaseTool"],
    interrupt_on: InterruptOnConfig | None,
) -> ApprovalPolicy:
    """Build the approval policy for the tools actually offered to the model."""
    if not interrupt_on:
        return ApprovalPolicy()
    names = {t.name for t in tools}
    return ApprovalPolicy(
        {name: _normalize(cfg) for name, cfg in interrupt_on.items() if name in names}
    )


def has_approval_tools(interrupt_on: InterruptOnConfig | None) -> bool:
    if not interrupt_on:
        return False
    return any(v is not False for v in interrupt_on.values())


async def request_approval(callback: ApprovalCallback, request: ApprovalRequest) -> bool:
    decision = callback(request)
    if inspect.isawaitable(decision):
        decision = await decision
    return bool(decision)


__all__ = [
    "ApprovalCallback",
    "ApprovalConfig",
    "ApprovalPolicy",
    "ApprovalRequest",
    "InterruptOnConfig",
    "apply_interrupt_config",
    "has_approval_tools",
    "request_approval",
]
