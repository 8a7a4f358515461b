"""
Stop predicates for the step loop.

A predicate receives the list of ``StepFinishEvent``s produced so far in
the run and returns True to stop after the current step.
"""

from typing import Callable

from deepagent.domain import StepFinishEvent

StopCondition = Callable[[list[StepFinishEvent]], bool]


def step_count_is(count: int) -> StopCondition:
    def condition(steps: list[StepFinishEvent]) -> bool:
        return len(steps) >= count

    return condition


def has_tool_call(tool_name: str) -> StopCondition:
    """Stop once the last step called ``tool_name``."""

    def condition(steps: list[StepFinishEvent]) -> bool:
        if not steps:
            return False
        return any(tc.tool_name == tool_name for tc in steps[-1].tool_calls)

    return condition


def should_stop(conditions: list[StopCondition] | None, steps: list[StepFinishEvent]) -> bool:
    return any(cond(steps) for cond in conditions or [])


__all__ = ["StopCondition", "has_tool_call", "should_stop", "step_count_is"]
