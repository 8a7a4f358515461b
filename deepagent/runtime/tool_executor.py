"""
Unified tool executor.
"""

import json
import time
from typing import Any, TYPE_CHECKING

from deepagent.domain import ToolResult
from deepagent.exceptions import BackendError
from deepagent.utils.logging import get_logger

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext
    from deepagent.tools.base import BaseTool

logger = get_logger(__name__)


def parse_tool_arguments(tool_call: dict[str, Any]) -> dict[str, Any]:
    """Arguments of an OpenAI tool call as a dict (raises json.JSONDecodeError)."""
    raw = tool_call.get("function", {}).get("arguments") or "{}"
    if isinstance(raw, dict):
        return dict(raw)
    args = json.loads(raw)
    if not isinstance(args, dict):
        raise json.JSONDecodeError("Arguments must be a JSON object", raw, 0)
    return args


class ToolExecutor:
    """Runs one tool call at a time and always returns a ToolResult."""

    def __init__(self, tools: list["BaseTool"]):
        self.tools_map = {t.name: t for t in tools}

    def get(self, name: str) -> "BaseTool | None":
        return self.tools_map.get(name)

    async def execute(
        self,
        tool_call: dict[str, Any],
        context: "ToolContext",
        args: dict[str, Any] | None = None,
    ) -> ToolResult:
        """
        Execute a single tool call.

        Args:
            tool_call: OpenAI format tool call
            context: Context of the calling run
            args: Already-parsed (possibly user-modified) arguments

        Returns:
            ToolResult: Tool execution result

        Raises:
            BackendError: The backend failed in a way the run cannot recover from
        """
        fn_name = tool_call.get("function", {}).get("name")
        call_id = tool_call.get("id") or ""
        start_time = time.time()

        if not fn_name:
            return self._create_error_result(
                call_id=call_id,
                tool_name="unknown",
                error="Error: Tool name missing in tool call",
                start_time=start_time,
            )

        tool = self.tools_map.get(fn_name)
        if not tool:
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=f"Error: Tool {fn_name} not found",
                start_time=start_time,
            )

        if args is None:
            try:
                args = parse_tool_arguments(tool_call)
            except json.JSONDecodeError as e:
                return self._create_error_result(
                    call_id=call_id,
                    tool_name=fn_name,
                    error=f"Error: Invalid JSON arguments: {e}",
                    start_time=start_time,
                )

        parameters = dict(args)
        parameters["tool_call_id"] = call_id

        try:
            logger.debug("executing_tool", tool_name=fn_name, tool_call_id=call_id, run_id=context.run_id)
            result = await tool.execute(parameters, context)
            logger.debug(
                "tool_execution_completed",
                tool_name=fn_name,
                success=result.is_success,
                duration=result.duration,
            )
            return result

        except BackendError:
            logger.error("tool_backend_failure", tool_name=fn_name, tool_call_id=call_id, exc_info=True)
            raise

        except Exception as e:
            logger.error(
                "tool_execution_exception",
                tool_name=fn_name,
                error=str(e),
                exc_info=True,
            )
            return self._create_error_result(
                call_id=call_id,
                tool_name=fn_name,
                error=f"Error: Tool execution failed: {e}",
                start_time=start_time,
                input_args=args,
            )

    def _create_error_result(
        self,
        call_id: str,
        tool_name: str,
        error: str,
        start_time: float,
        input_args: dict | None = None,
    ) -> ToolResult:
        end_time = time.time()
        return ToolResult(
            tool_name=tool_name,
            tool_call_id=call_id,
            input_args=input_args or {},
            content=error,
            output=None,
            error=error,
            start_time=start_time,
            end_time=end_time,
            duration=end_time - start_time,
            is_success=False,
        )


__all__ = ["ToolExecutor", "parse_tool_arguments"]
