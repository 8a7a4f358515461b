"""
execute - run a shell command in a sandbox backend.

Only offered to the model when the run's backend supports execution.
"""

import time
from typing import Any, TYPE_CHECKING

from deepagent.backends.protocol import is_sandbox_backend
from deepagent.domain import ExecuteFinishEvent, ExecuteResponse, ExecuteStartEvent, ToolResult
from deepagent.tools.base import BaseTool

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext

EXECUTE_TOOL_DESCRIPTION = """Execute a shell command in the sandbox environment.

Use this tool to:
- Run build commands and tests (pip install, pytest, make)
- Execute scripts (python script.py)
- Check system state (ls, cat, pwd, which)

The command runs in the sandbox's working directory. Commands have a timeout limit.

IMPORTANT:
- Always check the exit code to determine success (0 = success)
- Long-running commands may time out
- Use && to chain commands that depend on each other"""


def format_execute_response(response: ExecuteResponse) -> str:
    parts = []
    if response.output:
        parts.append(response.output)

    if response.exit_code == 0:
        parts.append("\n[Exit code: 0 (success)]")
    elif response.exit_code is not None:
        parts.append(f"\n[Exit code: {response.exit_code} (failure)]")
    else:
        parts.append("\n[Exit code: unknown (possibly timed out)]")

    if response.truncated:
        parts.append("[Output truncated due to size limit]")
    return "".join(parts)


class ExecuteTool(BaseTool):
    def __init__(self, description: str | None = None):
        self._description = description or EXECUTE_TOOL_DESCRIPTION
        super().__init__()

    def get_name(self) -> str:
        return "execute"

    def get_description(self) -> str:
        return self._description

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute (e.g. 'ls -la', 'cat file.txt')",
                },
            },
            "required": ["command"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        command = parameters.get("command")
        if not command:
            return self._create_error_result(parameters, "command is required", start_time)

        backend = context.backend
        if not is_sandbox_backend(backend):
            return self._create_error_result(parameters, "The current backend does not support execute", start_time)
        if context.is_aborted():
            return self._create_abort_result(parameters, start_time)

        await context.emit(ExecuteStartEvent(run_id=context.run_id, command=command, sandbox_id=backend.id))
        response = await backend.execute(command)
        await context.emit(
            ExecuteFinishEvent(
                run_id=context.run_id,
                command=command,
                sandbox_id=backend.id,
                exit_code=response.exit_code,
                truncated=response.truncated,
            )
        )
        return self._create_result(parameters, format_execute_response(response), start_time, output=response)


__all__ = ["EXECUTE_TOOL_DESCRIPTION", "ExecuteTool", "format_execute_response"]
