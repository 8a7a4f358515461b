"""
write_todos - the agent's task list.

Items are never removed. ``merge=true`` updates items by id and appends new
ones; ``merge=false`` makes the given items the whole active plan: items
left out of it keep their place after the new ones and, unless already
completed, move to ``cancelled``.
"""

import time
from typing import Any, TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from deepagent.domain import TodoItem, TodoStatus, TodosChangedEvent, ToolResult
from deepagent.tools.base import BaseTool
from deepagent.utils.logging import get_logger

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext

logger = get_logger(__name__)


class WriteTodosArgs(BaseModel):
    todos: list[TodoItem] = Field(min_length=1)
    merge: bool = True


def merge_todos(current: list[TodoItem], updates: list[TodoItem], merge: bool = True) -> list[TodoItem]:
    by_id = {t.id: t for t in current}
    if merge:
        result = list(current)
        for update in updates:
            if update.id in by_id:
                result[result.index(by_id[update.id])] = update
            else:
                result.append(update)
            by_id[update.id] = update
        return result

    update_ids = {u.id for u in updates}
    leftovers = [
        t if t.status in (TodoStatus.COMPLETED, TodoStatus.CANCELLED)
        else t.model_copy(update={"status": TodoStatus.CANCELLED})
        for t in current
        if t.id not in update_ids
    ]
    return [*updates, *leftovers]


def format_todos(todos: list[TodoItem]) -> str:
    return "\n".join(f"- [{t.status.value}] {t.id}: {t.content}" for t in todos)


class WriteTodosTool(BaseTool):
    def get_name(self) -> str:
        return "write_todos"

    def get_description(self) -> str:
        return (
            "Manage and plan tasks using a structured todo list. Use this tool for:\n"
            "- Complex multi-step tasks (3+ steps)\n"
            "- After receiving new instructions - capture requirements\n"
            "- When starting tasks - mark as in_progress (only one at a time)\n"
            "- After completing tasks - mark complete immediately\n\n"
            "Task states: pending, in_progress, completed, cancelled\n\n"
            "When merge=true, updates are merged with existing todos by id.\n"
            "When merge=false, the given todos become the whole plan; todos left "
            "out are kept but cancelled."
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "todos": {
                    "type": "array",
                    "minItems": 1,
                    "description": "Array of todo items to write",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {"type": "string", "description": "Unique identifier for the todo item"},
                            "content": {
                                "type": "string",
                                "maxLength": 100,
                                "description": "The description of the todo item (max 100 chars)",
                            },
                            "status": {
                                "type": "string",
                                "enum": [s.value for s in TodoStatus],
                                "description": "The current status of the todo item",
                            },
                        },
                        "required": ["id", "content", "status"],
                    },
                },
                "merge": {
                    "type": "boolean",
                    "default": True,
                    "description": "Merge with existing todos (true) or replace the plan (false)",
                },
            },
            "required": ["todos"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        try:
            args = WriteTodosArgs.model_validate(
                {"todos": parameters.get("todos"), "merge": parameters.get("merge", True)}
            )
        except ValidationError as e:
            return self._create_error_result(parameters, f"Invalid todos: {e}", start_time)

        state = context.state
        state.todos[:] = merge_todos(state.todos, args.todos, merge=args.merge)
        logger.debug("todos_updated", run_id=context.run_id, count=len(state.todos))

        await context.emit(TodosChangedEvent(run_id=context.run_id, todos=[t.model_copy() for t in state.todos]))
        return self._create_result(
            parameters,
            f"Todo list updated successfully.\n\nCurrent todos:\n{format_todos(state.todos)}",
            start_time,
        )


__all__ = ["WriteTodosArgs", "WriteTodosTool", "format_todos", "merge_todos"]
