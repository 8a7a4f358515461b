"""Base abstractions for tools the agent can call."""

import inspect
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, TYPE_CHECKING, get_type_hints

from pydantic import BaseModel, ValidationError, create_model

from deepagent.domain import ToolResult

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext

# Keys the runtime injects into parameters; never part of a tool's schema
RESERVED_PARAMETERS = ("tool_call_id",)


class BaseTool(ABC):
    """Common interface that every concrete tool must implement."""

    def __init__(self) -> None:
        self.name = self.get_name()
        self.description = self.get_description()

    @abstractmethod
    def get_name(self) -> str:
        """Return the tool name."""

    @abstractmethod
    def get_description(self) -> str:
        """Return the tool description used for prompting."""

    @abstractmethod
    def get_parameters(self) -> dict[str, Any]:
        """Return the JSON schema describing `execute` parameters."""

    @abstractmethod
    async def execute(
        self,
        parameters: dict[str, Any],
        context: "ToolContext",
    ) -> ToolResult:
        """
        Execute the tool and return ToolResult directly.

        Args:
            parameters: Parsed arguments plus ``tool_call_id``
            context: State, backend and event sink of the calling run

        Returns:
            ToolResult: ``content`` is what the model sees
        """

    def to_openai_schema(self) -> dict:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.get_parameters(),
            },
        }

    def _create_result(
        self,
        parameters: dict,
        content: str,
        start_time: float,
        output: Any = None,
    ) -> ToolResult:
        end_time = time.time()
        return ToolResult(
            tool_name=self.name,
            tool_call_id=parameters.get("tool_call_id", ""),
            input_args=_public_args(parameters),
            content=content,
            output=output,
            start_time=start_time,
            end_time=end_time,
            duration=end_time - start_time,
            is_success=True,
        )

    def _create_error_result(
        self,
        parameters: dict,
        error: str,
        start_time: float,
    ) -> ToolResult:
        """
        Build a failed result. The model sees the message prefixed with
        ``Error: `` unless it already carries that prefix.
        """
        end_time = time.time()
        content = error if error.startswith("Error") else f"Error: {error}"
        return ToolResult(
            tool_name=self.name,
            tool_call_id=parameters.get("tool_call_id", ""),
            input_args=_public_args(parameters),
            content=content,
            output=None,
            error=error,
            start_time=start_time,
            end_time=end_time,
            duration=end_time - start_time,
            is_success=False,
        )

    def _create_abort_result(
        self,
        parameters: dict,
        start_time: float,
    ) -> ToolResult:
        end_time = time.time()
        return ToolResult(
            tool_name=self.name,
            tool_call_id=parameters.get("tool_call_id", ""),
            input_args=_public_args(parameters),
            content="Operation was aborted",
            output=None,
            error="Aborted",
            start_time=start_time,
            end_time=end_time,
            duration=end_time - start_time,
            is_success=False,
        )


def _public_args(parameters: dict) -> dict:
    return {k: v for k, v in parameters.items() if k not in RESERVED_PARAMETERS}


class FunctionTool(BaseTool):
    """
    Wrap a plain (sync or async) function as a tool.

    The argument schema is derived from the signature. A parameter named
    ``context`` is not exposed to the model; it receives the ToolContext.
    """

    def __init__(self, func: Callable, name: str | None = None, description: str | None = None):
        self.func = func
        self._name = name or func.__name__
        self._description = description or inspect.getdoc(func) or ""
        self._wants_context = "context" in inspect.signature(func).parameters
        self.args_schema = self._create_args_schema(func)
        super().__init__()

    def _create_args_schema(self, func: Callable) -> type[BaseModel]:
        """Dynamically create a Pydantic model from function signature."""
        sig = inspect.signature(func)
        type_hints = get_type_hints(func)

        fields = {}
        for param_name, param in sig.parameters.items():
            if param_name in ("self", "cls", "context"):
                continue

            annotation = type_hints.get(param_name, Any)
            if param.default is inspect.Parameter.empty:
                fields[param_name] = (annotation, ...)
            else:
                fields[param_name] = (annotation, param.default)

        return create_model(f"{self._name}_args", **fields)

    def get_name(self) -> str:
        return self._name

    def get_description(self) -> str:
        return self._description

    def get_parameters(self) -> dict[str, Any]:
        schema = self.args_schema.model_json_schema()
        schema.pop("title", None)
        return schema

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        try:
            args = self.args_schema.model_validate(_public_args(parameters))
        except ValidationError as e:
            return self._create_error_result(parameters, f"Invalid arguments: {e}", start_time)

        kwargs = dict(args)
        if self._wants_context:
            kwargs["context"] = context

        output = self.func(**kwargs)
        if inspect.isawaitable(output):
            output = await output

        content = output if isinstance(output, str) else str(output)
        return self._create_result(parameters, content, start_time, output=output)


def tool(func: Callable | None = None, *, name: str | None = None, description: str | None = None):
    """
    Decorator to convert a function into a FunctionTool.

        @tool
        async def lookup(city: str) -> str:
            '''Look up the weather for a city.'''
    """

    def wrap(f: Callable) -> FunctionTool:
        return FunctionTool(f, name=name, description=description)

    if func is not None:
        return wrap(func)
    return wrap


__all__ = ["BaseTool", "FunctionTool", "RESERVED_PARAMETERS", "tool"]
