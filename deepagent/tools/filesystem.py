"""
Filesystem tools - ls, read_file, write_file, edit_file, glob, grep.

Every tool works against ``context.backend`` so the same tools run over
agent state, local disk, a key-value store or a sandbox.
"""

import time
from typing import Any, TYPE_CHECKING

from deepagent.backends.utils import (
    DEFAULT_READ_LIMIT,
    format_grep_matches,
    truncate_if_too_long,
)
from deepagent.domain import (
    FileEditedEvent,
    FileReadEvent,
    FileWriteStartEvent,
    FileWrittenEvent,
    GlobEvent,
    GrepEvent,
    LsEvent,
    ToolResult,
)
from deepagent.tools.base import BaseTool

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext


def _apply_files_update(context: "ToolContext", files_update: dict | None) -> None:
    # StateBackend already wrote into the same dict; other backends return None
    if files_update:
        context.state.files.update(files_update)


class LsTool(BaseTool):
    def get_name(self) -> str:
        return "ls"

    def get_description(self) -> str:
        return (
            "Lists all files in a directory.\n\n"
            "Usage:\n"
            "- The path parameter must be an absolute path, defaults to '/'\n"
            "- Directories are listed with a trailing '/'\n"
            "- Use this to explore the filesystem before reading or editing files"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute path of the directory to list",
                    "default": "/",
                },
            },
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        path = parameters.get("path") or "/"

        infos = await context.backend.ls_info(path)
        await context.emit(LsEvent(run_id=context.run_id, path=path, count=len(infos)))

        if not infos:
            return self._create_result(parameters, f"No files found in {path}", start_time, output=[])

        content = truncate_if_too_long("\n".join(info.path for info in infos))
        return self._create_result(parameters, content, start_time, output=[i.path for i in infos])


class ReadFileTool(BaseTool):
    def get_name(self) -> str:
        return "read_file"

    def get_description(self) -> str:
        return (
            "Reads a file from the filesystem.\n\n"
            "Usage:\n"
            "- The file_path parameter must be an absolute path\n"
            f"- By default, it reads up to {DEFAULT_READ_LIMIT} lines starting from the beginning of the file\n"
            "- For large files, use offset and limit to page through the content\n"
            "- Results are returned cat -n style, with line numbers starting at 1\n"
            "- Always read a file before editing it"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Absolute path of the file to read"},
                "offset": {
                    "type": "integer",
                    "description": "Line number to start reading from (0-based)",
                    "default": 0,
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of lines to read",
                    "default": DEFAULT_READ_LIMIT,
                },
            },
            "required": ["file_path"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        file_path = parameters.get("file_path")
        if not file_path:
            return self._create_error_result(parameters, "file_path is required", start_time)

        offset = int(parameters.get("offset") or 0)
        limit = int(parameters.get("limit") or DEFAULT_READ_LIMIT)

        content = await context.backend.read(file_path, offset=offset, limit=limit)
        if content.startswith("Error:"):
            return self._create_error_result(parameters, content, start_time)

        lines = 0 if content.startswith("System reminder:") else len(content.splitlines())
        await context.emit(FileReadEvent(run_id=context.run_id, path=file_path, lines=lines))
        return self._create_result(parameters, content, start_time)


class WriteFileTool(BaseTool):
    def get_name(self) -> str:
        return "write_file"

    def get_description(self) -> str:
        return (
            "Writes a new file to the filesystem.\n\n"
            "Usage:\n"
            "- The file_path parameter must be an absolute path\n"
            "- Fails if the file already exists; use edit_file to change existing files\n"
            "- Prefer editing existing files over creating new ones"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Absolute path of the file to create"},
                "content": {"type": "string", "description": "Content to write"},
            },
            "required": ["file_path", "content"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        file_path = parameters.get("file_path")
        content = parameters.get("content")
        if not file_path or content is None:
            return self._create_error_result(parameters, "file_path and content are required", start_time)

        await context.emit(FileWriteStartEvent(run_id=context.run_id, path=file_path, content=content))
        result = await context.backend.write(file_path, content)
        if not result.success:
            return self._create_error_result(parameters, result.error or f"Could not write {file_path}", start_time)

        _apply_files_update(context, result.files_update)
        path = result.path or file_path
        await context.emit(FileWrittenEvent(run_id=context.run_id, path=path, content=content))
        return self._create_result(parameters, f"Successfully wrote to '{path}'", start_time)


class EditFileTool(BaseTool):
    def get_name(self) -> str:
        return "edit_file"

    def get_description(self) -> str:
        return (
            "Performs exact string replacements in files.\n\n"
            "Usage:\n"
            "- Read the file before editing it\n"
            "- old_string must match the file exactly, including whitespace\n"
            "- The edit fails if old_string is not unique; add surrounding context "
            "or set replace_all to change every occurrence"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Absolute path of the file to edit"},
                "old_string": {"type": "string", "description": "Text to replace"},
                "new_string": {"type": "string", "description": "Replacement text"},
                "replace_all": {
                    "type": "boolean",
                    "description": "Replace every occurrence of old_string",
                    "default": False,
                },
            },
            "required": ["file_path", "old_string", "new_string"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        file_path = parameters.get("file_path")
        old_string = parameters.get("old_string")
        new_string = parameters.get("new_string")
        if not file_path or old_string is None or new_string is None:
            return self._create_error_result(
                parameters, "file_path, old_string and new_string are required", start_time
            )

        result = await context.backend.edit(
            file_path,
            old_string,
            new_string,
            replace_all=bool(parameters.get("replace_all", False)),
        )
        if not result.success:
            return self._create_error_result(parameters, result.error or f"Could not edit {file_path}", start_time)

        _apply_files_update(context, result.files_update)
        path = result.path or file_path
        await context.emit(FileEditedEvent(run_id=context.run_id, path=path, occurrences=result.occurrences))
        return self._create_result(
            parameters,
            f"Successfully replaced {result.occurrences} instance(s) of the string in '{path}'",
            start_time,
        )


class GlobTool(BaseTool):
    def get_name(self) -> str:
        return "glob"

    def get_description(self) -> str:
        return (
            "Fast file pattern matching.\n\n"
            "Usage:\n"
            "- Supports glob patterns like `**/*.py` or `/src/*.{ts,tsx}`\n"
            "- Returns matching file paths sorted by path\n"
            "- Use path to restrict the search to a directory"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Glob pattern to match files"},
                "path": {
                    "type": "string",
                    "description": "Directory to search in",
                    "default": "/",
                },
            },
            "required": ["pattern"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        pattern = parameters.get("pattern")
        if not pattern:
            return self._create_error_result(parameters, "pattern is required", start_time)
        path = parameters.get("path") or "/"

        infos = await context.backend.glob_info(pattern, path)
        await context.emit(GlobEvent(run_id=context.run_id, pattern=pattern, count=len(infos)))

        if not infos:
            return self._create_result(
                parameters, f"No files found matching pattern '{pattern}'", start_time, output=[]
            )
        content = truncate_if_too_long("\n".join(info.path for info in infos))
        return self._create_result(parameters, content, start_time, output=[i.path for i in infos])


class GrepTool(BaseTool):
    def get_name(self) -> str:
        return "grep"

    def get_description(self) -> str:
        return (
            "Searches file contents with a regular expression.\n\n"
            "Usage:\n"
            "- pattern is a Python regular expression\n"
            "- Use path to restrict the search to a directory and glob to filter file names\n"
            "- Results are grouped by file with line numbers"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regular expression to search for"},
                "path": {"type": "string", "description": "Directory to search in"},
                "glob": {"type": "string", "description": "Only search files matching this glob"},
            },
            "required": ["pattern"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        pattern = parameters.get("pattern")
        if not pattern:
            return self._create_error_result(parameters, "pattern is required", start_time)

        matches = await context.backend.grep_raw(pattern, parameters.get("path"), parameters.get("glob"))
        if isinstance(matches, str):
            return self._create_error_result(parameters, matches, start_time)

        await context.emit(GrepEvent(run_id=context.run_id, pattern=pattern, count=len(matches)))
        return self._create_result(
            parameters,
            truncate_if_too_long(format_grep_matches(matches)),
            start_time,
            output=matches,
        )


def create_filesystem_tools() -> list[BaseTool]:
    return [LsTool(), ReadFileTool(), WriteFileTool(), EditFileTool(), GlobTool(), GrepTool()]


__all__ = [
    "EditFileTool",
    "GlobTool",
    "GrepTool",
    "LsTool",
    "ReadFileTool",
    "WriteFileTool",
    "create_filesystem_tools",
]
