"""
In-memory backend over AgentState.files.
"""

from deepagent.backends.protocol import BackendProtocol
from deepagent.backends.utils import (
    DEFAULT_READ_LIMIT,
    create_file_data,
    file_data_to_string,
    format_read_response,
    glob_search_files,
    grep_matches_from_files,
    list_directory,
    normalize_file_path,
    perform_string_replacement,
    update_file_data,
)
from deepagent.domain import AgentState, EditResult, FileData, FileInfo, GrepMatch, WriteResult


class StateBackend(BackendProtocol):
    """
    Files live inside the agent state and are captured by checkpoints.

    Writes and edits mutate ``state.files`` in place and also report the
    change as ``files_update``.
    """

    def __init__(self, state: AgentState):
        self.state = state

    @property
    def files(self) -> dict[str, FileData]:
        return self.state.files

    async def ls_info(self, path: str) -> list[FileInfo]:
        try:
            return list_directory(self.files, path)
        except ValueError:
            return []

    async def read(self, file_path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        try:
            key = normalize_file_path(file_path)
        except ValueError as e:
            return f"Error: {e}"
        file_data = self.files.get(key)
        if file_data is None:
            return f"Error: File '{file_path}' not found"
        return format_read_response(file_data, offset, limit)

    async def read_raw(self, file_path: str) -> FileData:
        file_data = self.files.get(normalize_file_path(file_path))
        if file_data is None:
            raise FileNotFoundError(file_path)
        return file_data

    async def write(self, file_path: str, content: str) -> WriteResult:
        try:
            key = normalize_file_path(file_path)
        except ValueError as e:
            return WriteResult(success=False, error=str(e))
        if key in self.files:
            return WriteResult(
                success=False,
                path=key,
                error=(
                    f"Cannot write to {key} because it already exists. "
                    "Read and then make an edit, or write to a new path."
                ),
            )
        file_data = create_file_data(content)
        self.files[key] = file_data
        return WriteResult(success=True, path=key, files_update={key: file_data})

    async def edit(
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> EditResult:
        try:
            key = normalize_file_path(file_path)
        except ValueError as e:
            return EditResult(success=False, error=str(e))
        file_data = self.files.get(key)
        if file_data is None:
            return EditResult(success=False, path=key, error=f"Error: File '{file_path}' not found")

        replaced = perform_string_replacement(
            file_data_to_string(file_data), old_string, new_string, replace_all
        )
        if isinstance(replaced, str):
            return EditResult(success=False, path=key, error=replaced)

        new_content, occurrences = replaced
        updated = update_file_data(file_data, new_content)
        self.files[key] = updated
        return EditResult(success=True, path=key, occurrences=occurrences, files_update={key: updated})

    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        return grep_matches_from_files(self.files, pattern, path, glob)

    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        return glob_search_files(self.files, pattern, path)


__all__ = ["StateBackend"]
