"""
Backend over a KeyValueStore for files that outlive a conversation.

Files are stored as FileData dicts under ``[namespace, "filesystem"]``,
one key per absolute path. Like the disk backend, these files are not
rolled back when a checkpoint is restored.
"""

from pydantic import ValidationError

from deepagent.backends.protocol import BackendProtocol
from deepagent.backends.store import KeyValueStore
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
from deepagent.domain import EditResult, FileData, FileInfo, GrepMatch, WriteResult
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)


class PersistentBackend(BackendProtocol):
    def __init__(self, store: KeyValueStore, namespace: str | None = None):
        self.store = store
        self.namespace = [namespace or "default", "filesystem"]

    async def _get(self, path: str) -> FileData | None:
        value = await self.store.get(self.namespace, path)
        if value is None:
            return None
        try:
            return FileData.model_validate(value)
        except ValidationError:
            logger.warning("persistent_backend_invalid_entry", path=path)
            return None

    async def _put(self, path: str, file_data: FileData) -> None:
        await self.store.put(self.namespace, path, file_data.model_dump(mode="json"))

    async def _all_files(self) -> dict[str, FileData]:
        files: dict[str, FileData] = {}
        for item in await self.store.list(self.namespace):
            try:
                files[item.key] = FileData.model_validate(item.value)
            except ValidationError:
                logger.warning("persistent_backend_invalid_entry", path=item.key)
        return files

    async def ls_info(self, path: str) -> list[FileInfo]:
        try:
            return list_directory(await self._all_files(), path)
        except ValueError:
            return []

    async def read(self, file_path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        try:
            key = normalize_file_path(file_path)
        except ValueError as e:
            return f"Error: {e}"
        file_data = await self._get(key)
        if file_data is None:
            return f"Error: File '{file_path}' not found"
        return format_read_response(file_data, offset, limit)

    async def read_raw(self, file_path: str) -> FileData:
        file_data = await self._get(normalize_file_path(file_path))
        if file_data is None:
            raise FileNotFoundError(file_path)
        return file_data

    async def write(self, file_path: str, content: str) -> WriteResult:
        try:
            key = normalize_file_path(file_path)
        except ValueError as e:
            return WriteResult(success=False, error=str(e))
        if await self._get(key) is not None:
            return WriteResult(
                success=False,
                path=key,
                error=(
                    f"Cannot write to {key} because it already exists. "
                    "Read and then make an edit, or write to a new path."
                ),
            )
        await self._put(key, create_file_data(content))
        return WriteResult(success=True, path=key)

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
        file_data = await self._get(key)
        if file_data is None:
            return EditResult(success=False, path=key, error=f"Error: File '{file_path}' not found")

        replaced = perform_string_replacement(
            file_data_to_string(file_data), old_string, new_string, replace_all
        )
        if isinstance(replaced, str):
            return EditResult(success=False, path=key, error=replaced)

        new_content, occurrences = replaced
        await self._put(key, update_file_data(file_data, new_content))
        return EditResult(success=True, path=key, occurrences=occurrences)

    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        return grep_matches_from_files(await self._all_files(), pattern, path, glob)

    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        return glob_search_files(await self._all_files(), pattern, path)

    async def delete_file(self, file_path: str) -> None:
        await self.store.delete(self.namespace, normalize_file_path(file_path))


__all__ = ["PersistentBackend"]
