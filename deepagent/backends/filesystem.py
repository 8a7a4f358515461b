"""
Local-disk backend.

Changes made here are durable and are NOT rolled back when an older
checkpoint is restored.
"""

import os
import re
from datetime import datetime, timezone
from pathlib import Path

from deepagent.backends.protocol import BackendProtocol
from deepagent.backends.utils import (
    DEFAULT_READ_LIMIT,
    check_empty_content,
    format_content_with_line_numbers,
    glob_match,
    perform_string_replacement,
)
from deepagent.domain import EditResult, FileData, FileInfo, GrepMatch, WriteResult
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)


def _mtime_iso(stat: os.stat_result) -> str:
    return datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()


class FilesystemBackend(BackendProtocol):
    """
    Read and write real files under ``root_dir``.

    In virtual mode every path is interpreted relative to ``root_dir``
    ('/notes.md' -> '<root_dir>/notes.md') and traversal outside the root
    is refused. Otherwise absolute paths are used as-is and relative paths
    are resolved against ``root_dir``.
    """

    def __init__(
        self,
        root_dir: str | Path | None = None,
        virtual_mode: bool = False,
        max_file_size_mb: int = 10,
    ):
        self.root_dir = Path(root_dir or os.getcwd()).resolve()
        self.virtual_mode = virtual_mode
        self.max_file_size_bytes = max_file_size_mb * 1024 * 1024

    def _resolve(self, path: str) -> Path:
        if self.virtual_mode:
            vpath = path if path.startswith("/") else "/" + path
            if ".." in vpath.split("/") or vpath.startswith("~"):
                raise ValueError(f"Path traversal is not allowed: {path}")
            full = (self.root_dir / vpath.lstrip("/")).resolve()
            if not full.is_relative_to(self.root_dir):
                raise ValueError(f"Path {path} is outside root directory {self.root_dir}")
            return full
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return (self.root_dir / candidate).resolve()

    def _to_display(self, full: Path, is_dir: bool = False) -> str:
        if self.virtual_mode:
            display = "/" + full.relative_to(self.root_dir).as_posix()
            display = "/" if display == "/." else display
        else:
            display = str(full)
        if is_dir and not display.endswith("/"):
            display += "/"
        return display

    async def ls_info(self, path: str) -> list[FileInfo]:
        try:
            directory = self._resolve(path or "/")
        except ValueError:
            return []
        if not directory.is_dir():
            return []

        entries: list[FileInfo] = []
        for child in directory.iterdir():
            try:
                stat = child.stat()
            except OSError:
                continue
            if child.is_dir():
                entries.append(FileInfo(path=self._to_display(child, is_dir=True), is_dir=True))
            else:
                entries.append(
                    FileInfo(
                        path=self._to_display(child),
                        size=stat.st_size,
                        modified_at=_mtime_iso(stat),
                    )
                )
        return sorted(entries, key=lambda info: info.path)

    async def read(self, file_path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        try:
            full = self._resolve(file_path)
        except ValueError as e:
            return f"Error: {e}"
        if not full.is_file():
            return f"Error: File '{file_path}' not found"

        try:
            content = full.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return f"Error reading file '{file_path}': {e}"

        empty = check_empty_content(content)
        if empty:
            return empty

        lines = content.splitlines()
        if offset >= len(lines):
            return f"Error: Line offset {offset} exceeds file length ({len(lines)} lines)"
        return format_content_with_line_numbers(lines[offset : offset + limit], start_line=offset + 1)

    async def read_raw(self, file_path: str) -> FileData:
        full = self._resolve(file_path)
        if not full.is_file():
            raise FileNotFoundError(file_path)
        stat = full.stat()
        content = full.read_text(encoding="utf-8")
        return FileData(
            content=content.split("\n"),
            created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc).isoformat(),
            modified_at=_mtime_iso(stat),
        )

    async def write(self, file_path: str, content: str) -> WriteResult:
        try:
            full = self._resolve(file_path)
        except ValueError as e:
            return WriteResult(success=False, error=str(e))

        if full.exists():
            return WriteResult(
                success=False,
                path=file_path,
                error=(
                    f"Cannot write to {file_path} because it already exists. "
                    "Read and then make an edit, or write to a new path."
                ),
            )

        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            # O_EXCL guards against a concurrent creator
            with open(full, "x", encoding="utf-8") as fh:
                fh.write(content)
        except FileExistsError:
            return WriteResult(success=False, path=file_path, error=f"File '{file_path}' already exists")
        except OSError as e:
            return WriteResult(success=False, path=file_path, error=f"Error writing file '{file_path}': {e}")

        logger.debug("file_written", path=str(full), size=len(content))
        return WriteResult(success=True, path=file_path)

    async def edit(
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> EditResult:
        try:
            full = self._resolve(file_path)
        except ValueError as e:
            return EditResult(success=False, error=str(e))
        if not full.is_file():
            return EditResult(success=False, path=file_path, error=f"Error: File '{file_path}' not found")

        try:
            content = full.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return EditResult(success=False, path=file_path, error=f"Error reading file '{file_path}': {e}")

        replaced = perform_string_replacement(content, old_string, new_string, replace_all)
        if isinstance(replaced, str):
            return EditResult(success=False, path=file_path, error=replaced)

        new_content, occurrences = replaced
        try:
            full.write_text(new_content, encoding="utf-8")
        except OSError as e:
            return EditResult(success=False, path=file_path, error=f"Error writing file '{file_path}': {e}")
        return EditResult(success=True, path=file_path, occurrences=occurrences)

    def _iter_files(self, base: Path):
        if base.is_file():
            yield base
            return
        for root, dirs, files in os.walk(base):
            dirs[:] = sorted(d for d in dirs if not d.startswith("."))
            for name in sorted(files):
                yield Path(root) / name

    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        try:
            regex = re.compile(pattern)
        except re.error as e:
            return f"Invalid regex pattern: {e}"

        try:
            base = self._resolve(path or "/")
        except ValueError:
            return []
        if not base.exists():
            return []

        matches: list[GrepMatch] = []
        for file in self._iter_files(base):
            if glob and not glob_match(file.name, glob):
                continue
            try:
                if file.stat().st_size > self.max_file_size_bytes:
                    continue
                content = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            display = self._to_display(file)
            for line_no, line in enumerate(content.splitlines(), start=1):
                if regex.search(line):
                    matches.append(GrepMatch(path=display, line=line_no, text=line))
        return sorted(matches, key=lambda m: (m.path, m.line))

    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        try:
            base = self._resolve(path or "/")
        except ValueError:
            return []
        if not base.is_dir():
            return []

        results: list[FileInfo] = []
        for file in self._iter_files(base):
            relative = file.relative_to(base).as_posix()
            if not glob_match(relative, pattern.lstrip("/")):
                continue
            try:
                stat = file.stat()
            except OSError:
                continue
            results.append(
                FileInfo(path=self._to_display(file), size=stat.st_size, modified_at=_mtime_iso(stat))
            )
        return sorted(results, key=lambda info: info.path)


__all__ = ["FilesystemBackend"]
