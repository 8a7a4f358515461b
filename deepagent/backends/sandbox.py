"""
BaseSandbox - file operations implemented on top of ``execute()``.

Subclasses only provide ``execute`` and ``id``; every file operation is
shipped to the sandbox as a small Python helper that reads a
base64-encoded JSON request from stdin, so nothing depends on shell quoting.
"""

import base64
import json
import re
from abc import abstractmethod
from typing import Any

from deepagent.backends.protocol import SandboxBackendProtocol
from deepagent.backends.utils import (
    DEFAULT_READ_LIMIT,
    translate_glob,
    format_read_response,
)
from deepagent.domain import (
    EditResult,
    ExecuteResponse,
    FileData,
    FileDownloadResponse,
    FileInfo,
    FileUploadResponse,
    GrepMatch,
    WriteResult,
)
from deepagent.exceptions import BackendError
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

_HELPER = r"""
import base64, json, os, re, sys
from datetime import datetime, timezone

req = json.loads(base64.b64decode(sys.stdin.read().strip()).decode("utf-8"))
op = req["op"]


def iso(ts):
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def emit(obj):
    sys.stdout.write("\n" + json.dumps(obj) + "\n")


def walk(base):
    if os.path.isfile(base):
        yield base
        return
    for root, dirs, files in os.walk(base):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in sorted(files):
            yield os.path.join(root, name)


def read_text(path):
    with open(path, encoding="utf-8", errors="replace") as fh:
        return fh.read()


def error_code(exc):
    if isinstance(exc, FileNotFoundError):
        return "file_not_found"
    if isinstance(exc, PermissionError):
        return "permission_denied"
    if isinstance(exc, IsADirectoryError):
        return "is_directory"
    return "invalid_path"


if op == "ls":
    entries = []
    try:
        names = sorted(os.listdir(req["path"]))
    except OSError:
        names = []
    for name in names:
        full = os.path.join(req["path"], name)
        try:
            st = os.stat(full)
        except OSError:
            continue
        is_dir = os.path.isdir(full)
        entries.append({"path": full + ("/" if is_dir else ""), "is_dir": is_dir,
                        "size": st.st_size, "modified_at": iso(st.st_mtime)})
    emit({"entries": entries})
elif op == "read_raw":
    path = req["path"]
    try:
        st = os.stat(path)
        if os.path.isdir(path):
            raise IsADirectoryError(path)
        emit({"content": read_text(path).split("\n"), "created_at": iso(st.st_ctime),
              "modified_at": iso(st.st_mtime)})
    except OSError as exc:
        emit({"error": error_code(exc), "detail": str(exc)})
elif op == "write":
    path = req["path"]
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "x", encoding="utf-8") as fh:
            fh.write(req["content"])
        emit({"ok": True})
    except OSError as exc:
        emit({"error": "exists" if os.path.exists(path) else error_code(exc), "detail": str(exc)})
elif op == "edit":
    path = req["path"]
    try:
        if os.path.isdir(path):
            raise IsADirectoryError(path)
        content = read_text(path)
        count = content.count(req["old"])
        if count == 0:
            emit({"error": "no_match"})
        elif count > 1 and not req["replace_all"]:
            emit({"error": "multiple", "occurrences": count})
        else:
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(content.replace(req["old"], req["new"]))
            emit({"ok": True, "occurrences": count})
    except OSError as exc:
        emit({"error": error_code(exc), "detail": str(exc)})
elif op == "grep":
    regex = re.compile(req["pattern"])
    name_filter = re.compile(req["glob"], re.DOTALL) if req.get("glob") else None
    matches = []
    if os.path.exists(req["path"]):
        for path in walk(req["path"]):
            if name_filter and not name_filter.match(os.path.basename(path)):
                continue
            try:
                lines = read_text(path).splitlines()
            except OSError:
                continue
            for i, line in enumerate(lines, 1):
                if regex.search(line):
                    matches.append([path, i, line])
    emit({"matches": matches})
elif op == "glob":
    pattern = re.compile(req["pattern"], re.DOTALL)
    base = req["path"]
    found = []
    if os.path.isdir(base):
        for path in walk(base):
            rel = os.path.relpath(path, base).replace(os.sep, "/")
            if pattern.match(rel):
                st = os.stat(path)
                found.append({"path": path, "size": st.st_size, "modified_at": iso(st.st_mtime)})
    emit({"files": found})
elif op == "upload":
    results = []
    for item in req["files"]:
        try:
            parent = os.path.dirname(item["path"])
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(item["path"], "wb") as fh:
                fh.write(base64.b64decode(item["content"]))
            results.append({"path": item["path"]})
        except Exception as exc:
            results.append({"path": item["path"], "error": error_code(exc)})
    emit({"results": results})
elif op == "download":
    results = []
    for path in req["paths"]:
        try:
            with open(path, "rb") as fh:
                results.append({"path": path, "content": base64.b64encode(fh.read()).decode("ascii")})
        except Exception as exc:
            results.append({"path": path, "error": error_code(exc)})
    emit({"results": results})
else:
    emit({"error": "unknown_op"})
"""

_HEREDOC_MARKER = "__DEEPAGENT_REQUEST__"

_HELPER_B64 = base64.b64encode(_HELPER.encode("utf-8")).decode("ascii")

_ERROR_DESCRIPTIONS = {
    "permission_denied": "permission denied",
    "is_directory": "path is a directory",
    "invalid_path": "invalid path",
}


def _describe(data: dict[str, Any]) -> str:
    reason = _ERROR_DESCRIPTIONS.get(data["error"], data["error"])
    return f"{reason} ({data['detail']})" if data.get("detail") else reason


class BaseSandbox(SandboxBackendProtocol):
    """
    Abstract sandbox backend.

    Subclasses implement ``execute`` (and ``id``) for their environment;
    the inherited file operations work anywhere a Python 3 interpreter is
    available as ``python_executable``.
    """

    python_executable = "python3"

    @abstractmethod
    async def execute(self, command: str) -> ExecuteResponse:
        """Run a shell command in the sandbox."""

    def _build_command(self, request: dict[str, Any]) -> str:
        payload = base64.b64encode(json.dumps(request).encode("utf-8")).decode("ascii")
        loader = f"import base64;exec(base64.b64decode('{_HELPER_B64}'))"
        # Request travels on stdin via a heredoc, avoiding argv size limits
        return (
            f"{self.python_executable} -c \"{loader}\" <<'{_HEREDOC_MARKER}'\n"
            f"{payload}\n{_HEREDOC_MARKER}"
        )

    async def _call(self, request: dict[str, Any]) -> dict[str, Any]:
        response = await self.execute(self._build_command(request))
        for line in reversed(response.output.strip().splitlines()):
            line = line.strip()
            if not line.startswith("{"):
                continue
            try:
                return json.loads(line)
            except json.JSONDecodeError:
                break
        logger.error(
            "sandbox_helper_failed",
            op=request.get("op"),
            exit_code=response.exit_code,
            output=response.output[:500],
        )
        raise BackendError(
            f"Sandbox helper '{request.get('op')}' failed "
            f"(exit code {response.exit_code}): {response.output[:500]}"
        )

    async def ls_info(self, path: str) -> list[FileInfo]:
        data = await self._call({"op": "ls", "path": path or "/"})
        return sorted((FileInfo(**entry) for entry in data.get("entries", [])), key=lambda i: i.path)

    async def read(self, file_path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        data = await self._call({"op": "read_raw", "path": file_path})
        error = data.get("error")
        if error == "file_not_found":
            return f"Error: File '{file_path}' not found"
        if error:
            return f"Error reading file '{file_path}': {_describe(data)}"
        return format_read_response(FileData(**data), offset, limit)

    async def read_raw(self, file_path: str) -> FileData:
        data = await self._call({"op": "read_raw", "path": file_path})
        if data.get("error"):
            raise FileNotFoundError(file_path)
        return FileData(**data)

    async def write(self, file_path: str, content: str) -> WriteResult:
        data = await self._call({"op": "write", "path": file_path, "content": content})
        if data.get("error") == "exists":
            return WriteResult(
                success=False,
                path=file_path,
                error=(
                    f"Cannot write to {file_path} because it already exists. "
                    "Read and then make an edit, or write to a new path."
                ),
            )
        if data.get("error"):
            return WriteResult(
                success=False, path=file_path, error=f"Error writing file '{file_path}': {_describe(data)}"
            )
        return WriteResult(success=True, path=file_path)

    async def edit(
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> EditResult:
        if old_string == new_string:
            return EditResult(
                success=False,
                path=file_path,
                error="Error: old_string and new_string must be different",
            )
        if not old_string:
            return EditResult(success=False, path=file_path, error="Error: old_string must not be empty")
        data = await self._call(
            {
                "op": "edit",
                "path": file_path,
                "old": old_string,
                "new": new_string,
                "replace_all": replace_all,
            }
        )
        error = data.get("error")
        if error == "file_not_found":
            return EditResult(success=False, path=file_path, error=f"Error: File '{file_path}' not found")
        if error == "no_match":
            return EditResult(
                success=False, path=file_path, error=f"Error: String not found in file: '{old_string}'"
            )
        if error == "multiple":
            return EditResult(
                success=False,
                path=file_path,
                error=(
                    f"Error: String '{old_string}' appears {data['occurrences']} times in file. "
                    "Use replace_all=true to replace all instances, or provide a more "
                    "specific string with surrounding context."
                ),
            )
        if error:
            return EditResult(
                success=False, path=file_path, error=f"Error editing file '{file_path}': {_describe(data)}"
            )
        return EditResult(success=True, path=file_path, occurrences=data.get("occurrences", 1))

    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        try:
            re.compile(pattern)
        except re.error as e:
            return f"Invalid regex pattern: {e}"
        request = {
            "op": "grep",
            "pattern": pattern,
            "path": path or "/",
            "glob": translate_glob(glob) + r"\Z" if glob else None,
        }
        data = await self._call(request)
        matches = [GrepMatch(path=p, line=n, text=t) for p, n, t in data.get("matches", [])]
        return sorted(matches, key=lambda m: (m.path, m.line))

    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        request = {
            "op": "glob",
            "pattern": translate_glob(pattern.lstrip("/")) + r"\Z",
            "path": path or "/",
        }
        data = await self._call(request)
        return sorted((FileInfo(**entry) for entry in data.get("files", [])), key=lambda i: i.path)

    async def upload_files(self, files: list[tuple[str, bytes]]) -> list[FileUploadResponse]:
        request = {
            "op": "upload",
            "files": [
                {"path": path, "content": base64.b64encode(content).decode("ascii")}
                for path, content in files
            ],
        }
        data = await self._call(request)
        return [FileUploadResponse(**item) for item in data.get("results", [])]

    async def download_files(self, paths: list[str]) -> list[FileDownloadResponse]:
        data = await self._call({"op": "download", "paths": paths})
        responses = []
        for item in data.get("results", []):
            content = item.get("content")
            responses.append(
                FileDownloadResponse(
                    path=item["path"],
                    content=base64.b64decode(content) if content is not None else None,
                    error=item.get("error"),
                )
            )
        return responses


__all__ = ["BaseSandbox"]
