"""
Storage backend protocol.

Responsibilities:
- Uniform file operations (list, read, write, edit, grep, glob)
- Structured failure values for expected conditions

Does NOT handle:
- Event emission (tools do that)
- Agent state bookkeeping beyond the file map
"""

from abc import ABC, abstractmethod

from deepagent.backends.utils import DEFAULT_READ_LIMIT
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


class BackendProtocol(ABC):
    """
    Storage substrate shared by the filesystem tools.

    Expected, recoverable conditions (missing file, ambiguous edit, bad
    pattern) are reported as values. Only unrecoverable failures raise,
    and those should be ``deepagent.exceptions.BackendError``.
    """

    @property
    def supports_execution(self) -> bool:
        return False

    @abstractmethod
    async def ls_info(self, path: str) -> list[FileInfo]:
        """List immediate children of ``path`` sorted by path."""

    @abstractmethod
    async def read(
        self,
        file_path: str,
        offset: int = 0,
        limit: int = DEFAULT_READ_LIMIT,
    ) -> str:
        """
        Read a file rendered with line numbers.

        Never raises for a missing path; returns an ``Error: ...`` string.
        """

    @abstractmethod
    async def read_raw(self, file_path: str) -> FileData:
        """
        Read a file as FileData.

        Raises:
            FileNotFoundError: If the file does not exist
        """

    @abstractmethod
    async def write(self, file_path: str, content: str) -> WriteResult:
        """Create a new file. Existing files are never overwritten."""

    @abstractmethod
    async def edit(
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> EditResult:
        """Find/replace inside a file; requires a unique match unless replace_all."""

    @abstractmethod
    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        """Regex search; returns an error message for an invalid pattern."""

    @abstractmethod
    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        """Files matching a glob relative to ``path``, sorted by path."""


class SandboxBackendProtocol(BackendProtocol):
    """Backend that can also run shell commands."""

    @property
    def supports_execution(self) -> bool:
        return True

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique sandbox identifier."""

    @abstractmethod
    async def execute(self, command: str) -> ExecuteResponse:
        """Run a command with a bounded timeout and bounded output."""

    @abstractmethod
    async def upload_files(self, files: list[tuple[str, bytes]]) -> list[FileUploadResponse]:
        """Upload files; failures are reported per file."""

    @abstractmethod
    async def download_files(self, paths: list[str]) -> list[FileDownloadResponse]:
        """Download files; failures are reported per file."""


def is_sandbox_backend(backend: BackendProtocol) -> bool:
    return bool(getattr(backend, "supports_execution", False))


__all__ = ["BackendProtocol", "SandboxBackendProtocol", "is_sandbox_backend"]
