"""
Value types returned by storage backends.

Every backend returns these same shapes so callers can branch on
``success`` without inspecting implementation-specific fields.
"""

from typing import Literal

from pydantic import BaseModel, Field

from deepagent.domain.state import FileData


class FileInfo(BaseModel):
    """Listing entry; directory paths end with '/'."""

    path: str
    is_dir: bool = False
    size: int | None = None
    modified_at: str | None = None


class GrepMatch(BaseModel):
    path: str
    line: int = Field(ge=1, description="1-based line number")
    text: str


class WriteResult(BaseModel):
    success: bool
    path: str | None = None
    error: str | None = None
    # Set by backends that live inside agent state; None for external storage
    files_update: dict[str, FileData] | None = None


class EditResult(BaseModel):
    success: bool
    path: str | None = None
    occurrences: int = 0
    error: str | None = None
    files_update: dict[str, FileData] | None = None


class ExecuteResponse(BaseModel):
    """Result of a sandbox command; exit_code None means timeout or unknown."""

    output: str
    exit_code: int | None = None
    truncated: bool = False


FileOperationError = Literal[
    "file_not_found",
    "permission_denied",
    "is_directory",
    "invalid_path",
]


class FileUploadResponse(BaseModel):
    path: str
    error: FileOperationError | None = None


class FileDownloadResponse(BaseModel):
    path: str
    content: bytes | None = None
    error: FileOperationError | None = None


__all__ = [
    "EditResult",
    "ExecuteResponse",
    "FileDownloadResponse",
    "FileInfo",
    "FileOperationError",
    "FileUploadResponse",
    "GrepMatch",
    "WriteResult",
]
