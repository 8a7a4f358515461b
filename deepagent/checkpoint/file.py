"""
One JSON file per thread on local disk.
"""

import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from deepagent.checkpoint.base import BaseCheckpointSaver
from deepagent.config import settings
from deepagent.domain import Checkpoint, utc_now_iso
from deepagent.exceptions import CheckpointError
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_thread_id(thread_id: str) -> str:
    return _UNSAFE_CHARS.sub("_", thread_id)


class FileSaver(BaseCheckpointSaver):
    """
    Stores ``<dir>[/<namespace>]/<sanitized thread id>.json``.

    Saves go through a temp file and ``os.replace`` so a reader never sees a
    half-written checkpoint. Files that cannot be parsed load as None.
    Distinct thread ids that sanitize to the same name share a file.
    """

    def __init__(self, directory: str | Path | None = None, namespace: str | None = None):
        super().__init__(namespace)
        base = Path(directory or settings.checkpoint_dir)
        self.dir = base / sanitize_thread_id(namespace) if namespace else base

    def _path(self, thread_id: str) -> Path:
        return self.dir / f"{sanitize_thread_id(thread_id)}.json"

    def _write(self, path: Path, data: str) -> None:
        self.dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    async def save(self, checkpoint: Checkpoint) -> None:
        stored = checkpoint.model_copy(update={"updated_at": utc_now_iso()})
        try:
            self._write(self._path(checkpoint.thread_id), stored.model_dump_json(indent=2))
        except OSError as e:
            raise CheckpointError(f"Could not save checkpoint for thread '{checkpoint.thread_id}': {e}") from e

        logger.debug("checkpoint_file_saved", thread_id=checkpoint.thread_id, path=str(self._path(checkpoint.thread_id)))

    async def load(self, thread_id: str) -> Checkpoint | None:
        path = self._path(thread_id)
        if not path.is_file():
            return None
        try:
            return Checkpoint.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("checkpoint_file_unreadable", thread_id=thread_id, path=str(path), error=str(e))
            return None

    async def list(self) -> list[str]:
        if not self.dir.is_dir():
            return []
        return sorted(
            p.name[: -len(".json")]
            for p in self.dir.iterdir()
            if p.is_file() and p.name.endswith(".json") and not p.name.startswith(".tmp-")
        )

    async def delete(self, thread_id: str) -> None:
        self._path(thread_id).unlink(missing_ok=True)

    async def exists(self, thread_id: str) -> bool:
        return self._path(thread_id).is_file()


__all__ = ["FileSaver", "sanitize_thread_id"]
