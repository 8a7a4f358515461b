"""
LocalSandbox - runs commands with bash on the local machine.

Intended for development and tests; there is no isolation beyond the
working directory.
"""

import asyncio
import os
import secrets
import time
from pathlib import Path

from deepagent.backends.sandbox import BaseSandbox
from deepagent.config import settings
from deepagent.domain import ExecuteResponse
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

_READ_CHUNK = 64 * 1024


class LocalSandbox(BaseSandbox):
    def __init__(
        self,
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
        max_output_bytes: int | None = None,
    ):
        """
        Args:
            cwd: Working directory for commands (default: process cwd)
            timeout: Seconds before a command is killed
            env: Extra environment variables layered over os.environ
            max_output_bytes: Combined stdout/stderr kept before truncating
        """
        self.cwd = str(cwd or os.getcwd())
        self.timeout = timeout or settings.sandbox_timeout
        self.env = env or {}
        self.max_output_bytes = max_output_bytes or settings.sandbox_max_output_bytes
        self._id = f"local-{int(time.time() * 1000)}-{secrets.token_hex(3)}"

    @property
    def id(self) -> str:
        return self._id

    async def _collect(self, stream: asyncio.StreamReader) -> tuple[bytes, bool]:
        buf = bytearray()
        truncated = False
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                break
            remaining = self.max_output_bytes - len(buf)
            if remaining > 0:
                buf.extend(chunk[:remaining])
            if len(chunk) > remaining:
                # keep draining so the process never blocks on a full pipe
                truncated = True
        return bytes(buf), truncated

    async def execute(self, command: str) -> ExecuteResponse:
        try:
            process = await asyncio.create_subprocess_exec(
                "bash",
                "-c",
                command,
                cwd=self.cwd,
                env={**os.environ, **self.env},
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error("local_sandbox_spawn_failed", sandbox_id=self._id, error=str(e))
            return ExecuteResponse(output=f"Error: {e}", exit_code=1)

        try:
            output, truncated = await asyncio.wait_for(
                self._collect(process.stdout), timeout=self.timeout
            )
            await process.wait()
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("local_sandbox_timeout", sandbox_id=self._id, timeout=self.timeout)
            return ExecuteResponse(
                output=f"Error: Command timed out after {self.timeout}s",
                exit_code=None,
            )
        except asyncio.CancelledError:
            process.kill()
            raise

        return ExecuteResponse(
            output=output.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
            truncated=truncated,
        )


__all__ = ["LocalSandbox"]
