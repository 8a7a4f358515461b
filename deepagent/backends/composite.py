"""
CompositeBackend - route paths to different backends by prefix.

Example:
    backend = CompositeBackend(
        default=StateBackend(state),
        routes={"/memories/": PersistentBackend(store)},
    )
    # "/memories/notes.md" is stored as "/notes.md" in the persistent backend
"""

from deepagent.backends.protocol import BackendProtocol, is_sandbox_backend
from deepagent.backends.utils import DEFAULT_READ_LIMIT
from deepagent.domain import (
    EditResult,
    ExecuteResponse,
    FileData,
    FileInfo,
    GrepMatch,
    WriteResult,
)


class CompositeBackend(BackendProtocol):
    def __init__(self, default: BackendProtocol, routes: dict[str, BackendProtocol]):
        self.default = default
        self.routes = {self._normalize_prefix(p): b for p, b in routes.items()}
        # Longest prefix wins
        self._sorted_routes = sorted(self.routes.items(), key=lambda item: len(item[0]), reverse=True)

    @staticmethod
    def _normalize_prefix(prefix: str) -> str:
        prefix = prefix if prefix.startswith("/") else "/" + prefix
        return prefix if prefix.endswith("/") else prefix + "/"

    @property
    def supports_execution(self) -> bool:
        return is_sandbox_backend(self.default)

    @property
    def id(self) -> str:
        return getattr(self.default, "id", "composite")

    def _route(self, path: str) -> tuple[BackendProtocol, str, str]:
        """Return (backend, stripped_path, prefix)."""
        for prefix, backend in self._sorted_routes:
            if path.startswith(prefix) or path + "/" == prefix:
                stripped = "/" + path[len(prefix) :]
                return backend, stripped, prefix
        return self.default, path, ""

    @staticmethod
    def _with_prefix(prefix: str, path: str) -> str:
        if not prefix:
            return path
        return prefix.rstrip("/") + path

    async def ls_info(self, path: str) -> list[FileInfo]:
        backend, stripped, prefix = self._route(path)
        if prefix:
            infos = await backend.ls_info(stripped)
            return [info.model_copy(update={"path": self._with_prefix(prefix, info.path)}) for info in infos]

        infos = await self.default.ls_info(path)
        if path in ("/", ""):
            # routes show up as directories of the root listing
            existing = {info.path for info in infos}
            for route_prefix in self.routes:
                if route_prefix not in existing:
                    infos.append(FileInfo(path=route_prefix, is_dir=True))
        return sorted(infos, key=lambda info: info.path)

    async def read(self, file_path: str, offset: int = 0, limit: int = DEFAULT_READ_LIMIT) -> str:
        backend, stripped, _ = self._route(file_path)
        result = await backend.read(stripped, offset, limit)
        if result.startswith("Error: File '") and stripped != file_path:
            return f"Error: File '{file_path}' not found"
        return result

    async def read_raw(self, file_path: str) -> FileData:
        backend, stripped, _ = self._route(file_path)
        return await backend.read_raw(stripped)

    async def write(self, file_path: str, content: str) -> WriteResult:
        backend, stripped, prefix = self._route(file_path)
        result = await backend.write(stripped, content)
        if not prefix:
            return result
        return result.model_copy(update={"path": file_path, "files_update": None})

    async def edit(
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        replace_all: bool = False,
    ) -> EditResult:
        backend, stripped, prefix = self._route(file_path)
        result = await backend.edit(stripped, old_string, new_string, replace_all)
        if not prefix:
            return result
        return result.model_copy(update={"path": file_path, "files_update": None})

    async def grep_raw(
        self,
        pattern: str,
        path: str | None = None,
        glob: str | None = None,
    ) -> list[GrepMatch] | str:
        search_path = path or "/"
        backend, stripped, prefix = self._route(search_path)
        if prefix:
            result = await backend.grep_raw(pattern, stripped, glob)
            if isinstance(result, str):
                return result
            return [m.model_copy(update={"path": self._with_prefix(prefix, m.path)}) for m in result]

        matches: list[GrepMatch] = []
        result = await self.default.grep_raw(pattern, search_path, glob)
        if isinstance(result, str):
            return result
        matches.extend(result)
        if search_path == "/":
            for route_prefix, route_backend in self.routes.items():
                routed = await route_backend.grep_raw(pattern, "/", glob)
                if isinstance(routed, str):
                    return routed
                matches.extend(
                    m.model_copy(update={"path": self._with_prefix(route_prefix, m.path)}) for m in routed
                )
        return sorted(matches, key=lambda m: (m.path, m.line))

    async def glob_info(self, pattern: str, path: str = "/") -> list[FileInfo]:
        backend, stripped, prefix = self._route(path)
        if prefix:
            infos = await backend.glob_info(pattern, stripped)
            return [info.model_copy(update={"path": self._with_prefix(prefix, info.path)}) for info in infos]

        infos = await self.default.glob_info(pattern, path)
        if path in ("/", ""):
            for route_prefix, route_backend in self.routes.items():
                for info in await route_backend.glob_info(pattern, "/"):
                    infos.append(info.model_copy(update={"path": self._with_prefix(route_prefix, info.path)}))
        return sorted(infos, key=lambda info: info.path)

    async def execute(self, command: str) -> ExecuteResponse:
        if not self.supports_execution:
            return ExecuteResponse(
                output="Error: command execution is not supported by the default backend",
                exit_code=1,
            )
        return await self.default.execute(command)


__all__ = ["CompositeBackend"]
