"""Behavior every backend shares, run against each implementation"""

import pytest

from deepagent.backends import (
    CompositeBackend,
    FilesystemBackend,
    InMemoryStore,
    LocalSandbox,
    PersistentBackend,
    StateBackend,
)
from deepagent.domain import AgentState


@pytest.fixture(params=["state", "filesystem", "persistent", "sandbox", "composite"])
def backend_and_path(request, tmp_path):
    """A backend plus a fresh file path it can write to."""
    if request.param == "state":
        return StateBackend(AgentState()), "/notes.md"
    if request.param == "filesystem":
        return FilesystemBackend(root_dir=tmp_path, virtual_mode=True), "/notes.md"
    if request.param == "persistent":
        return PersistentBackend(InMemoryStore()), "/notes.md"
    if request.param == "sandbox":
        return LocalSandbox(cwd=tmp_path, timeout=30), str(tmp_path / "notes.md")
    composite = CompositeBackend(
        default=StateBackend(AgentState()),
        routes={"/memories/": PersistentBackend(InMemoryStore())},
    )
    return composite, "/memories/notes.md"


@pytest.mark.asyncio
async def test_read_after_write(backend_and_path):
    backend, path = backend_and_path

    assert (await backend.write(path, "alpha\nbeta")).success

    content = await backend.read(path)
    assert "alpha" in content
    assert "beta" in content


@pytest.mark.asyncio
async def test_second_write_is_refused(backend_and_path):
    backend, path = backend_and_path
    await backend.write(path, "first")

    result = await backend.write(path, "second")

    assert not result.success
    assert "first" in await backend.read(path)
    assert "second" not in await backend.read(path)


@pytest.mark.asyncio
async def test_edit_without_match_changes_nothing(backend_and_path):
    backend, path = backend_and_path
    await backend.write(path, "alpha\nbeta")

    result = await backend.edit(path, "gamma", "delta")

    assert not result.success
    assert result.error
    content = await backend.read(path)
    assert "beta" in content
    assert "delta" not in content


@pytest.mark.asyncio
async def test_edit_with_one_match(backend_and_path):
    backend, path = backend_and_path
    await backend.write(path, "alpha\nbeta")

    result = await backend.edit(path, "beta", "gamma")

    assert result.success
    assert result.occurrences == 1
    content = await backend.read(path)
    assert "gamma" in content
    assert "beta" not in content
