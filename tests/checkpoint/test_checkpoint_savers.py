"""Checkpoint saver tests, run against every saver"""

import pytest

from deepagent.backends import InMemoryStore
from deepagent.checkpoint import FileSaver, KeyValueStoreSaver, MemorySaver, sanitize_thread_id
from deepagent.domain import (
    AgentState,
    Checkpoint,
    FileData,
    InterruptData,
    PendingToolCall,
    TodoItem,
    TodoStatus,
    assistant_message,
    user_message,
)
from deepagent.exceptions import CheckpointError


def make_checkpoint(thread_id: str = "t1", step: int = 1, **kwargs) -> Checkpoint:
    state = AgentState(
        todos=[TodoItem(id="1", content="Write notes", status=TodoStatus.IN_PROGRESS)],
        files={
            "/notes.md": FileData(
                content=["hello", "world"],
                created_at="2024-01-01T00:00:00+00:00",
                modified_at="2024-01-02T00:00:00+00:00",
            )
        },
    )
    return Checkpoint(
        thread_id=thread_id,
        step=step,
        messages=[user_message("hi"), assistant_message("hello")],
        state=state,
        **kwargs,
    )


@pytest.fixture(params=["memory", "file", "kv"])
def make_saver(request, tmp_path):
    storage: dict = {}
    store = InMemoryStore()

    def _make(namespace: str | None = None):
        if request.param == "memory":
            return MemorySaver(namespace=namespace, storage=storage)
        if request.param == "file":
            return FileSaver(tmp_path, namespace=namespace)
        return KeyValueStoreSaver(store, namespace=namespace)

    return _make


class TestCheckpointSavers:
    @pytest.mark.asyncio
    async def test_round_trip(self, make_saver):
        saver = make_saver()
        interrupt = InterruptData(
            tool_call=PendingToolCall(tool_call_id="call_1", tool_name="write_file", args={"file_path": "/x"}),
            step=1,
        )
        checkpoint = make_checkpoint(interrupt=interrupt)

        await saver.save(checkpoint)
        loaded = await saver.load("t1")

        assert loaded is not None
        assert loaded.step == 1
        assert loaded.messages == checkpoint.messages
        assert loaded.state == checkpoint.state
        assert loaded.interrupt == interrupt
        assert loaded.created_at == checkpoint.created_at

    @pytest.mark.asyncio
    async def test_unknown_thread(self, make_saver):
        saver = make_saver()
        assert await saver.load("missing") is None
        assert not await saver.exists("missing")

    @pytest.mark.asyncio
    async def test_save_overwrites_thread(self, make_saver):
        saver = make_saver()
        await saver.save(make_checkpoint(step=1))
        await saver.save(make_checkpoint(step=2))

        loaded = await saver.load("t1")
        assert loaded.step == 2
        assert await saver.list() == ["t1"]

    @pytest.mark.asyncio
    async def test_threads_are_independent(self, make_saver):
        saver = make_saver()
        await saver.save(make_checkpoint("a", step=1))
        await saver.save(make_checkpoint("b", step=5))

        assert (await saver.load("a")).step == 1
        assert (await saver.load("b")).step == 5
        assert sorted(await saver.list()) == ["a", "b"]

        await saver.delete("a")
        await saver.delete("never-saved")
        assert await saver.load("a") is None
        assert await saver.exists("b")

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self, make_saver):
        first = make_saver("app-one")
        second = make_saver("app-two")

        await first.save(make_checkpoint("shared", step=3))

        assert (await first.load("shared")).step == 3
        assert await second.load("shared") is None
        assert await second.list() == []


class TestMemorySaver:
    @pytest.mark.asyncio
    async def test_loaded_checkpoint_is_a_copy(self):
        saver = MemorySaver()
        await saver.save(make_checkpoint())

        loaded = await saver.load("t1")
        loaded.messages.append(user_message("mutated"))
        loaded.state.files.clear()

        again = await saver.load("t1")
        assert len(again.messages) == 2
        assert "/notes.md" in again.state.files

    @pytest.mark.asyncio
    async def test_clear_and_size(self):
        storage: dict = {}
        one = MemorySaver(namespace="one", storage=storage)
        two = MemorySaver(namespace="two", storage=storage)
        await one.save(make_checkpoint("a"))
        await two.save(make_checkpoint("b"))

        assert one.size() == 1
        one.clear()
        assert one.size() == 0
        assert two.size() == 1


class TestFileSaver:
    @pytest.mark.asyncio
    async def test_unreadable_file_loads_as_none(self, tmp_path):
        saver = FileSaver(tmp_path)
        (tmp_path / "broken.json").write_text("{not valid json")

        assert await saver.load("broken") is None

    @pytest.mark.asyncio
    async def test_thread_id_is_sanitized(self, tmp_path):
        saver = FileSaver(tmp_path, namespace="ns")
        await saver.save(make_checkpoint("user/1:abc"))

        assert sanitize_thread_id("user/1:abc") == "user_1_abc"
        assert (tmp_path / "ns" / "user_1_abc.json").is_file()
        assert (await saver.load("user/1:abc")).thread_id == "user/1:abc"

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, tmp_path):
        saver = FileSaver(tmp_path)
        await saver.save(make_checkpoint())
        await saver.save(make_checkpoint(step=2))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["t1.json"]

    @pytest.mark.asyncio
    async def test_write_failure_raises_checkpoint_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        saver = FileSaver(blocker)

        with pytest.raises(CheckpointError, match="t1"):
            await saver.save(make_checkpoint())

    @pytest.mark.asyncio
    async def test_directory_keyword(self, tmp_path):
        saver = FileSaver(directory=tmp_path / "checkpoints")
        await saver.save(make_checkpoint())

        assert (tmp_path / "checkpoints" / "t1.json").is_file()
