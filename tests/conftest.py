"""
Shared fixtures.

``ScriptedModel`` replays one scripted turn per model call:
- a string is streamed as text
- a dict ``{"text": ..., "tool_calls": [(name, args[, id]), ...]}`` streams
  optional text followed by tool calls (``args`` may be a raw JSON string)
- an exception instance is raised when the call is made
Once the script is exhausted every call answers "Done.".
"""

import copy
import json

import pytest
from pydantic import PrivateAttr

from deepagent.backends import StateBackend
from deepagent.domain import AgentState
from deepagent.llm import Model, StreamChunk
from deepagent.runtime import ToolContext


def _chunks_for(turn, call_number: int) -> list[StreamChunk]:
    if isinstance(turn, str):
        return [StreamChunk(content=turn), StreamChunk(finish_reason="stop")]

    chunks = []
    if turn.get("text"):
        chunks.append(StreamChunk(content=turn["text"]))

    deltas = []
    for index, call in enumerate(turn.get("tool_calls", [])):
        name, args = call[0], call[1]
        call_id = call[2] if len(call) > 2 else f"call_{call_number}_{index}"
        deltas.append(
            {
                "index": index,
                "id": call_id,
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": args if isinstance(args, str) else json.dumps(args),
                },
            }
        )
    if deltas:
        chunks.append(StreamChunk(tool_calls=deltas))
    chunks.append(StreamChunk(finish_reason="tool_calls" if deltas else "stop"))
    return chunks


class ScriptedModel(Model):
    """Mock model replaying scripted turns and recording every request."""

    id: str = "test/scripted"
    name: str = "scripted"

    _turns: list = PrivateAttr(default_factory=list)
    _calls: list = PrivateAttr(default_factory=list)

    def __init__(self, turns=None, **data):
        super().__init__(**data)
        self._turns = list(turns or [])

    @property
    def calls(self) -> list[dict]:
        return self._calls

    @property
    def remaining_turns(self) -> int:
        return len(self._turns)

    async def arun_stream(self, messages, tools=None):
        self._calls.append({"messages": copy.deepcopy(messages), "tools": tools})
        turn = self._turns.pop(0) if self._turns else "Done."
        if isinstance(turn, Exception):
            raise turn

        for chunk in _chunks_for(turn, len(self._calls)):
            yield chunk

        yield StreamChunk(usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})


class RecordingSink:
    """Event sink collecting everything written to it."""

    def __init__(self):
        self.events = []

    async def write(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_cls) -> list:
        return [e for e in self.events if isinstance(e, event_cls)]


@pytest.fixture
def make_model():
    def _make(*turns, **kwargs) -> ScriptedModel:
        return ScriptedModel(list(turns), **kwargs)

    return _make


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def state():
    return AgentState()


@pytest.fixture
def context(state, sink):
    return ToolContext(state=state, backend=StateBackend(state), run_id="test_run", wire=sink)
