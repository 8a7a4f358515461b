"""
Tool-result eviction.

Results larger than the configured token limit are written to the backend
under ``/large_tool_results/`` and replaced in the history by a short
pointer the model can follow with ``read_file``.
"""

import math
import re

from pydantic import BaseModel

from deepagent.backends.protocol import BackendProtocol
from deepagent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_EVICTION_TOKEN_LIMIT = 20000
CHARS_PER_TOKEN = 4
EVICTION_DIR = "/large_tool_results"

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class EvictResult(BaseModel):
    evicted: bool
    content: str
    evicted_path: str | None = None


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def sanitize_tool_call_id(tool_call_id: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", tool_call_id)[:100]


def should_evict(result: str, token_limit: int = DEFAULT_EVICTION_TOKEN_LIMIT) -> bool:
    return estimate_tokens(result) > token_limit


def eviction_path(tool_name: str, tool_call_id: str) -> str:
    return f"{EVICTION_DIR}/{tool_name}_{sanitize_tool_call_id(tool_call_id)}.txt"


async def evict_tool_result(
    result: str,
    tool_call_id: str,
    tool_name: str,
    backend: BackendProtocol,
    token_limit: int = DEFAULT_EVICTION_TOKEN_LIMIT,
) -> EvictResult:
    """
    Evict ``result`` to the backend when it is over ``token_limit``.

    A failed write keeps the original content in the history.
    """
    if not should_evict(result, token_limit):
        return EvictResult(evicted=False, content=result)

    path = eviction_path(tool_name, tool_call_id)
    write_result = await backend.write(path, result)
    if write_result.error:
        logger.warning(
            "tool_result_eviction_failed",
            tool_name=tool_name,
            tool_call_id=tool_call_id,
            path=path,
            error=write_result.error,
        )
        return EvictResult(evicted=False, content=result)

    tokens = estimate_tokens(result)
    logger.info("tool_result_evicted", tool_name=tool_name, path=path, tokens=tokens)
    return EvictResult(
        evicted=True,
        content=(
            f"Tool result too large (~{tokens} tokens). Content saved to {path}. "
            "Use read_file to access the full content."
        ),
        evicted_path=path,
    )


__all__ = [
    "CHARS_PER_TOKEN",
    "DEFAULT_EVICTION_TOKEN_LIMIT",
    "EVICTION_DIR",
    "EvictResult",
    "estimate_tokens",
    "evict_tool_result",
    "eviction_path",
    "sanitize_tool_call_id",
    "should_evict",
]
