"""
Abort signal for cooperative cancellation of a run.

Backed by asyncio.Event:
- synchronous check (``is_aborted``)
- awaitable wait (``wait``)
- a recorded reason
"""

import asyncio


class AbortSignal:
    """
    Cancellation flag checked by the step loop at every suspension point.

    Examples:
        >>> signal = AbortSignal()
        >>> signal.abort("User cancelled")
        >>> signal.is_aborted()
        True
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    def abort(self, reason: str = "Operation cancelled"):
        self._reason = reason
        self._event.set()

    def is_aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        """Block until ``abort()`` is called."""
        await self._event.wait()

    @property
    def reason(self) -> str | None:
        return self._reason

    def reset(self):
        """Clear the signal so it can be reused."""
        self._event.clear()
        self._reason = None


__all__ = ["AbortSignal"]
