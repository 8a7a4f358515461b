"""
Exponential-backoff retry for async network calls.

Only transient failures are worth retrying: the connection dropped, the
call timed out, or the server said to come back later. Callers pass the
exception types that mean exactly that for their client (``OPENAI_RETRYABLE``
for the model adapter, ``httpx.TransportError`` for the web tools). Anything
else, such as a 4xx response or a validation error, is raised on the first
attempt since repeating the same request gives the same answer.
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Retry diagnostics go through the stdlib logger that structlog renders
logger = logging.getLogger(__name__)

# Builtin transport failures; clients with their own error types pass those
RETRYABLE_EXCEPTIONS = (ConnectionError, TimeoutError)


def retry_async(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: tuple[type[BaseException], ...] = RETRYABLE_EXCEPTIONS,
):
    """
    Retry the decorated coroutine on ``exceptions``.

    Waits grow exponentially between ``min_wait`` and ``max_wait`` seconds.
    After ``max_attempts`` the last exception is re-raised unchanged.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
