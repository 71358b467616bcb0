"""
Opt-in retry for idempotent calls.

The client itself never retries: deploy, destroy and attach are not safe to
repeat. A caller that knows an operation is idempotent (listings, queries)
can wrap that single call:

    zones = await RetryPolicy().call(client.list_zones, available=True)

Only a TransportError is retried. A ProtocolError or RemoteError means the
service received the request, so repeating it changes nothing.
"""

import logging
from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import TransportError

logger = logging.getLogger(__name__)


def is_transient_error(exception: BaseException) -> bool:
    """True when nothing was received from the service."""
    return isinstance(exception, TransportError)


class RetryPolicy:
    """Attempt count and exponential backoff (1s, 2s, 4s ... capped) for ``call``."""

    def __init__(self, attempts: int = 3, backoff_seconds: float = 1.0, max_backoff_seconds: float = 10.0) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        if backoff_seconds < 0 or max_backoff_seconds < backoff_seconds:
            raise ValueError("backoff must satisfy 0 <= backoff_seconds <= max_backoff_seconds")
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(attempts=1)

    async def call(self, operation: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """
        Await ``operation(*args, **kwargs)``, repeating it on TransportError.

        Raises:
            The last TransportError once attempts run out; any other error
            on first occurrence
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=self.max_backoff_seconds),
            retry=retry_if_exception(is_transient_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(operation, *args, **kwargs)
