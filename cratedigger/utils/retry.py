"""Retry/backoff transport shared by every outbound HTTP client.

:class:`RetryingExecutor` wraps a single network operation and retries it
with exponential backoff, but only for failures classified as *transient*
by :func:`is_transient_error`:

- low-level connection failures: reset, refused, timeout, DNS failure,
  address-in-use, host-unreachable, repeated DNS retry, broken pipe and
  TLS handshake errors;
- HTTP responses with a retryable status (429, 503).

Everything else, including other 4xx/5xx responses, propagates on the first
attempt.  Backoff before attempt *k+1* is
``base_delay * 2**(k-1) + uniform(0, max_jitter)``; the jitter keeps
concurrent callers from retrying in lock-step.
"""

from __future__ import annotations

import asyncio
import errno
import random
import socket
import ssl
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError
from cratedigger.utils.logging import get_logger

_T = TypeVar("_T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 2.0  # seconds
DEFAULT_MAX_JITTER = 0.1  # seconds

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({
    429,  # Too Many Requests
    503,  # Service Unavailable (MusicBrainz answers 503 when rate limited)
})

TRANSIENT_ERRNOS: frozenset[int] = frozenset({
    errno.ECONNRESET,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.EADDRINUSE,
    errno.EHOSTUNREACH,
    errno.EPIPE,
})

TRANSIENT_GAI_ERRORS: frozenset[int] = frozenset({
    socket.EAI_NONAME,
    socket.EAI_AGAIN,
})

_logger = get_logger(__name__)


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Return *exc* followed by its ``__cause__``/``__context__`` ancestors."""
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _is_transient_os_error(exc: BaseException) -> bool:
    if isinstance(exc, socket.gaierror):
        return exc.errno in TRANSIENT_GAI_ERRORS
    if isinstance(exc, ssl.SSLError):
        return True
    if isinstance(exc, TimeoutError):
        return True
    if isinstance(exc, OSError):
        return exc.errno in TRANSIENT_ERRNOS
    return False


def is_transient_error(exc: BaseException) -> bool:
    """Return ``True`` if *exc* is worth retrying.

    HTTP status errors are judged by status code alone.  Connection-level
    errors are judged by walking the exception chain, because httpx wraps
    the underlying ``OSError`` / ``ssl.SSLError``.
    """
    if isinstance(exc, OperationCancelledError):
        return False
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(exc, httpx.TimeoutException):
        return True
    if any(_is_transient_os_error(link) for link in _exception_chain(exc)):
        return True
    # httpx folds refused / unreachable / DNS failures into ConnectError and
    # does not always keep the OSError around.
    return isinstance(exc, httpx.ConnectError)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry ceiling and backoff parameters."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_jitter: float = DEFAULT_MAX_JITTER

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_jitter < 0:
            raise ValueError("base_delay and max_jitter must be non-negative")


class RetryingExecutor:
    """Executes network operations under a :class:`RetryPolicy`.

    Parameters
    ----------
    policy:
        Attempt ceiling and backoff parameters.
    sleep:
        Coroutine used to wait between attempts (injectable for tests).
    rng:
        Random source for the jitter term (injectable for tests).
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def compute_delay(self, attempt: int) -> float:
        """Return the wait (seconds) after failed attempt number *attempt* (1-based)."""
        backoff = self._policy.base_delay * (2 ** (attempt - 1))
        return backoff + self._rng.uniform(0.0, self._policy.max_jitter)

    async def execute(
        self,
        operation: Callable[[], Awaitable[_T]],
        cancel_token: CancellationToken | None = None,
        description: str = "request",
    ) -> _T:
        """Run *operation*, retrying transient failures.

        Raises
        ------
        OperationCancelledError
            If *cancel_token* fires before or during an attempt, or while
            waiting to retry.  No further attempts are made.
        Exception
            The last observed failure once attempts are exhausted, or the
            first non-transient failure.
        """
        max_attempts = self._policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                if cancel_token is not None:
                    # operation() is never called once the token has fired.
                    cancel_token.raise_if_cancelled()
                    return await cancel_token.run(operation())
                return await operation()
            except OperationCancelledError:
                raise
            except Exception as exc:
                if not is_transient_error(exc) or attempt == max_attempts:
                    raise

                delay = self.compute_delay(attempt)
                _logger.warning(
                    "http_retry_scheduled",
                    target=description,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay_ms=round(delay * 1000),
                    error=str(exc) or type(exc).__name__,
                )
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                    await cancel_token.run(self._sleep(delay))
                else:
                    await self._sleep(delay)

        # The loop always returns or raises; max_attempts >= 1 is enforced.
        raise AssertionError("unreachable")

    async def request(
        self,
        http: httpx.AsyncClient,
        method: str,
        url: str,
        cancel_token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one HTTP request through :meth:`execute`.

        Non-2xx responses are raised as ``httpx.HTTPStatusError`` inside the
        retried operation so that 429/503 are retried and everything else
        propagates immediately.
        """

        async def _send() -> httpx.Response:
            response = await http.request(method, url, **kwargs)
            response.raise_for_status()
            return response

        return await self.execute(_send, cancel_token, description=f"{method} {url}")
