"""Explicit cancellation tokens passed through every suspending call.

A :class:`CancellationToken` is constructed and owned by whoever starts a
unit of work (normally the job runner) and handed down to the orchestrator,
the fan-out fetcher, the provider adapters and finally the retry transport.
Nothing here is module-level state, so concurrent test runs never share a
token by accident.

Scopes nest: :meth:`CancellationToken.child` derives a shorter-lived token
that is cancelled together with its parent but can also be cancelled on its
own (the fan-out fetcher uses this for per-provider timeouts).
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Awaitable
from typing import TypeVar

from cratedigger.utils.errors import OperationCancelledError

_T = TypeVar("_T")


class CancellationToken:
    """Cooperative cancellation signal with awaitable racing helpers."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._children: weakref.WeakSet[CancellationToken] = weakref.WeakSet()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation to this token and every derived child token.

        Cancelling an already-cancelled token is a no-op; the first reason wins.
        """
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        for child in list(self._children):
            child.cancel(reason)

    def child(self) -> CancellationToken:
        """Return a derived token that is cancelled whenever this one is."""
        token = CancellationToken()
        if self.cancelled:
            token.cancel(self._reason or "cancelled")
        else:
            self._children.add(token)
        return token

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` if the token has fired."""
        if self.cancelled:
            raise OperationCancelledError(f"Operation cancelled: {self._reason}")

    async def run(self, awaitable: Awaitable[_T]) -> _T:
        """Await *awaitable*, abandoning it as soon as the token fires.

        The inner task is cancelled (aborting any in-flight HTTP request) and
        :class:`OperationCancelledError` is raised.  If the awaitable finishes
        in the same loop iteration as the cancellation, its result wins.
        A coroutine handed to an already-cancelled token is closed unstarted.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise
        waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelledError(f"Operation cancelled: {self._reason}")

    async def sleep(self, seconds: float) -> None:
        """Sleep for *seconds*, waking early with an error if cancelled."""
        await self.run(asyncio.sleep(max(0.0, seconds)))
