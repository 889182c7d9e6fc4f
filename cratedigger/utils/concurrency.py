"""Concurrency helpers for provider fan-out.

:func:`gather_settled` is the asyncio counterpart of "wait for every task to
settle": all awaitables run concurrently, nothing short-circuits on the first
failure, and the outcome list keeps the order of the inputs (not the order
of completion).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

_T = TypeVar("_T")


@dataclass(frozen=True)
class Settled(Generic[_T]):
    """Outcome of one awaitable: either ``value`` or ``error`` is set."""

    value: _T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(awaitables: list[Awaitable[_T]]) -> list[Settled[_T]]:
    """Run *awaitables* concurrently and wait for all of them to settle.

    Exceptions (``Exception`` subclasses) are captured per item.  Cancellation
    of the calling task still propagates.
    """
    raw = await asyncio.gather(*awaitables, return_exceptions=True)

    outcomes: list[Settled[_T]] = []
    for item in raw:
        if isinstance(item, asyncio.CancelledError):
            raise item
        if isinstance(item, BaseException):
            outcomes.append(Settled(error=item))
        else:
            outcomes.append(Settled(value=item))
    return outcomes
