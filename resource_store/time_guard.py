"""Deadline racing for resource loaders."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any


def as_future(value: Any) -> asyncio.Future:
    """Normalize a loader result to a future.

    Plain values become already-resolved futures and coroutines are scheduled
    as tasks, so callers never branch on whether a loader was async.
    """
    if isinstance(value, asyncio.Future):
        return value
    if inspect.isawaitable(value):
        return asyncio.ensure_future(value)
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def failed_future(exc: BaseException) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_exception(exc)
    return future


def discard_result(future: asyncio.Future) -> None:
    """Done callback for results nobody will read anymore."""
    if not future.cancelled():
        future.exception()


class TimeGuard:
    """A deadline that can be raced against a pending value.

    The guard never cancels the value it races; it only reports whether the
    deadline fired first.
    """

    def __init__(self, timeout_ms: int) -> None:
        loop = asyncio.get_running_loop()
        self.timeout_ms = timeout_ms
        self._deadline: asyncio.Future = loop.create_future()
        self._handle = loop.call_later(timeout_ms / 1000, self._expire)

    def _expire(self) -> None:
        if not self._deadline.done():
            self._deadline.set_result(None)

    @property
    def is_pending(self) -> bool:
        """True until the deadline fires. Cancelling the guard keeps it pending."""
        return not self._deadline.done() or self._deadline.cancelled()

    def cancel(self) -> None:
        self._handle.cancel()
        if not self._deadline.done():
            self._deadline.cancel()

    async def race(self, pending: asyncio.Future) -> None:
        """Wait for ``pending`` or the deadline, whichever settles first.

        When ``pending`` wins the deadline is cancelled, so ``is_pending`` stays
        True. A fired deadline leaves ``is_pending`` False.
        """
        await asyncio.wait({pending, self._deadline}, return_when=asyncio.FIRST_COMPLETED)
        if pending.done():
            self.cancel()


__all__ = ["TimeGuard", "as_future", "discard_result", "failed_future"]
