"""Deferred-callback scheduling primitives.

The engine never waits on anything itself. The only thing it defers is the
unhandled-rejection check, which runs one "turn" after settlement so that
observers attached right after a rejection still count.

InlineScheduler: no turn boundary, the callback runs immediately
ManualScheduler: explicit FIFO queue drained by the owner (tests, custom loops)
AsyncioScheduler: loop.call_soon on the running event loop, held back without one
"""

from __future__ import annotations

import asyncio
import atexit
import logging
import weakref
from collections import deque
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from .enums import SchedulerKind

logger = logging.getLogger(__name__)


@runtime_checkable
class IScheduler(Protocol):
    """Scheduler interface used by the settlement engine."""

    def call_soon(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on a later turn."""
        ...


class InlineScheduler:
    """Runs callbacks immediately. Exceptions reach the caller unchanged."""

    def call_soon(self, callback: Callable[[], None]) -> None:
        callback()


class ManualScheduler:
    """Deterministic scheduler for tests.

    Callbacks accumulate until ``run_pending()`` is called.
    """

    def __init__(self) -> None:
        self._queue: deque[Callable[[], None]] = deque()

    def call_soon(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def run_pending(self) -> int:
        """Drain the queue, including callbacks queued while draining.

        Returns the number of callbacks run. A callback that raises is
        dropped from the queue before the exception propagates.
        """
        ran = 0
        while self._queue:
            callback = self._queue.popleft()
            ran += 1
            callback()
        return ran

    def take_pending(self) -> list[Callable[[], None]]:
        """Remove and return queued callbacks without running them."""
        taken = list(self._queue)
        self._queue.clear()
        return taken

    def clear(self) -> None:
        self._queue.clear()


class AsyncioScheduler:
    """Schedules onto an asyncio event loop.

    With no explicit loop the running loop is looked up per call. Outside a
    running loop callbacks are held in a backlog: the next ``call_soon`` made
    under a running loop moves them onto it, ``run_pending()`` drains them
    by hand, and whatever is left runs at interpreter exit.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._backlog = ManualScheduler()

    def call_soon(self, callback: Callable[[], None]) -> None:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop, holding callback")
                self._backlog.call_soon(callback)
                _backlogged.add(self)
                return
        for held in self._backlog.take_pending():
            loop.call_soon(held)
        loop.call_soon(callback)

    @property
    def pending(self) -> int:
        """Callbacks held back for lack of a running loop."""
        return self._backlog.pending

    def run_pending(self) -> int:
        """Run held-back callbacks now. Same contract as ``ManualScheduler``."""
        return self._backlog.run_pending()


_backlogged: weakref.WeakSet[AsyncioScheduler] = weakref.WeakSet()


@atexit.register
def _drain_backlogs() -> None:
    for scheduler in list(_backlogged):
        while scheduler.pending:
            try:
                scheduler.run_pending()
            except Exception:
                logger.exception("Deferred callback failed at interpreter exit")


def create_scheduler(
    kind: SchedulerKind,
    loop: asyncio.AbstractEventLoop | None = None,
) -> InlineScheduler | ManualScheduler | AsyncioScheduler:
    """Create a scheduler for the given kind.

    - INLINE: immediate execution, no turn boundary
    - MANUAL: caller drains with ``run_pending()``
    - ASYNCIO: ``loop.call_soon`` (running loop unless one is given)
    """
    if kind == SchedulerKind.INLINE:
        return InlineScheduler()
    if kind == SchedulerKind.MANUAL:
        return ManualScheduler()
    return AsyncioScheduler(loop=loop)
