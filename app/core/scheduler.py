"""Deferred callbacks with cancellable handles.

Game engines never touch the event loop directly. They ask a ``Scheduler`` to
run a callback after a delay and keep the returned handle so a restart or
teardown can cancel it. Two implementations:

- ``AsyncioScheduler``: backed by ``loop.call_later`` on the running loop.
- ``ManualScheduler``: a virtual clock advanced explicitly, for tests and
  offline simulation.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from app.core.logging import get_logger

logger = get_logger(__name__)


Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...


def _run_guarded(callback: Callback) -> None:
    try:
        callback()
    except Exception:  # noqa: BLE001
        # A failing game callback must not take the loop down with it
        logger.exception("Scheduled callback failed")


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return self._get_loop().call_later(
            max(0.0, float(delay)), _run_guarded, callback
        )


@dataclass(order=True)
class _ManualTimer:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    _cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Virtual-clock scheduler; nothing fires until ``advance`` is called."""

    def __init__(self) -> None:
        self.now: float = 0.0
        self._heap: list[_ManualTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        timer = _ManualTimer(
            due=self.now + max(0.0, float(delay)),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._heap, timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._heap if not t.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in order.

        Callbacks scheduled by fired callbacks run too if they fall inside the
        window. Returns the number of callbacks fired.
        """
        target = self.now + seconds
        fired = 0
        while self._heap and self._heap[0].due <= target + 1e-9:
            timer = heapq.heappop(self._heap)
            if timer.cancelled():
                continue
            self.now = timer.due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def run_all(self, limit: int = 10_000) -> int:
        """Fire everything pending, including newly scheduled work."""
        fired = 0
        while self._heap and fired < limit:
            timer = heapq.heappop(self._heap)
            if timer.cancelled():
                continue
            self.now = max(self.now, timer.due)
            timer.callback()
            fired += 1
        return fired
