"""Host timers: one-shot and repeating callbacks on a pluggable clock.

Two clocks are provided:

* :class:`ManualClock` -- deterministic virtual time, advanced explicitly
  by the host (``clock.advance(0.5)``).  This is the default.
* :class:`AsyncioClock` -- delegates to an ``asyncio`` event loop's
  ``call_later``, for hosts that run a real loop.

:class:`TimerTable` issues integer timer ids from a single counter shared
by one-shot and repeating timers, so either kind can be cancelled by id.
Cancelling an unknown or already-finished id is a no-op.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from global_sandbox.core.interfaces import Clock, TimerHandle
from global_sandbox.core.types import TimerId

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------

@dataclass(order=True)
class _ScheduledCall:
    when: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Virtual clock that only moves when :meth:`advance` is called.

    Due callbacks run in order of their scheduled time, ties broken by
    scheduling order.  A callback scheduled while advancing runs in the
    same :meth:`advance` call if it falls due before the target time.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[_ScheduledCall] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> _ScheduledCall:
        call = _ScheduledCall(self._now + max(delay, 0.0), next(self._seq), callback, args)
        heapq.heappush(self._queue, call)
        return call

    def advance(self, seconds: float) -> int:
        """Move time forward by *seconds*, running every callback that falls due.

        Returns the number of callbacks run.  Exceptions raised by a
        callback propagate; time stops at that callback's due time.
        """
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0].when <= target:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self._now = call.when
            call.callback(*call.args)
            ran += 1
        self._now = target
        return ran

    def run_pending(self) -> int:
        """Run every callback already due without moving time."""
        return self.advance(0.0)

    @property
    def pending(self) -> int:
        """Number of scheduled, not cancelled callbacks."""
        return sum(1 for call in self._queue if not call.cancelled)


class AsyncioClock:
    """Clock backed by an ``asyncio`` event loop.

    When *loop* is omitted the running loop is looked up on each call, so
    the clock can be created outside of a coroutine.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def time(self) -> float:
        return self.loop.time()

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback, *args)


# ---------------------------------------------------------------------------
# Timer table
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class _Timer:
    callback: Callable[..., Any]
    delay: float
    args: tuple[Any, ...]
    repeating: bool
    handle: TimerHandle | None = None


class TimerTable:
    """Active timers of one host, addressed by :data:`TimerId`.

    Parameters
    ----------
    clock:
        Scheduler used to arm timers.
    min_interval_delay:
        Lower bound in seconds for repeating timers.
    """

    def __init__(self, clock: Clock, *, min_interval_delay: float = 0.001) -> None:
        self._clock = clock
        self._min_interval_delay = min_interval_delay
        self._timers: dict[TimerId, _Timer] = {}
        self._ids = itertools.count(1)

    def set_timeout(
        self, callback: Callable[..., Any], delay: float = 0.0, *args: Any
    ) -> TimerId:
        """Run ``callback(*args)`` once after *delay* seconds."""
        return self._start(_Timer(callback, max(delay, 0.0), args, repeating=False))

    def set_interval(
        self, callback: Callable[..., Any], delay: float = 0.0, *args: Any
    ) -> TimerId:
        """Run ``callback(*args)`` every *delay* seconds until cancelled."""
        delay = max(delay, self._min_interval_delay)
        return self._start(_Timer(callback, delay, args, repeating=True))

    def cancel(self, timer_id: TimerId) -> bool:
        """Cancel *timer_id*.  Returns ``True`` if it was still active."""
        timer = self._timers.pop(timer_id, None)
        if timer is None:
            return False
        if timer.handle is not None:
            timer.handle.cancel()
        logger.debug("cancelled timer %d", timer_id)
        return True

    def is_active(self, timer_id: TimerId) -> bool:
        return timer_id in self._timers

    def active(self) -> set[TimerId]:
        """Return the ids of timers that may still fire."""
        return set(self._timers)

    def __len__(self) -> int:
        return len(self._timers)

    def _start(self, timer: _Timer) -> TimerId:
        timer_id = TimerId(next(self._ids))
        self._timers[timer_id] = timer
        self._arm(timer_id, timer)
        return timer_id

    def _arm(self, timer_id: TimerId, timer: _Timer) -> None:
        timer.handle = self._clock.call_later(timer.delay, self._fire, timer_id)

    def _fire(self, timer_id: TimerId) -> None:
        timer = self._timers.get(timer_id)
        if timer is None:
            return
        if timer.repeating:
            # Re-armed first so the callback may cancel its own interval.
            self._arm(timer_id, timer)
        else:
            del self._timers[timer_id]
        timer.callback(*timer.args)
