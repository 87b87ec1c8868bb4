"""
Scheduler abstractions for deferred, cancellable callbacks.

This module provides a small "run this after N milliseconds" facility behind a
protocol, so that components needing timers (such as TimedMap) never call
threading or asyncio directly. The same component can then run on real timer
threads in production, inside an asyncio event loop, or against a virtual
clock in tests.

The key insight: depending on a Scheduler abstraction instead of real timers
makes time-based behaviour testable and deterministic. A test can advance a
ManualScheduler by exactly 50ms and assert on the result, without sleeping
and without flaky scheduler slack.
"""

import asyncio
import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    """
    Handle to a scheduled action that can be cancelled before it fires.

    threading.Timer and asyncio.TimerHandle both satisfy this protocol as-is.
    """

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """
    Abstract timer facility protocol.

    **Conceptual**: A Scheduler is any object that can answer "run this action
    after N milliseconds" and hand back a handle that cancels it. Consumers
    accept a Scheduler (injected via constructor) and never touch timer
    primitives themselves.

    **Contract**:
      - The callback runs at most once, no earlier than `delay_ms` after the
        call (the delay is a lower bound, not an exact deadline).
      - Calling `cancel()` on the returned handle before the callback starts
        guarantees it never runs. Cancelling twice, or after firing, is a no-op.
      - No ordering is promised between callbacks of different calls beyond
        each one firing after its own delay.

    **Example**:
        # In production:
        cache = TimedMap(scheduler=ThreadingScheduler())

        # In tests:
        scheduler = ManualScheduler()
        cache = TimedMap(scheduler=scheduler)
        scheduler.advance(50)
    """

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> Cancellable:
        """
        Schedule `callback` to run once after `delay_ms` milliseconds.

        Returns:
            Handle whose cancel() prevents the callback from running.
        """
        ...


class ThreadingScheduler:
    """
    Scheduler backed by one daemon threading.Timer per scheduled action.

    **Conceptual**: Use this where no event loop is running. Each callback
    fires on its own timer thread, so anything it mutates must be guarded by
    a lock on the consumer side (TimedMap does this).

    Timer threads are daemonic, so pending expiries never keep the
    interpreter alive at shutdown.
    """

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> threading.Timer:
        """
        Start a daemon timer that runs `callback` after `delay_ms` milliseconds.

        Returns:
            The started threading.Timer (its cancel() stops a pending run).
        """
        timer = threading.Timer(delay_ms / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop's call_later.

    **Conceptual**: Inside an event loop everything runs on one thread with
    cooperative scheduling, which is exactly the model TimedMap was designed
    under. Callbacks run on the loop thread between other tasks.

    If no loop is given, the running loop is looked up at scheduling time, so
    call_later() must then be invoked from inside a coroutine or callback.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)


class _ManualHandle:
    """Cancellation handle for a ManualScheduler entry."""

    __slots__ = ("due_ms", "callback", "cancelled", "_scheduler")

    def __init__(self, due_ms: float, callback: Callable[[], None], scheduler: "ManualScheduler"):
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self._scheduler = scheduler

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._scheduler._discard_cancelled()


class ManualScheduler:
    """
    Scheduler driven by a virtual clock that only moves when told to.

    **Conceptual**: The deterministic counterpart of ThreadingScheduler, in
    the same way a frozen clock is the counterpart of the system clock. Time
    starts at 0ms and advances only through advance(). Due callbacks run
    synchronously inside advance(), in order of due time, with ties broken
    by scheduling order.

    **Usage**:
        scheduler = ManualScheduler()
        scheduler.call_later(50, lambda: print("fired"))
        scheduler.advance(49)   # nothing happens
        scheduler.advance(1)    # prints "fired"

    Callbacks that schedule further actions during advance() are honoured in
    the same call when their due time falls inside the advanced window.

    Cancelled entries stay in the queue until either advance() pops them or
    they outnumber the live ones, at which point the queue is rebuilt.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now_ms = start_ms
        self._queue: List[Tuple[float, int, _ManualHandle]] = []
        self._sequence = itertools.count()
        self._live = 0

    @property
    def now_ms(self) -> float:
        """Current virtual time in milliseconds."""
        return self._now_ms

    @property
    def pending(self) -> int:
        """Number of scheduled actions that are neither fired nor cancelled."""
        return self._live

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self._now_ms + delay_ms, callback, self)
        heapq.heappush(self._queue, (handle.due_ms, next(self._sequence), handle))
        self._live += 1
        return handle

    def advance(self, delay_ms: float) -> int:
        """
        Move virtual time forward, firing every action that falls due.

        Args:
            delay_ms: Milliseconds to advance (must be non-negative).

        Returns:
            Number of callbacks that fired.

        Raises:
            ValueError: If delay_ms is negative.
        """
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be non-negative, got: {delay_ms}")

        target_ms = self._now_ms + delay_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target_ms:
            due_ms, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now_ms = due_ms
            # Mark before running so a late cancel() from the callback is a no-op
            handle.cancelled = True
            self._live -= 1
            handle.callback()
            fired += 1

        self._now_ms = target_ms
        if fired:
            logger.debug("ManualScheduler fired %d callback(s) at %.1fms", fired, target_ms)
        return fired

    def _discard_cancelled(self) -> None:
        self._live -= 1
        if len(self._queue) > 2 * self._live:
            self._queue = [entry for entry in self._queue if not entry[2].cancelled]
            heapq.heapify(self._queue)


def get_default_scheduler() -> Scheduler:
    """
    Factory function for the scheduler used when none is injected.

    Returns:
        ThreadingScheduler instance (works with or without an event loop).
    """
    return ThreadingScheduler()
