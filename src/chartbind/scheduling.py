"""
Deferred callbacks for the directive.

The directive never blocks: its one deferred action, the escalation timer,
is handed to a scheduler exposing ``call_later(delay, callback)``. asyncio
event loops satisfy this directly. Two implementations cover hosts without a
running loop:

- ManualScheduler: virtual clock moved by ``advance()``, for hosts that drive
  time themselves and for tests
- MonotonicScheduler: wall clock; due callbacks run when ``run_due()`` is
  called, which the escalation timer does on every tick
"""

import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class ManualHandle:
    """Handle for a callback scheduled on a ManualScheduler or MonotonicScheduler."""

    __slots__ = ("when", "callback", "args", "cancelled")

    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by an explicit virtual clock."""

    def __init__(self):
        self._now = 0.0
        self._queue: List[Tuple[float, int, ManualHandle]] = []
        self._sequence = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        handle = ManualHandle(self._now + delay, callback, args)
        heapq.heappush(self._queue, (handle.when, next(self._sequence), handle))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that falls due.

        Callbacks run in due-time order, ties in scheduling order.

        Returns:
            Number of callbacks run
        """
        if seconds < 0:
            raise ValueError(f"cannot move the clock backwards ({seconds})")
        deadline = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle = heapq.heappop(self._queue)
            self._now = when
            if handle.cancelled:
                continue
            handle.callback(*handle.args)
            ran += 1
        self._now = deadline
        return ran


class MonotonicScheduler:
    """
    Wall-clock scheduler for synchronous hosts without an event loop.

    Nothing runs in the background: a callback runs once its deadline has
    passed and run_due() is called. Deadlines use time.monotonic() unless
    another clock is given.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._handles: List[ManualHandle] = []

    def time(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        handle = ManualHandle(self._clock() + delay, callback, args)
        self._handles.append(handle)
        return handle

    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def run_due(self, *handles: ManualHandle) -> int:
        """
        Run the callbacks whose deadline has passed.

        Args:
            *handles: Restrict the run to these handles; every handle if omitted

        Returns:
            Number of callbacks run
        """
        self._handles = [h for h in self._handles if not h.cancelled]
        now = self._clock()
        candidates = handles or tuple(self._handles)
        due = sorted(
            (h for h in candidates if h.when <= now and any(h is p for p in self._handles)),
            key=lambda h: h.when,
        )
        self._handles = [h for h in self._handles if not any(h is d for d in due)]

        ran = 0
        for handle in due:
            if handle.cancelled:
                continue
            handle.callback(*handle.args)
            ran += 1
        return ran


class EscalationTimer:
    """
    One-shot timer bounding how long evaluation errors are treated as transient.

    Fires at most once; cannot be restarted. on_fire, if given, runs right
    after the timer escalates and its exceptions propagate to whoever ran the
    timer (ManualScheduler.advance(), the event loop, or poll()).
    """

    def __init__(self, scheduler: Scheduler, delay: float, on_fire: Optional[Callable[[], Any]] = None):
        self._scheduler = scheduler
        self._delay = delay
        self._on_fire = on_fire
        self._handle = None
        self._started = False
        self._escalated = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def escalated(self) -> bool:
        return self._escalated

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._handle = self._scheduler.call_later(self._delay, self.fire)

    def poll(self) -> bool:
        """Fire now if overdue on a scheduler that only runs callbacks when asked."""
        if self._handle is not None and isinstance(self._scheduler, MonotonicScheduler):
            self._scheduler.run_due(self._handle)
        return self._escalated

    def fire(self) -> None:
        if self._escalated:
            return
        self._escalated = True
        self._handle = None
        logger.debug(f"Escalation window of {self._delay}s elapsed; evaluation errors now raise")
        if self._on_fire is not None:
            self._on_fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
