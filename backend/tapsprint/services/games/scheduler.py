"""Clock and timer sources for game sessions.

Every scheduling call returns a ``TimerHandle``; cancelling a handle
guarantees its callback never runs afterwards. Two implementations:

- ``ManualScheduler``: a virtual clock advanced explicitly. Used by tests and
  whenever the app runs with TESTING enabled, so stage timers stay
  deterministic.
- ``BackgroundScheduler``: wall-clock timers running as Socket.IO background
  tasks. Callbacks run under a lock shared with the owning controller so timer
  fires and player commands never interleave.
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation handle for a scheduled callback."""

    def __init__(self, callback: Callable[[], None], label: str = ''):
        self._callback = callback
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired

    def __repr__(self) -> str:
        return f"<TimerHandle {self.label or '?'} cancelled={self.cancelled} fired={self.fired}>"


class ManualScheduler:
    """Deterministic scheduler driven by ``advance``.

    Callbacks due at the same instant fire in the order they were scheduled.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._queue: List[Tuple[float, int, TimerHandle, Optional[float]]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        handle = TimerHandle(callback, label)
        heapq.heappush(self._queue, (self._now + max(0.0, delay_ms), next(self._seq), handle, None))
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError('interval_ms must be positive')
        handle = TimerHandle(callback, label)
        heapq.heappush(self._queue, (self._now + interval_ms, next(self._seq), handle, interval_ms))
        return handle

    def advance(self, ms: float) -> None:
        """Move the clock forward ``ms`` milliseconds, firing everything due."""
        target = self._now + max(0.0, ms)
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if interval is None:
                handle.fired = True
                handle._callback()
            else:
                handle._callback()
                if not handle.cancelled:
                    heapq.heappush(self._queue, (due + interval, next(self._seq), handle, interval))
        self._now = target

    def pending(self) -> int:
        """Number of live (not cancelled) timers still queued."""
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)


class BackgroundScheduler:
    """Real-time scheduler backed by ``socketio.start_background_task``."""

    def __init__(self, socketio, lock=None):
        self._socketio = socketio
        self.lock = lock if lock is not None else threading.RLock()

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        handle = TimerHandle(callback, label)

        def _worker():
            self._socketio.sleep(max(0.0, delay_ms) / 1000.0)
            with self.lock:
                if handle.cancelled:
                    logger.debug(f"[timer-abort] {label} cancelled before firing")
                    return
                handle.fired = True
                callback()

        self._socketio.start_background_task(_worker)
        return handle

    def call_every(self, interval_ms: float, callback: Callable[[], None], label: str = '') -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError('interval_ms must be positive')
        handle = TimerHandle(callback, label)

        def _worker():
            # Deadlines are anchored to the start so slow callbacks do not drift the cadence
            started = self.now_ms()
            n = 0
            while True:
                n += 1
                sleep_for = started + n * interval_ms - self.now_ms()
                self._socketio.sleep(max(0.0, sleep_for) / 1000.0)
                with self.lock:
                    if handle.cancelled:
                        return
                    callback()

        self._socketio.start_background_task(_worker)
        return handle


class Stopwatch:
    """Elapsed-time measurement over a scheduler's monotonic clock."""

    def __init__(self, clock):
        self._clock = clock
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None and self._stopped_at is None

    def start(self) -> None:
        self._started_at = self._clock.now_ms()
        self._stopped_at = None

    def stop(self) -> None:
        if self.running:
            self._stopped_at = self._clock.now_ms()

    @property
    def elapsed_ms(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._clock.now_ms()
        return end - self._started_at
