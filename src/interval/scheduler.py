"""Cooperative single-threaded timer loop with an injectable time source."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, Optional

Callback = Callable[[], None]


class TimerHandle:
    """Cancellable reference to a pending one-shot or repeating callback."""

    def __init__(self, callback: Callback, interval: Optional[float] = None):
        self._callback = callback
        self._interval = interval
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def repeating(self) -> bool:
        return self._interval is not None

    def cancel(self) -> None:
        self._cancelled = True


class LoopScheduler:
    """Runs due callbacks when `run_pending()` is called by the owning loop.

    Repeating callbacks fire at most once per `run_pending()` call and are
    re-armed relative to the time they ran, so a loop that was stalled for a
    long time sees a single late firing instead of a burst.
    """

    def __init__(
        self,
        *,
        time_fn: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        self._time_fn = time_fn
        self._logger = logger or logging.getLogger("interval.scheduler")
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()
        self._threadsafe_lock = threading.Lock()
        self._threadsafe_ready: list[Callback] = []

    def now(self) -> float:
        return self._time_fn()

    def call_later(self, delay_seconds: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(callback)
        self._push(self.now() + max(0.0, delay_seconds), handle)
        return handle

    def call_every(self, interval_seconds: float, callback: Callback) -> TimerHandle:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        handle = TimerHandle(callback, interval=interval_seconds)
        self._push(self.now() + interval_seconds, handle)
        return handle

    def call_soon_threadsafe(self, callback: Callback) -> None:
        """Queue `callback` from any thread for the next `run_pending()`."""
        with self._threadsafe_lock:
            self._threadsafe_ready.append(callback)

    def next_delay(self) -> Optional[float]:
        """Seconds until the next pending callback, or None when nothing is due."""
        with self._threadsafe_lock:
            if self._threadsafe_ready:
                return 0.0
        self._discard_cancelled()
        if not self._heap:
            return None
        return max(0.0, self._heap[0][0] - self.now())

    def run_pending(self) -> int:
        """Run every callback due at the current time; return how many ran."""
        ran = 0
        with self._threadsafe_lock:
            ready, self._threadsafe_ready = self._threadsafe_ready, []
        for callback in ready:
            self._invoke(callback)
            ran += 1

        now = self.now()
        due: list[TimerHandle] = []
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if not handle.cancelled:
                due.append(handle)

        for handle in due:
            # An earlier callback in this batch may have cancelled it.
            if handle.cancelled:
                continue
            self._invoke(handle._callback)
            ran += 1
            if handle.repeating and not handle.cancelled:
                self._push(self.now() + handle._interval, handle)  # type: ignore[operator]
        return ran

    def _push(self, when: float, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (when, next(self._sequence), handle))

    def _discard_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)

    def _invoke(self, callback: Callback) -> None:
        try:
            callback()
        except Exception:
            self._logger.exception("Scheduled callback failed")
