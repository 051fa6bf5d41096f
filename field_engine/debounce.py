from __future__ import annotations

import threading
from typing import Callable, Optional


class Debouncer:
    """
    Single-slot cancellable timer.
    schedule() always replaces whatever was pending, so the callback runs
    once per quiet period. timer_factory(delay, fn) must return an object
    with start() and cancel() (threading.Timer by default).
    """

    def __init__(self, delay: float, callback: Callable[[], None],
                 timer_factory: Optional[Callable[[float, Callable[[], None]], object]] = None):
        self.delay = delay
        self.callback = callback
        self.timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer = None
        self._token = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            self._cancel_locked()
            self._token += 1
            token = self._token
            timer = self.timer_factory(self.delay, lambda: self._fire(token))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def flush(self) -> bool:
        """Run the pending callback now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._cancel_locked()
        self.callback()
        return True

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # a timer that already fired but lost the race for the lock sees a stale token
        self._token += 1

    def _fire(self, token: int) -> None:
        with self._lock:
            if token != self._token:
                return
            self._timer = None
        self.callback()
