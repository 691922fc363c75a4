"""Bounded, cancellable polling timer.

``PollTimer`` owns the deadline for one wait. Callers loop on
``wait_next()``, which sleeps for at most ``interval`` seconds but never past
the deadline, and returns False once the deadline has passed or the timer was
cancelled. Cancellation is backed by a ``threading.Event`` so another thread
(e.g. a signal handler) can abort a sleeping wait immediately.

``clock`` and ``sleep`` are injectable so tests can drive time explicitly.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class PollTimer:
    def __init__(
        self,
        timeout: float,
        *,
        interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.timeout = float(timeout)
        self.interval = float(interval)
        self._clock = clock
        self._sleep = sleep
        self._cancelled = threading.Event()
        self._started = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    @property
    def remaining(self) -> float:
        return max(0.0, self.timeout - self.elapsed)

    @property
    def expired(self) -> bool:
        return self.elapsed >= self.timeout

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def wait_next(self) -> bool:
        """Sleep until the next poll; False when the wait must stop.

        A sleep clipped to the deadline still returns True, so the caller gets
        one last poll at the boundary before the next call reports expiry.
        """

        if self.cancelled or self.expired:
            return False
        delay = min(self.interval, self.remaining)
        if self._sleep is not None:
            self._sleep(delay)
        else:
            self._cancelled.wait(delay)
        return not self.cancelled
