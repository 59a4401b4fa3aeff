"""Time sources for admission controllers.

Controllers take a plain ``Callable[[], float]`` so tests can inject a
deterministic clock. Blocking waits always run on real time; only the policy
arithmetic (grant instants, window boundaries) reads the injected clock.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

Clock = Callable[[], float]

default_clock: Clock = time.monotonic


class ManualClock:
    """Deterministic, thread-safe clock advanced explicitly by the caller."""

    def __init__(self, start: float = 1_000.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._now += seconds

    def set(self, now: float) -> None:
        with self._lock:
            if now < self._now:
                raise ValueError("clock cannot move backwards")
            self._now = now
