"""Rolling-window admission controller backed by a reclaimer thread.

Notes:
- Window state is a bounded deque of grant instants (oldest first), never
  longer than ``limit``.
- A background reclaimer retires grants once they are a full period old;
  ``acquire()`` itself never drops records, it only waits for free capacity.
- Any trailing interval of length ``period_seconds`` contains at most
  ``limit`` grant instants.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections import deque
from typing import Any

from docgate.adapters.rate_limit.base import DEFAULT_GUARD_SECONDS, AbstractAdmissionController
from docgate.adapters.rate_limit.clock import Clock, default_clock

logger = logging.getLogger(__name__)


def _run_reclaimer(
    controller_ref: weakref.ReferenceType[SlidingWindowAdmissionController],
    wakeup: threading.Condition,
) -> None:
    # Holds the controller only while reclaiming, so an unclosed controller can
    # still be collected; its finalizer wakes this loop to exit.
    logger.debug("admission.reclaimer_started", extra={"strategy": "sliding_window"})
    with wakeup:
        while True:
            controller = controller_ref()
            if controller is None or controller._closed:
                break
            delay = controller._reclaim_expired_locked()
            # Nothing recorded: no grant can turn stale sooner than a full period.
            timeout = controller._period if delay is None else delay
            del controller
            if controller_ref() is None:
                break
            wakeup.wait(timeout)
    logger.debug("admission.reclaimer_stopped", extra={"strategy": "sliding_window"})


def _wake_reclaimer(wakeup: threading.Condition) -> None:
    with wakeup:
        wakeup.notify_all()


class SlidingWindowAdmissionController(AbstractAdmissionController):
    """Admission controller enforcing a true rolling window.

    The reclaimer sleeps exactly until the oldest grant turns stale (plus a
    small guard), or a full period when nothing is recorded, so it never
    polls. ``close()`` interrupts its sleep and joins it; a controller that is
    garbage-collected without being closed stops its reclaimer as well.
    """

    strategy = "sliding_window"

    def __init__(
        self,
        *,
        limit: int,
        period_seconds: float,
        guard_seconds: float = DEFAULT_GUARD_SECONDS,
        clock: Clock = default_clock,
    ) -> None:
        super().__init__(
            limit=limit,
            period_seconds=period_seconds,
            guard_seconds=guard_seconds,
            clock=clock,
        )
        self._records: deque[float] = deque()
        self._reclaimer_wakeup = threading.Condition(self._lock)
        self._reclaimer = threading.Thread(
            target=_run_reclaimer,
            args=(weakref.ref(self), self._reclaimer_wakeup),
            name=f"admission-reclaimer-{id(self):x}",
            daemon=True,
        )
        self._reclaimer.start()
        weakref.finalize(self, _wake_reclaimer, self._reclaimer_wakeup)

        logger.debug(
            "admission.controller_created",
            extra={
                "strategy": self.strategy,
                "limit": self._limit,
                "period_s": self._period,
            },
        )

    def reclaim_expired(self) -> float | None:
        """Retire every stale grant.

        Returns:
            Seconds until the oldest remaining grant turns stale (guard
            included), or None when no grants are recorded.
        """

        with self._lock:
            return self._reclaim_expired_locked()

    def _reclaim_expired_locked(self) -> float | None:
        now = self._clock()
        freed = 0
        while self._records and now - self._records[0] >= self._period:
            self._records.popleft()
            freed += 1

        if freed:
            self._changed.notify_all()
            logger.debug(
                "admission.reclaimed",
                extra={
                    "strategy": self.strategy,
                    "freed": freed,
                    "live": len(self._records),
                },
            )

        if not self._records:
            return None
        return self._period - (now - self._records[0]) + self._guard

    def _try_admit_locked(self, now: float) -> bool:
        if len(self._records) >= self._limit:
            return False
        self._records.append(now)
        return True

    def _retry_delay_locked(self, now: float) -> float | None:
        # Woken by the reclaimer when it frees a slot.
        return None

    def _live_count_locked(self) -> int:
        return len(self._records)

    def _extra_stats_locked(self) -> dict[str, Any]:
        return {
            "oldest_grant": self._records[0] if self._records else None,
            "reclaimer_alive": self._reclaimer.is_alive(),
        }

    def _on_close_locked(self) -> None:
        self._reclaimer_wakeup.notify_all()

    def _stop_background(self) -> None:
        if self._reclaimer is not threading.current_thread():
            self._reclaimer.join()
