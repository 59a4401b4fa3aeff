"""Fixed-window admission controller (counter + window start).

Notes:
- No background thread: expired windows are reset inline by the next
  admission attempt.
- Windows restart at the first attempt after expiry, not on clock-aligned
  boundaries.
- Windows do not overlap, so a burst at the end of one window followed by a
  burst at the start of the next admits up to ``2 * limit`` requests within
  a span shorter than one period. This is the expected trade-off of the
  strategy; use the sliding-window controller for a strict rolling bound.
"""

from __future__ import annotations

import logging
from typing import Any

from docgate.adapters.rate_limit.base import DEFAULT_GUARD_SECONDS, AbstractAdmissionController
from docgate.adapters.rate_limit.clock import Clock, default_clock

logger = logging.getLogger(__name__)


class FixedWindowAdmissionController(AbstractAdmissionController):
    """Admission controller counting grants inside discrete windows."""

    strategy = "fixed_window"

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
        self._window_start = self._clock()
        self._count = 0

        logger.debug(
            "admission.controller_created",
            extra={
                "strategy": self.strategy,
                "limit": self._limit,
                "period_s": self._period,
            },
        )

    def _window_end(self) -> float:
        return self._window_start + self._period

    def _try_admit_locked(self, now: float) -> bool:
        if now >= self._window_end():
            self._window_start = now
            self._count = 1
            logger.debug(
                "admission.window_reset",
                extra={"strategy": self.strategy, "window_start": now},
            )
            return True

        if self._count < self._limit:
            self._count += 1
            return True

        return False

    def _retry_delay_locked(self, now: float) -> float | None:
        return max(0.0, self._window_end() - now) + self._guard

    def _live_count_locked(self) -> int:
        if self._clock() >= self._window_end():
            return 0
        return self._count

    def _extra_stats_locked(self) -> dict[str, Any]:
        return {
            "window_start": self._window_start,
            "window_count": self._count,
        }
