"""Admission controller interfaces.

Callers depend on ``AbstractAdmissionController`` (not a concrete strategy)
so the rolling-window and fixed-window policies stay interchangeable.

The base class owns everything the strategies share: argument validation,
the single lock guarding window state, the FIFO waiter queue, cancellation,
timeouts and shutdown. A strategy only decides, under the lock, whether a
slot is free right now and how long the head waiter should sleep otherwise.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from docgate.adapters.rate_limit.clock import Clock, default_clock
from docgate.core.errors import (
    AdmissionCancelledError,
    AdmissionTimeoutError,
    ConfigurationAppError,
    ControllerClosedError,
)

logger = logging.getLogger(__name__)

DEFAULT_GUARD_SECONDS = 0.001


@dataclass(frozen=True)
class Admission:
    """A granted slot.

    Attributes:
        granted_at: Instant (controller clock) at which the slot was recorded.
        waited_seconds: Real time the caller spent blocked before admission.
    """

    granted_at: float
    waited_seconds: float


class CancelToken:
    """Caller-owned cancellation signal for blocked ``acquire()`` calls.

    Controllers register a wake-up callback while a caller is waiting, so
    ``cancel()`` releases the waiter immediately instead of on its next
    timed recheck. A token can be shared by several waiters and cannot be
    reset once cancelled.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        # Callbacks take controller locks; never call them under our own lock.
        for callback in callbacks:
            callback()

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a function that unregisters it.

        If the token is already cancelled the callback runs immediately.
        """

        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                fire_now = False
            else:
                fire_now = True

        if fire_now:
            callback()

        def _unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return _unregister


class AbstractAdmissionController(ABC):
    """At most ``limit`` admissions per ``period_seconds``, shared by threads.

    Waiters are admitted strictly first-in-first-out: only the head of the
    waiter queue may take a slot, so a late arrival never overtakes a caller
    that is already blocked.
    """

    strategy: str = "abstract"

    def __init__(
        self,
        *,
        limit: int,
        period_seconds: float,
        guard_seconds: float = DEFAULT_GUARD_SECONDS,
        clock: Clock = default_clock,
    ) -> None:
        """Initialize shared controller state.

        Args:
            limit: Maximum number of admissions per period.
            period_seconds: Period length in seconds.
            guard_seconds: Extra delay added to computed waits.
            clock: Time source returning seconds as float.

        Raises:
            ConfigurationAppError: If limit, period or guard are invalid.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ConfigurationAppError(
                code="limiter_invalid_limit",
                message="limit must be a positive integer",
                details={"limit": limit} if isinstance(limit, int) else None,
            )
        # Computed waits go to Condition.wait(), which rejects anything above TIMEOUT_MAX.
        if (
            not isinstance(period_seconds, (int, float))
            or not math.isfinite(period_seconds)
            or not 0 < period_seconds <= threading.TIMEOUT_MAX
        ):
            raise ConfigurationAppError(
                code="limiter_invalid_period",
                message=f"period_seconds must be finite, > 0 and <= {threading.TIMEOUT_MAX}",
            )
        if (
            not isinstance(guard_seconds, (int, float))
            or not math.isfinite(guard_seconds)
            or not 0 <= guard_seconds <= threading.TIMEOUT_MAX - period_seconds
        ):
            raise ConfigurationAppError(
                code="limiter_invalid_guard",
                message="guard_seconds must be finite and >= 0",
            )

        self._limit = limit
        self._period = float(period_seconds)
        self._guard = float(guard_seconds)
        self._clock = clock

        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._waiters: deque[object] = deque()
        self._closed = False

        self._admitted = 0
        self._cancelled = 0
        self._timed_out = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"{type(self).__name__}(limit={self._limit}, "
            f"period_seconds={self._period}, closed={self._closed})"
        )

    def __enter__(self) -> "AbstractAdmissionController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def period_seconds(self) -> float:
        return self._period

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def acquire(
        self,
        *,
        timeout: float | None = None,
        cancel_token: CancelToken | None = None,
    ) -> Admission:
        """Block until a slot is available and record the admission.

        Args:
            timeout: Maximum real seconds to wait; None waits indefinitely.
            cancel_token: Optional token that aborts the wait when cancelled.

        Returns:
            Admission describing the granted slot.

        Raises:
            ControllerClosedError: If the controller is or becomes closed.
            AdmissionCancelledError: If cancel_token fires before admission.
            AdmissionTimeoutError: If timeout elapses before admission.
            ValueError: If timeout is negative or NaN.
        """
        if timeout is not None and not timeout >= 0:
            raise ValueError("timeout must be >= 0")

        started = time.monotonic()
        deadline = None if timeout is None else started + timeout

        unregister = cancel_token.register(self._wake_waiters) if cancel_token else None
        try:
            with self._lock:
                self._raise_if_closed_locked()
                ticket = object()
                self._waiters.append(ticket)
                try:
                    return self._wait_for_admission_locked(
                        ticket, started, deadline, cancel_token
                    )
                finally:
                    self._waiters.remove(ticket)
                    # The next head (or the reclaimer) must re-evaluate.
                    self._changed.notify_all()
        finally:
            if unregister is not None:
                unregister()

    def try_acquire(self) -> Admission | None:
        """Admit immediately if a slot is free and nobody is waiting.

        Returns:
            Admission when admitted, otherwise None.

        Raises:
            ControllerClosedError: If the controller is closed.
        """
        with self._lock:
            self._raise_if_closed_locked()
            if self._waiters:
                return None
            now = self._clock()
            if not self._try_admit_locked(now):
                return None
            return self._grant_locked(now, waited_seconds=0.0)

    def close(self) -> None:
        """Release all blocked callers and stop background work. Idempotent."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            waiting = len(self._waiters)
            self._changed.notify_all()
            self._on_close_locked()

        self._stop_background()
        logger.info(
            "admission.closed",
            extra={
                "strategy": self.strategy,
                "released_waiters": waiting,
                "admitted": self._admitted,
            },
        )

    def stats(self) -> dict[str, Any]:
        """Return lightweight controller metrics without exposing window state."""

        with self._lock:
            data: dict[str, Any] = {
                "strategy": self.strategy,
                "limit": self._limit,
                "period_seconds": self._period,
                "live": self._live_count_locked(),
                "waiting": len(self._waiters),
                "admitted": self._admitted,
                "cancelled": self._cancelled,
                "timed_out": self._timed_out,
                "closed": self._closed,
            }
            data.update(self._extra_stats_locked())
            return data

    def _wait_for_admission_locked(
        self,
        ticket: object,
        started: float,
        deadline: float | None,
        cancel_token: CancelToken | None,
    ) -> Admission:
        logged_wait = False
        while True:
            if self._closed:
                self._raise_if_closed_locked()

            if cancel_token is not None and cancel_token.cancelled:
                self._cancelled += 1
                logger.info(
                    "admission.cancelled",
                    extra={
                        "strategy": self.strategy,
                        "waited_s": round(time.monotonic() - started, 6),
                    },
                )
                raise AdmissionCancelledError(
                    code="admission_cancelled",
                    message="Wait for admission was cancelled",
                    details={"waited_seconds": time.monotonic() - started},
                )

            delay: float | None = None
            if self._waiters[0] is ticket:
                now = self._clock()
                if self._try_admit_locked(now):
                    return self._grant_locked(now, waited_seconds=time.monotonic() - started)
                delay = self._retry_delay_locked(now)

            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._timed_out += 1
                    logger.info(
                        "admission.timeout",
                        extra={
                            "strategy": self.strategy,
                            "waited_s": round(time.monotonic() - started, 6),
                        },
                    )
                    raise AdmissionTimeoutError(
                        code="admission_timeout",
                        message="Deadline exceeded before a slot became available",
                        details={"timeout_seconds": deadline - started},
                    )
                delay = remaining if delay is None else min(delay, remaining)

            if not logged_wait:
                logger.debug(
                    "admission.waiting",
                    extra={
                        "strategy": self.strategy,
                        "position": self._waiters.index(ticket),
                        "retry_in_s": None if delay is None else round(delay, 6),
                    },
                )
                logged_wait = True

            self._changed.wait(None if delay is None else min(delay, threading.TIMEOUT_MAX))

    def _grant_locked(self, now: float, *, waited_seconds: float) -> Admission:
        self._admitted += 1
        logger.debug(
            "admission.granted",
            extra={
                "strategy": self.strategy,
                "granted_at": now,
                "waited_s": round(waited_seconds, 6),
                "live": self._live_count_locked(),
                "limit": self._limit,
            },
        )
        return Admission(granted_at=now, waited_seconds=waited_seconds)

    def _raise_if_closed_locked(self) -> None:
        if self._closed:
            raise ControllerClosedError(
                code="controller_closed",
                message="Admission controller is closed",
                details={"strategy": self.strategy},
            )

    def _wake_waiters(self) -> None:
        with self._lock:
            self._changed.notify_all()

    def _on_close_locked(self) -> None:
        """Hook for strategies to signal background work while holding the lock."""

    def _stop_background(self) -> None:
        """Hook for strategies to join background work after the lock is released."""

    def _extra_stats_locked(self) -> dict[str, Any]:
        return {}

    @abstractmethod
    def _try_admit_locked(self, now: float) -> bool:
        """Record an admission at ``now`` if the policy allows one.

        Called with the lock held, only on behalf of the head waiter (or a
        ``try_acquire`` caller when nobody waits).
        """
        raise NotImplementedError

    @abstractmethod
    def _retry_delay_locked(self, now: float) -> float | None:
        """Seconds the head waiter should sleep before rechecking.

        None means sleep until another thread signals a state change.
        """
        raise NotImplementedError

    @abstractmethod
    def _live_count_locked(self) -> int:
        raise NotImplementedError
