"""Unit tests for the rolling-window admission controller."""

import gc
import threading
import time
import weakref

import pytest

from docgate.adapters.rate_limit.base import Admission
from docgate.adapters.rate_limit.clock import ManualClock
from docgate.adapters.rate_limit.sliding_window import SlidingWindowAdmissionController


def _max_in_any_window(instants: list[float], period: float) -> int:
    instants = sorted(instants)
    return max(
        sum(1 for other in instants if start <= other < start + period)
        for start in instants
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=1_000.0)


@pytest.fixture
def limiter(clock: ManualClock):
    controller = SlidingWindowAdmissionController(
        limit=2, period_seconds=10, guard_seconds=0.001, clock=clock
    )
    yield controller
    controller.close()


def test_reclaim_on_empty_window_returns_none(limiter: SlidingWindowAdmissionController) -> None:
    assert limiter.reclaim_expired() is None


def test_reclaim_reports_exact_wait_until_oldest_turns_stale(
    limiter: SlidingWindowAdmissionController, clock: ManualClock
) -> None:
    limiter.try_acquire()
    clock.advance(4)
    limiter.try_acquire()
    clock.advance(1)

    assert limiter.reclaim_expired() == pytest.approx(5.001)
    assert limiter.stats()["live"] == 2


def test_grants_expire_individually(
    limiter: SlidingWindowAdmissionController, clock: ManualClock
) -> None:
    grants = [limiter.try_acquire().granted_at]  # t=1000
    clock.advance(6)
    grants.append(limiter.try_acquire().granted_at)  # t=1006
    assert limiter.try_acquire() is None

    clock.advance(4)  # t=1010: the first grant is exactly one period old
    assert limiter.reclaim_expired() == pytest.approx(6.001)
    admission = limiter.try_acquire()
    assert admission is not None
    grants.append(admission.granted_at)

    clock.advance(2)  # t=1012: the 1006 grant is still live
    limiter.reclaim_expired()
    assert limiter.try_acquire() is None

    clock.advance(4)  # t=1016
    limiter.reclaim_expired()
    grants.append(limiter.try_acquire().granted_at)

    assert grants == [1000.0, 1006.0, 1010.0, 1016.0]
    assert _max_in_any_window(grants, 10) <= 2


def test_no_burst_across_a_window_boundary(
    limiter: SlidingWindowAdmissionController, clock: ManualClock
) -> None:
    clock.set(1_009.9)
    assert limiter.try_acquire() is not None
    assert limiter.try_acquire() is not None

    clock.set(1_010.1)
    limiter.reclaim_expired()

    assert limiter.try_acquire() is None
    assert limiter.stats()["oldest_grant"] == pytest.approx(1_009.9)


def test_stats_expose_reclaimer_state(limiter: SlidingWindowAdmissionController) -> None:
    stats = limiter.stats()
    assert stats["strategy"] == "sliding_window"
    assert stats["reclaimer_alive"] is True
    assert stats["oldest_grant"] is None

    limiter.close()

    assert limiter.stats()["reclaimer_alive"] is False


def test_close_interrupts_reclaimer_sleep() -> None:
    controller = SlidingWindowAdmissionController(limit=1, period_seconds=3600)
    controller.acquire()

    started = time.monotonic()
    controller.close()

    assert time.monotonic() - started < 1.0
    assert controller.stats()["reclaimer_alive"] is False


def test_unclosed_controller_is_collected_and_stops_reclaimer() -> None:
    controller = SlidingWindowAdmissionController(limit=1, period_seconds=3600)
    controller.acquire()
    reclaimer = controller._reclaimer
    ref = weakref.ref(controller)

    del controller
    deadline = time.monotonic() + 2
    while ref() is not None and time.monotonic() < deadline:
        gc.collect()
        time.sleep(0.01)
    reclaimer.join(timeout=2)

    assert ref() is None
    assert not reclaimer.is_alive()


def test_reclaimer_frees_slot_for_blocked_caller() -> None:
    with SlidingWindowAdmissionController(limit=1, period_seconds=0.1) as controller:
        first = controller.acquire()
        second = controller.acquire(timeout=2)

    assert second.granted_at - first.granted_at >= 0.1
    assert second.waited_seconds > 0.05


def test_scenario_two_immediate_third_after_first_grant_expires() -> None:
    with SlidingWindowAdmissionController(limit=2, period_seconds=0.1) as controller:
        barrier = threading.Barrier(3)
        admissions: list[Admission] = []
        lock = threading.Lock()

        def _caller() -> None:
            barrier.wait()
            admission = controller.acquire(timeout=2)
            with lock:
                admissions.append(admission)

        threads = [threading.Thread(target=_caller) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=3)

    admissions.sort(key=lambda a: a.granted_at)
    assert len(admissions) == 3
    assert admissions[0].waited_seconds < 0.05
    assert admissions[1].waited_seconds < 0.05
    assert admissions[2].granted_at - admissions[0].granted_at >= 0.1


def test_rolling_bound_holds_under_concurrent_load() -> None:
    period, limit = 0.15, 3
    grants: list[float] = []
    lock = threading.Lock()

    with SlidingWindowAdmissionController(limit=limit, period_seconds=period) as controller:

        def _caller() -> None:
            for _ in range(2):
                admission = controller.acquire(timeout=5)
                with lock:
                    grants.append(admission.granted_at)

        threads = [threading.Thread(target=_caller) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

    assert len(grants) == 16
    assert _max_in_any_window(grants, period) <= limit
