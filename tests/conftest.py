"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before docgate.core.config builds its settings.
"""

import os

import pytest

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("LIMITER_STRATEGY", "sliding_window")
os.environ.setdefault("LIMITER_LIMIT", "5")
os.environ.setdefault("LIMITER_PERIOD_SECONDS", "60")
os.environ.setdefault("DOCS_API_BASE_URL", "https://documents.test")
os.environ.setdefault("DOCS_API_TOKEN", "test-token-123")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from docgate.adapters.rate_limit.fixed_window import FixedWindowAdmissionController  # noqa: E402
from docgate.adapters.rate_limit.sliding_window import SlidingWindowAdmissionController  # noqa: E402


@pytest.fixture(params=[SlidingWindowAdmissionController, FixedWindowAdmissionController])
def controller_cls(request: pytest.FixtureRequest) -> type:
    """Each admission strategy, for tests of the shared contract."""
    return request.param


@pytest.fixture
def make_controller(controller_cls: type):
    """Build controllers of the current strategy and close them after the test."""

    created = []

    def _make(**kwargs):
        controller = controller_cls(**kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        controller.close()


@pytest.fixture
def wait_until():
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""

    import time

    def _wait(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                pytest.fail("condition not reached before timeout")
            time.sleep(interval)

    return _wait
