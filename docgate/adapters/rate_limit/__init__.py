"""Admission control adapters.

Two interchangeable strategies share one contract: a rolling window backed
by a reclaimer thread, and a fixed window reset inline by the next caller.
"""

from docgate.adapters.rate_limit.base import AbstractAdmissionController, Admission, CancelToken
from docgate.adapters.rate_limit.clock import ManualClock
from docgate.adapters.rate_limit.factory import create_admission_controller
from docgate.adapters.rate_limit.fixed_window import FixedWindowAdmissionController
from docgate.adapters.rate_limit.sliding_window import SlidingWindowAdmissionController

__all__ = [
    "AbstractAdmissionController",
    "Admission",
    "CancelToken",
    "FixedWindowAdmissionController",
    "ManualClock",
    "SlidingWindowAdmissionController",
    "create_admission_controller",
]
