"""Factory for creating admission controllers from settings."""

from __future__ import annotations

import logging

from docgate.adapters.rate_limit.base import AbstractAdmissionController
from docgate.adapters.rate_limit.clock import Clock, default_clock
from docgate.adapters.rate_limit.fixed_window import FixedWindowAdmissionController
from docgate.adapters.rate_limit.sliding_window import SlidingWindowAdmissionController
from docgate.core.config import LimiterSettings, settings
from docgate.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)

STRATEGIES: dict[str, type[AbstractAdmissionController]] = {
    SlidingWindowAdmissionController.strategy: SlidingWindowAdmissionController,
    FixedWindowAdmissionController.strategy: FixedWindowAdmissionController,
}


def create_admission_controller(
    limiter_settings: LimiterSettings | None = None,
    *,
    clock: Clock = default_clock,
) -> AbstractAdmissionController:
    """Build the admission controller selected by configuration.

    Reads docgate.core.config.settings.limiter unless explicit settings are
    passed. The strategy is fixed for the controller's lifetime.

    Args:
        limiter_settings: Optional limiter settings overriding the globals.
        clock: Time source injected into the controller.

    Returns:
        AbstractAdmissionController: Configured controller instance.

    Raises:
        ConfigurationAppError: If the strategy is unknown or the policy invalid.
    """
    cfg = limiter_settings or settings.limiter
    strategy = cfg.strategy.lower()

    controller_cls = STRATEGIES.get(strategy)
    if controller_cls is None:
        raise ConfigurationAppError(
            code="limiter_unknown_strategy",
            message=(
                f"Unknown admission strategy: '{cfg.strategy}'. "
                f"Supported strategies: {', '.join(sorted(STRATEGIES))}"
            ),
            details={"strategy": cfg.strategy},
        )

    logger.info(
        "admission.controller_configured",
        extra={
            "strategy": strategy,
            "limit": cfg.limit,
            "period_s": cfg.period_seconds,
        },
    )
    return controller_cls(
        limit=cfg.limit,
        period_seconds=cfg.period_seconds,
        guard_seconds=cfg.guard_seconds,
        clock=clock,
    )
