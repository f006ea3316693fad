# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Process-wide validation state.

One GateState is built at application start and handed to every router
factory; nothing in the package keeps module-level mutable state. Tests
build their own and call reset() between cases.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from gatekeeper import config
from gatekeeper.cache import StatsCache
from gatekeeper.failure_tracker import (
    FailureTracker,
    ValidationRateGuard,
    ValidationRateLimits,
    default_rate_limits,
)
from gatekeeper.registry import SchemaRegistry
from gatekeeper.schemas import register_default_schemas
from gatekeeper.stage import ValidationOptions


@dataclass
class GateState:
    tracker: FailureTracker
    guard: ValidationRateGuard
    cache: StatsCache
    registry: SchemaRegistry
    options: ValidationOptions

    @classmethod
    def create(
        cls,
        limits: Optional[ValidationRateLimits] = None,
        options: Optional[ValidationOptions] = None,
        reset_on_success: Optional[bool] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "GateState":
        """
        Build tracker, guard, cache and registry from config.

        Args:
            limits: Blocking policy (default: from config)
            options: Stage options (default: from config)
            reset_on_success: Tracker reset policy (default: from config)
            clock: Tracker time source in epoch milliseconds (tests)
        """
        tracker_kwargs = {}
        if clock is not None:
            tracker_kwargs["clock"] = clock
        tracker = FailureTracker(
            limits or default_rate_limits(),
            reset_on_success=(
                config.VALIDATION_RESET_ON_SUCCESS if reset_on_success is None else reset_on_success
            ),
            **tracker_kwargs,
        )
        registry = SchemaRegistry()
        register_default_schemas(registry)

        state = cls(
            tracker=tracker,
            guard=ValidationRateGuard(tracker),
            cache=StatsCache(config.VALIDATION_CACHE_TTL, config.VALIDATION_CACHE_MAX_KEYS),
            registry=registry,
            options=options or ValidationOptions.from_config(),
        )
        logger.debug(
            "[GateState] Created: {} schemas, limits {}/min {}/h",
            len(registry),
            tracker.limits.max_failures_per_minute,
            tracker.limits.max_failures_per_hour,
        )
        return state

    def reset(self) -> None:
        """Clear tracker records, memoized outcomes and cache counters."""
        self.tracker.clear()
        self.cache.clear()
        self.cache.reset_stats()
