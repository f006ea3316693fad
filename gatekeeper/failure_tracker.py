# -*- coding: utf-8 -*-

# Gatekeeper
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Validation failure tracking and abuse blocking.

Each (origin, endpoint) pair moves through these states:

    Clean     no record
    Tracking  failures recorded, below both thresholds
    Blocked   a threshold was reached; every request is rejected
              until block_duration_ms has passed since the triggering failure

Windows are sliding: the tracker keeps the timestamps of failures from the
last hour and counts those inside the trailing minute and hour. A window
"exceeds" its limit when the count reaches the limit, so with
max_failures_per_minute=3 the third failure inside a minute blocks.

When a block ends the record returns to Tracking with a cleared count.
Records with no failure in the last hour and no active block are removed by
sweep().
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Callable, Deque, Dict, Optional

from loguru import logger

from gatekeeper import config
from gatekeeper.config import (
    VALIDATION_BLOCK_DURATION_MS,
    VALIDATION_MAX_FAILURES_PER_HOUR,
    VALIDATION_MAX_FAILURES_PER_MINUTE,
    VALIDATION_RESET_ON_SUCCESS,
)
from gatekeeper.errors import ApiError, ErrorCodes, make_api_error

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


@dataclass(frozen=True)
class ValidationRateLimits:
    """Blocking policy."""

    max_failures_per_minute: int = VALIDATION_MAX_FAILURES_PER_MINUTE
    max_failures_per_hour: int = VALIDATION_MAX_FAILURES_PER_HOUR
    block_duration_ms: int = VALIDATION_BLOCK_DURATION_MS


def default_rate_limits() -> ValidationRateLimits:
    """Policy from the current values of the config module."""
    return ValidationRateLimits(
        max_failures_per_minute=config.VALIDATION_MAX_FAILURES_PER_MINUTE,
        max_failures_per_hour=config.VALIDATION_MAX_FAILURES_PER_HOUR,
        block_duration_ms=config.VALIDATION_BLOCK_DURATION_MS,
    )


@dataclass(frozen=True)
class Origin:
    """
    Client identity signals used as the tracking key.

    The authenticated user id wins over the IP address, so a user roaming
    between addresses keeps one record.
    """

    ip_address: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def identifier(self) -> str:
        if self.user_id:
            return self.user_id
        if self.ip_address:
            return self.ip_address
        return "unknown"


@dataclass
class ValidationFailureTracking:
    """
    Failure record of one (origin, endpoint) pair.

    Attributes:
        failures: Failures counted since the record was created or last reset
        last_failure: Epoch milliseconds of the latest failure
        ip_address: Client IP, when known
        endpoint: Request path
        user_id: Authenticated user id, when known
        blocked_until: Epoch milliseconds when the block ends (None if not blocked)
    """

    failures: int
    last_failure: int
    ip_address: Optional[str] = None
    endpoint: Optional[str] = None
    user_id: Optional[str] = None
    blocked_until: Optional[int] = None
    timestamps: Deque[int] = field(default_factory=deque, repr=False)


def _now_ms() -> int:
    return int(time.time() * 1000)


class FailureTracker:
    """
    Thread-safe store of validation failure records.

    Args:
        limits: Blocking policy
        reset_on_success: Clear a record when its origin validates successfully
        clock: Time source in epoch milliseconds
    """

    def __init__(
        self,
        limits: Optional[ValidationRateLimits] = None,
        reset_on_success: bool = VALIDATION_RESET_ON_SUCCESS,
        clock: Callable[[], int] = _now_ms,
    ):
        self._limits = limits or ValidationRateLimits()
        self._reset_on_success = reset_on_success
        self._clock = clock
        self._records: Dict[str, ValidationFailureTracking] = {}
        self._lock = threading.Lock()

    @property
    def limits(self) -> ValidationRateLimits:
        return self._limits

    @staticmethod
    def make_key(identifier: str, endpoint: str) -> str:
        return f"{identifier}:{endpoint}"

    def track_failure(self, origin: Origin, endpoint: str) -> bool:
        """
        Record one validation failure.

        Args:
            origin: Client identity
            endpoint: Request path

        Returns:
            True if the origin is blocked after this failure
        """
        key = self.make_key(origin.identifier, endpoint)
        with self._lock:
            now = self._clock()
            record = self._records.get(key)
            if record is None:
                record = ValidationFailureTracking(
                    failures=0,
                    last_failure=now,
                    ip_address=origin.ip_address,
                    endpoint=endpoint,
                    user_id=origin.user_id,
                )
                self._records[key] = record

            self._expire_block(record, now)
            if record.blocked_until is not None:
                return True

            record.failures += 1
            record.last_failure = now
            record.timestamps.append(now)
            self._trim(record, now)

            per_minute = sum(1 for ts in record.timestamps if ts > now - MINUTE_MS)
            per_hour = len(record.timestamps)

            if per_minute >= self._limits.max_failures_per_minute:
                window, count = "minute", per_minute
            elif per_hour >= self._limits.max_failures_per_hour:
                window, count = "hour", per_hour
            else:
                return False

            record.blocked_until = now + self._limits.block_duration_ms

        logger.warning(
            "[FailureTracker] Blocking {} on {}: {} failures in the last {}",
            origin.identifier,
            endpoint,
            count,
            window,
        )
        return True

    def blocked_until(self, origin: Origin, endpoint: str) -> Optional[int]:
        """
        Returns the epoch milliseconds when the block ends, or None if not blocked.
        """
        key = self.make_key(origin.identifier, endpoint)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            self._expire_block(record, self._clock())
            return record.blocked_until

    def is_blocked(self, origin: Origin, endpoint: str) -> bool:
        return self.blocked_until(origin, endpoint) is not None

    def record_success(self, origin: Origin, endpoint: str) -> None:
        """
        Apply the success policy.

        With reset_on_success disabled (the default) this is a no-op:
        the abuse signal persists after a valid request.
        """
        if not self._reset_on_success:
            return
        key = self.make_key(origin.identifier, endpoint)
        with self._lock:
            record = self._records.get(key)
            if record is not None and record.blocked_until is None:
                del self._records[key]

    def get_tracking(
        self, identifier: str, endpoint: str
    ) -> Optional[ValidationFailureTracking]:
        """Returns a snapshot of the record for an identifier/endpoint pair, or None."""
        with self._lock:
            record = self._records.get(self.make_key(identifier, endpoint))
            if record is None:
                return None
            self._expire_block(record, self._clock())
            return replace(record, timestamps=deque(record.timestamps))

    def reset(self, identifier: str, endpoint: str) -> None:
        with self._lock:
            self._records.pop(self.make_key(identifier, endpoint), None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def sweep(self) -> int:
        """
        Remove idle records.

        Returns:
            Number of removed records
        """
        with self._lock:
            now = self._clock()
            idle = []
            for key, record in self._records.items():
                self._expire_block(record, now)
                self._trim(record, now)
                if record.blocked_until is None and not record.timestamps:
                    idle.append(key)
            for key in idle:
                del self._records[key]
        if idle:
            logger.debug("[FailureTracker] Swept {} idle records", len(idle))
        return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @staticmethod
    def _trim(record: ValidationFailureTracking, now: int) -> None:
        while record.timestamps and record.timestamps[0] <= now - HOUR_MS:
            record.timestamps.popleft()

    @staticmethod
    def _expire_block(record: ValidationFailureTracking, now: int) -> None:
        if record.blocked_until is not None and now >= record.blocked_until:
            record.blocked_until = None
            record.failures = 0
            record.timestamps.clear()


class ValidationRateGuard:
    """
    Early rejection of blocked origins.

    Consulted before any schema runs, so blocked clients cost nothing
    beyond a dictionary lookup.
    """

    def __init__(self, tracker: FailureTracker):
        self._tracker = tracker

    @property
    def tracker(self) -> FailureTracker:
        return self._tracker

    def check(self, origin: Origin, endpoint: str) -> Optional[ApiError]:
        """
        Returns:
            RATE_LIMIT_EXCEEDED error if the origin is blocked, otherwise None
        """
        until = self._tracker.blocked_until(origin, endpoint)
        if until is None:
            return None
        logger.warning(
            "[RateGuard] Validation rate limit exceeded for {} on {}",
            origin.identifier,
            endpoint,
        )
        return make_api_error(
            ErrorCodes.RATE_LIMIT_EXCEEDED,
            "Too many validation failures. Please try again later.",
            {"resetAt": until},
        )
