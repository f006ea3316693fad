# -*- coding: utf-8 -*-

"""
Shared fixtures for Gatekeeper tests.

Every fixture builds fresh state: no test sees tracker records or cache
entries left behind by another.
"""

import pytest
from fastapi.testclient import TestClient

from gatekeeper.cache import StatsCache
from gatekeeper.failure_tracker import FailureTracker, ValidationRateGuard, ValidationRateLimits
from gatekeeper.schema_contract import ValidationOutcome, Violation
from gatekeeper.state import GateState


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class CountingSchema:
    """
    Schema contract that counts calls and fails on demand.

    Accepts any dict; rejects anything whose "fail" key is truthy.
    """

    def __init__(self, name: str = "Counting", fail: bool = False):
        self.name = name
        self.fail = fail
        self.calls = 0

    def validate(self, value):
        self.calls += 1
        if self.fail or (isinstance(value, dict) and value.get("fail")):
            return ValidationOutcome.failure([Violation(path="field", message="is invalid")])
        return ValidationOutcome.success({"validated": True, "by": self.name})


@pytest.fixture
def fake_clock():
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def strict_limits():
    """Blocking policy: 3 failures per minute, 5 per hour, 60 second block."""
    return ValidationRateLimits(
        max_failures_per_minute=3,
        max_failures_per_hour=5,
        block_duration_ms=60_000,
    )


@pytest.fixture
def tracker(strict_limits, fake_clock):
    return FailureTracker(strict_limits, reset_on_success=False, clock=fake_clock)


@pytest.fixture
def guard(tracker):
    return ValidationRateGuard(tracker)


@pytest.fixture
def stats_cache():
    return StatsCache(ttl=60, max_keys=100)


@pytest.fixture
def counting_schema_factory():
    """Returns a factory for CountingSchema instances."""
    return CountingSchema


@pytest.fixture
def gate_state(strict_limits, fake_clock):
    """Application state with strict limits and a controllable clock."""
    return GateState.create(limits=strict_limits, reset_on_success=False, clock=fake_clock)


@pytest.fixture
def app(gate_state):
    from main import create_app

    return create_app(gate_state)


@pytest.fixture
def test_client(app):
    """TestClient over a freshly built application."""
    return TestClient(app)
