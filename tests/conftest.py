"""
Pytest fixtures for the check-in billing test suite.

Provides:
- Structured logging configured for the session, plus a capture fixture
- A deterministic clock
- An in-memory SQLite session with the approved-booking lock listeners
- Charge-rate fixtures (value builders live in tests/builders.py)
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from checkin_kernel.db.engine import create_tables, init_engine_from_url, reset_engine
from checkin_kernel.db.immutability import unregister_immutability_listeners
from checkin_kernel.domain.clock import DeterministicClock
from checkin_kernel.domain.values import ChargeRate
from checkin_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

from tests.builders import make_rate

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture checkin logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.calculate(booking_id)
            logs = captured_logs()
            assert any(r["message"] == "draft_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("checkin")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed at FIXED_NOW."""
    return DeterministicClock(FIXED_NOW)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database per test."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the in-memory engine."""
    sess = Session(bind=db_engine, expire_on_commit=False)
    yield sess
    sess.close()


# =============================================================================
# Rates
# =============================================================================


@pytest.fixture
def hobbs_rate() -> ChargeRate:
    return make_rate("250.00", hobbs=True, rate_id="aircraft-rate")


@pytest.fixture
def instructor_hobbs_rate() -> ChargeRate:
    return make_rate("80.00", hobbs=True, rate_id="instructor-rate")
