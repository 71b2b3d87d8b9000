"""
Pytest configuration for mistake analytics tests.

This module provides:
1. A controllable clock so instances can be recorded "in the past"
2. Storage backend fixtures (in-memory and temp-dir files)
3. A ready-made error-pattern engine bound to both
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from mistake_analytics import (
    FileStorageBackend,
    InMemoryStorageBackend,
    MistakeInstanceStore,
    create_error_pattern_engine,
)


# -----------------------------------------------------------------------------
# Controllable Clock
# -----------------------------------------------------------------------------
class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, days: float = 0, seconds: float = 0) -> None:
        self.current = self.current + timedelta(days=days, seconds=seconds)

    def set(self, moment: datetime) -> None:
        self.current = moment


# -----------------------------------------------------------------------------
# Test Constants
# -----------------------------------------------------------------------------
NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
STUDENT_ID = "S1"
OTHER_STUDENT_ID = "S2"


def make_context(**overrides):
    context = {
        "topic": "Mechanics",
        "difficulty": "medium",
        "effort_count": 2,
        "time_spent_seconds": 240,
    }
    context.update(overrides)
    return context


def record_at(engine_or_store, clock, moment, pattern_id, student_id=STUDENT_ID, problem_id="P1"):
    """Record one mistake with the clock pinned to `moment`, then restore it."""
    saved = clock.current
    clock.set(moment)
    try:
        return engine_or_store.record(
            student_id=student_id,
            pattern_id=pattern_id,
            problem_id=problem_id,
            context=make_context(),
        )
    finally:
        clock.set(saved)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def memory_backend():
    return InMemoryStorageBackend()


@pytest.fixture
def file_backend(temp_dir):
    return FileStorageBackend(temp_dir / "storage")


@pytest.fixture
def store(memory_backend, clock):
    return MistakeInstanceStore(memory_backend, key="error_patterns", clock=clock)


@pytest.fixture
def engine(memory_backend, clock):
    return create_error_pattern_engine(memory_backend, clock=clock)
