"""Shared fixtures for the events service tests."""
from datetime import datetime, timedelta, timezone

import pytest

from processor.models import NormalizedEvent, format_instant

NOW_DT = datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def now_dt():
    """Fixed current moment used across tests."""
    return NOW_DT


@pytest.fixture
def clock():
    """Fake clock starting at NOW_DT."""
    return FakeClock(NOW_DT.timestamp())


@pytest.fixture
def event_factory():
    """Build NormalizedEvent objects with sensible defaults."""
    counter = {'n': 0}

    def make(**overrides) -> NormalizedEvent:
        counter['n'] += 1
        start = overrides.pop('start', NOW_DT + timedelta(hours=3))
        end = overrides.pop('end', None)
        fields = {
            'id': f"linkedevents_{counter['n']}",
            'source': 'linkedevents',
            'title': f"Event {counter['n']}",
            'start_time': format_instant(start),
            'end_time': format_instant(end) if end else None,
            'lat': 60.1699,
            'lng': 24.9384,
            'venue_name': 'Tavastia',
            'city': 'Helsinki',
        }
        fields.update(overrides)
        return NormalizedEvent(**fields)

    return make
