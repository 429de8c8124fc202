"""Unit tests for liveness and scoring."""
from datetime import timedelta

import pytest

from processor.scoring import haversine_km, is_live_now, rank_events, score_event


class TestHaversine:
    """Test cases for haversine_km."""

    def test_zero_distance(self):
        assert haversine_km(60.17, 24.94, 60.17, 24.94) == 0

    def test_helsinki_to_tallinn(self):
        """Test a known distance (about 82 km)."""
        assert haversine_km(60.1699, 24.9384, 59.4370, 24.7536) == pytest.approx(82, abs=2)


class TestIsLiveNow:
    """Test cases for is_live_now."""

    def test_within_window(self, event_factory, now_dt):
        event = event_factory(start=now_dt - timedelta(hours=1), end=now_dt + timedelta(hours=1))
        assert is_live_now(event, now_dt)

    def test_boundaries_are_inclusive(self, event_factory, now_dt):
        assert is_live_now(event_factory(start=now_dt, end=now_dt + timedelta(hours=1)), now_dt)
        assert is_live_now(event_factory(start=now_dt - timedelta(hours=1), end=now_dt), now_dt)

    def test_not_started(self, event_factory, now_dt):
        assert not is_live_now(event_factory(start=now_dt + timedelta(minutes=1)), now_dt)

    def test_ended(self, event_factory, now_dt):
        event = event_factory(start=now_dt - timedelta(hours=3), end=now_dt - timedelta(hours=1))
        assert not is_live_now(event, now_dt)

    def test_default_duration_applies_without_end(self, event_factory, now_dt):
        """Test the assumed six-hour duration."""
        assert is_live_now(event_factory(start=now_dt - timedelta(hours=5)), now_dt)
        assert not is_live_now(event_factory(start=now_dt - timedelta(hours=10)), now_dt)

    def test_long_running_listing_is_never_live(self, event_factory, now_dt):
        """Test that spans over twelve hours are excluded."""
        event = event_factory(start=now_dt - timedelta(hours=1), end=now_dt + timedelta(hours=12))
        assert not is_live_now(event, now_dt)

    def test_exactly_twelve_hours_is_live(self, event_factory, now_dt):
        event = event_factory(start=now_dt - timedelta(hours=6), end=now_dt + timedelta(hours=6))
        assert is_live_now(event, now_dt)


class TestScoreEvent:
    """Test cases for score_event."""

    def test_base_score_without_viewer(self, event_factory, now_dt):
        event = event_factory(start=now_dt + timedelta(days=3))
        assert score_event(event, None, None, now_dt) == 1000

    def test_bonuses(self, event_factory, now_dt):
        event = event_factory(
            start=now_dt + timedelta(days=3),
            price_type='free',
            image_url='https://example.com/a.jpg',
            url='https://example.com'
        )
        assert score_event(event, None, None, now_dt) == 1000 + 50 + 25 + 10

    def test_live_bonus(self, event_factory, now_dt):
        event = event_factory(start=now_dt - timedelta(hours=1), is_live_now=True)
        assert score_event(event, None, None, now_dt) == 1500

    @pytest.mark.parametrize('hours, bonus', [
        (1, 200), (2, 200), (4, 100), (6, 100), (12, 50), (24, 50), (30, 0),
    ])
    def test_imminence_tiers(self, event_factory, now_dt, hours, bonus):
        event = event_factory(start=now_dt + timedelta(hours=hours))
        assert score_event(event, None, None, now_dt) == 1000 + bonus

    def test_distance_penalty(self, event_factory, now_dt):
        event = event_factory(start=now_dt + timedelta(days=3), lat=60.1699, lng=24.9384)
        distance = haversine_km(60.2, 24.9384, 60.1699, 24.9384)

        score = score_event(event, 60.2, 24.9384, now_dt)

        assert score == pytest.approx(1000 - distance * 10)

    def test_score_non_increasing_with_distance(self, event_factory, now_dt):
        """Test monotonicity in distance, all else equal."""
        event = event_factory(start=now_dt + timedelta(days=3))
        scores = [
            score_event(event, 60.1699 + offset, 24.9384, now_dt)
            for offset in (0, 0.01, 0.1, 0.5, 1, 5, 20)
        ]
        assert scores == sorted(scores, reverse=True)

    def test_score_is_clamped_to_zero(self, event_factory, now_dt):
        event = event_factory(start=now_dt + timedelta(days=3))
        assert score_event(event, -33.86, 151.2, now_dt) == 0


def test_rank_events_is_stable(event_factory):
    """Test that ties keep their input order."""
    a = event_factory(score=10)
    b = event_factory(score=20)
    c = event_factory(score=10)

    assert rank_events([a, b, c]) == [b, a, c]
