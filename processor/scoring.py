"""Liveness and relevance scoring for events."""
import math
from datetime import datetime, timedelta
from typing import List, Optional

from processor.models import NormalizedEvent, PRICE_FREE

EARTH_RADIUS_KM = 6371.0

DEFAULT_DURATION = timedelta(hours=6)
LIVE_SPAN_CEILING = timedelta(hours=12)

BASE_SCORE = 1000.0
DISTANCE_PENALTY_PER_KM = 10.0
LIVE_BONUS = 500.0
# (hours until start, bonus), checked in order
IMMINENCE_BONUSES = ((2, 200.0), (6, 100.0), (24, 50.0))
FREE_BONUS = 50.0
IMAGE_BONUS = 25.0
URL_BONUS = 10.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two WGS84 points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2 +
        math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
        math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_live_now(event: NormalizedEvent, now: datetime) -> bool:
    """
    Check whether an event is happening at the given moment.

    Events without an end time are assumed to last DEFAULT_DURATION.
    Events spanning more than LIVE_SPAN_CEILING are long-running listings
    (exhibitions, multi-day festivals) and never count as live.

    Args:
        event: Event to check
        now: Aware datetime of the current moment

    Returns:
        True if start <= now <= end and the span is within the ceiling
    """
    start = event.start
    end = event.end or start + DEFAULT_DURATION
    if end - start > LIVE_SPAN_CEILING:
        return False
    return start <= now <= end


def score_event(
    event: NormalizedEvent,
    viewer_lat: Optional[float],
    viewer_lng: Optional[float],
    now: datetime
) -> float:
    """
    Compute the relevance score of an event for a viewer.

    Uses event.is_live_now, so liveness must be computed first.

    Args:
        event: Event to score
        viewer_lat: Viewer latitude, or None if unknown
        viewer_lng: Viewer longitude, or None if unknown
        now: Aware datetime of the current moment

    Returns:
        Non-negative score, higher is more relevant
    """
    score = BASE_SCORE

    if viewer_lat is not None and viewer_lng is not None:
        distance = haversine_km(viewer_lat, viewer_lng, event.lat, event.lng)
        score -= distance * DISTANCE_PENALTY_PER_KM

    if event.is_live_now:
        score += LIVE_BONUS

    hours_until_start = (event.start - now).total_seconds() / 3600
    if hours_until_start > 0:
        for horizon, bonus in IMMINENCE_BONUSES:
            if hours_until_start <= horizon:
                score += bonus
                break

    if event.price_type == PRICE_FREE:
        score += FREE_BONUS
    if event.image_url:
        score += IMAGE_BONUS
    if event.url:
        score += URL_BONUS

    return max(0.0, score)


def rank_events(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
    """Stable sort by score, highest first."""
    return sorted(events, key=lambda event: event.score, reverse=True)
