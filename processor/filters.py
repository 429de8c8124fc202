"""Per-request filtering and ranking of a cached event set."""
import dataclasses
import time
from datetime import datetime, timezone
from typing import Iterable, List

from processor.models import PRICE_FREE, EventQuery, NormalizedEvent
from processor.scoring import haversine_km, rank_events, score_event

# Radius at or above which no distance filter is applied
MAX_RADIUS_KM = 50


def matches_text(event: NormalizedEvent, text: str) -> bool:
    needle = text.lower()
    return (
        needle in event.title.lower() or
        needle in (event.description or '').lower() or
        needle in (event.venue_name or '').lower()
    )


def apply_query(
    events: Iterable[NormalizedEvent],
    query: EventQuery,
    now: float = None
) -> List[NormalizedEvent]:
    """
    Filter, re-score for the viewer and limit a cached event set.

    Cached events are never modified; scored copies are returned.

    Args:
        events: Events from the cache payload
        query: Validated query parameters
        now: Unix time used for scoring (default: current time)

    Returns:
        At most query.limit events, highest score first
    """
    moment = datetime.fromtimestamp(now if now is not None else time.time(), tz=timezone.utc)
    selected = []

    for event in events:
        if query.q and not matches_text(event, query.q):
            continue
        if query.category and event.category != query.category:
            continue
        if query.free_only and event.price_type != PRICE_FREE:
            continue
        if query.live_only and not event.is_live_now:
            continue
        if query.bbox is not None:
            if not query.bbox.contains(event.lat, event.lng):
                continue
        elif query.radius_km < MAX_RADIUS_KM:
            if haversine_km(query.lat, query.lng, event.lat, event.lng) > query.radius_km:
                continue

        selected.append(dataclasses.replace(
            event, score=score_event(event, query.lat, query.lng, moment)
        ))

    return rank_events(selected)[:query.limit]
