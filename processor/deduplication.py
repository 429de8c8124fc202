"""Merge near-identical events reported by more than one source."""
import logging
import re
from typing import Dict, List

from processor.models import NormalizedEvent, format_instant

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r'[^\w\s]')


def normalize_title(title: str) -> str:
    """Lowercase, trim and strip punctuation from a title."""
    return _PUNCTUATION.sub('', (title or '').lower().strip())


def dedupe_key(event: NormalizedEvent) -> str:
    """
    Build the fuzzy key identifying likely duplicates.

    The key combines the normalized title, the lowercased venue name and
    the start time truncated to the hour (UTC).
    """
    start_hour = format_instant(event.start)[:13]
    return f"{normalize_title(event.title)}_{(event.venue_name or '').lower()}_{start_hour}"


def completeness_quality(event: NormalizedEvent) -> int:
    """Weighted count of the optional fields an event carries."""
    return (
        (10 if event.url else 0) +
        (20 if event.image_url else 0) +
        (5 if event.description else 0) +
        (5 if event.end_time else 0)
    )


def deduplicate(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
    """
    Collapse events sharing a dedup key into one record.

    The record with the higher completeness quality wins; on a tie the
    first-seen record is kept. Output order follows the first appearance
    of each key.

    Args:
        events: Events in adapter invocation order

    Returns:
        Deduplicated list of events
    """
    seen: Dict[str, NormalizedEvent] = {}

    for event in events:
        key = dedupe_key(event)
        existing = seen.get(key)
        if existing is None:
            seen[key] = event
        elif completeness_quality(event) > completeness_quality(existing):
            logger.debug(f"Replacing {existing.id} with richer duplicate {event.id}")
            seen[key] = event

    return list(seen.values())
