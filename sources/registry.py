"""Default set of event sources, in invocation order."""
from typing import List

from sources.base import EventSource
from sources.eventbrite import EventbriteSource
from sources.linked_events import LinkedEventsSource
from sources.meetup import MeetupSource
from sources.myhelsinki import MyHelsinkiSource


def build_sources(settings) -> List[EventSource]:
    """
    Instantiate every known source from settings.

    Order matters: when two sources report the same event with equal
    completeness, the earlier source's record is kept.
    """
    center = (settings.default_lat, settings.default_lng)
    timeout = settings.source_timeout_seconds
    return [
        LinkedEventsSource(timeout=timeout, center=center),
        MyHelsinkiSource(timeout=timeout, center=center),
        EventbriteSource(timeout=timeout, api_key=settings.eventbrite_api_key, center=center),
        MeetupSource(timeout=timeout, api_key=settings.meetup_api_key, center=center),
    ]
