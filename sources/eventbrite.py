"""Adapter for the Eventbrite search API."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from processor.classification import classify_category, clean_text, price_type
from processor.models import DEFAULT_CATEGORY, Bounds, NormalizedEvent, format_instant, parse_instant
from sources.base import EventSource


class EventbriteSource(EventSource):
    """Events from the Eventbrite v3 search endpoint. Needs an API key."""

    name = 'eventbrite'
    BASE_URL = "https://www.eventbriteapi.com/v3/events/search/"
    PAGE_SIZE = 200
    SEARCH_RADIUS = '25km'

    @property
    def requires_credential(self) -> bool:
        return True

    def _request(self, bounds: Optional[Bounds]) -> List[Dict[str, Any]]:
        center_lat, center_lng = self.search_center(bounds)
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        params = {
            'location.latitude': center_lat,
            'location.longitude': center_lng,
            'location.within': self.SEARCH_RADIUS,
            'start_date.range_start': now.strftime('%Y-%m-%dT%H:%M:%SZ'),
            'expand': 'venue,category',
            'page_size': self.PAGE_SIZE
        }
        payload = self._get_json(
            self.BASE_URL,
            params=params,
            headers={'Authorization': f"Bearer {self.api_key}"}
        )
        return payload.get('events') or []

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        venue = item.get('venue') or {}
        if not venue.get('latitude') or not venue.get('longitude'):
            return None

        title = clean_text((item.get('name') or {}).get('text'), self.MAX_TITLE_LENGTH)
        start = item.get('start') or {}
        start_value = start.get('utc') or start.get('local')
        if not title or not start_value:
            return None

        end = item.get('end') or {}
        end_value = end.get('utc') or end.get('local')
        category_name = (item.get('category') or {}).get('name')

        return NormalizedEvent(
            id=f"{self.name}_{item['id']}",
            source=self.name,
            title=title,
            description=clean_text(
                (item.get('description') or {}).get('text'), self.MAX_DESCRIPTION_LENGTH
            ),
            start_time=format_instant(parse_instant(start_value)),
            end_time=format_instant(parse_instant(end_value)) if end_value else None,
            lat=float(venue['latitude']),
            lng=float(venue['longitude']),
            venue_name=venue.get('name') or 'Unknown Venue',
            city=(venue.get('address') or {}).get('city') or 'Helsinki',
            category=classify_category([category_name]) if category_name else DEFAULT_CATEGORY,
            price_type=price_type(item.get('is_free')),
            url=item.get('url') or None,
            image_url=(item.get('logo') or {}).get('url') or None
        )
