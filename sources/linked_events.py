"""Adapter for the Helsinki LinkedEvents API."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from processor.classification import classify_category, clean_text, price_type_from_offers
from processor.models import Bounds, NormalizedEvent, format_instant, parse_instant
from sources.base import EventSource, localized


class LinkedEventsSource(EventSource):
    """Events from api.hel.fi LinkedEvents."""

    name = 'linkedevents'
    BASE_URL = "https://api.hel.fi/linkedevents/v1/event/"
    PAGE_SIZE = 500

    def _request(self, bounds: Optional[Bounds]) -> List[Dict[str, Any]]:
        today = datetime.fromtimestamp(self.clock(), tz=timezone.utc).strftime('%Y-%m-%d')
        params = {
            'page_size': self.PAGE_SIZE,
            'start': today,
            'include': 'location',
            'sort': 'start_time'
        }
        payload = self._get_json(self.BASE_URL, params=params)
        return payload.get('data') or []

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        location = item.get('location') or {}
        coordinates = (location.get('position') or {}).get('coordinates')
        if not coordinates or len(coordinates) < 2:
            return None

        # GeoJSON order
        lng, lat = float(coordinates[0]), float(coordinates[1])

        title = clean_text(localized(item.get('name')), self.MAX_TITLE_LENGTH)
        if not title or not item.get('start_time'):
            return None

        keywords = [
            localized(keyword.get('name'))
            for keyword in item.get('keywords') or []
            if isinstance(keyword, dict)
        ]
        offers = item.get('offers') or []
        images = item.get('images') or []
        end_time = item.get('end_time')

        return NormalizedEvent(
            id=f"{self.name}_{item['id']}",
            source=self.name,
            title=title,
            description=clean_text(
                localized(item.get('description')), self.MAX_DESCRIPTION_LENGTH
            ),
            start_time=format_instant(parse_instant(item['start_time'])),
            end_time=format_instant(parse_instant(end_time)) if end_time else None,
            lat=lat,
            lng=lng,
            venue_name=localized(location.get('name')) or 'Unknown Venue',
            city='Helsinki',
            category=classify_category(keywords),
            price_type=price_type_from_offers(offers),
            url=(
                localized(item.get('info_url')) or
                (offers[0].get('url') if offers and isinstance(offers[0], dict) else None) or
                None
            ),
            image_url=(images[0].get('url') if images else None) or None
        )
