"""Adapter for the MyHelsinki open API."""
from typing import Any, Dict, List, Optional

from processor.classification import classify_category, clean_text, price_type_from_offers
from processor.models import Bounds, NormalizedEvent, format_instant, parse_instant
from sources.base import EventSource, localized


class MyHelsinkiSource(EventSource):
    """Events from open-api.myhelsinki.fi.

    MyHelsinki only publishes event dates, so events start at midnight and
    end at the last second of their ending day.
    """

    name = 'myhelsinki'
    BASE_URL = "https://open-api.myhelsinki.fi/v2/events/"
    LIMIT = 500

    def _request(self, bounds: Optional[Bounds]) -> List[Dict[str, Any]]:
        payload = self._get_json(self.BASE_URL, params={'limit': self.LIMIT})
        return payload.get('data') or []

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        location = item.get('location') or {}
        if not location.get('lat') or not location.get('lon'):
            return None

        title = clean_text(localized(item.get('name')), self.MAX_TITLE_LENGTH)
        event_dates = item.get('event_dates') or {}
        starting_day = event_dates.get('starting_day')
        if not title or not starting_day:
            return None

        # Some payloads carry full timestamps in the date fields
        starting_day = starting_day[:10]
        ending_day = (event_dates.get('ending_day') or '')[:10]

        address = location.get('address') or {}
        description = item.get('description')
        if not isinstance(description, dict):
            description = {}
        tags = [
            tag.get('name') or ''
            for tag in item.get('tags') or []
            if isinstance(tag, dict)
        ]
        offers = item.get('offers') or []
        images = description.get('images') or []

        return NormalizedEvent(
            id=f"{self.name}_{item['id']}",
            source=self.name,
            title=title,
            description=clean_text(localized(description), self.MAX_DESCRIPTION_LENGTH),
            start_time=format_instant(parse_instant(f"{starting_day}T00:00:00Z")),
            end_time=(
                format_instant(parse_instant(f"{ending_day}T23:59:59Z")) if ending_day else None
            ),
            lat=float(location['lat']),
            lng=float(location['lon']),
            venue_name=address.get('street_address') or 'Unknown Venue',
            city=address.get('locality') or 'Helsinki',
            category=classify_category(tags),
            price_type=price_type_from_offers(offers),
            url=(
                item.get('info_url') or
                (offers[0].get('url') if offers and isinstance(offers[0], dict) else None) or
                None
            ),
            image_url=(images[0].get('url') if images else None) or None
        )
