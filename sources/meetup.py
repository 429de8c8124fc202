"""Adapter for the Meetup GraphQL API."""
from typing import Any, Dict, List, Optional

from processor.classification import clean_text
from processor.models import PRICE_FREE, Bounds, NormalizedEvent, format_instant, parse_instant
from sources.base import EventSource

RANKED_EVENTS_QUERY = """
query($lat: Float!, $lon: Float!, $radius: Int!, $first: Int!) {
  rankedEvents(input: {lat: $lat, lon: $lon, radius: $radius, first: $first}) {
    edges {
      node {
        id
        title
        description
        dateTime
        endTime
        eventUrl
        images { baseUrl }
        venue { name lat lng city }
      }
    }
  }
}
"""


class MeetupSource(EventSource):
    """Events from Meetup. Needs an API key.

    Meetup groups are overwhelmingly tech/networking and free, so every
    event is classified as such.
    """

    name = 'meetup'
    BASE_URL = "https://api.meetup.com/gql"
    PAGE_SIZE = 200
    RADIUS_KM = 25

    @property
    def requires_credential(self) -> bool:
        return True

    def _request(self, bounds: Optional[Bounds]) -> List[Dict[str, Any]]:
        center_lat, center_lng = self.search_center(bounds)
        payload = self._post_json(
            self.BASE_URL,
            json={
                'query': RANKED_EVENTS_QUERY,
                'variables': {
                    'lat': center_lat,
                    'lon': center_lng,
                    'radius': self.RADIUS_KM,
                    'first': self.PAGE_SIZE
                }
            },
            headers={'Authorization': f"Bearer {self.api_key}"}
        )
        ranked = ((payload.get('data') or {}).get('rankedEvents') or {})
        return [edge.get('node') or {} for edge in ranked.get('edges') or []]

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        venue = item.get('venue') or {}
        if not venue.get('lat') or not venue.get('lng'):
            return None

        title = clean_text(item.get('title'), self.MAX_TITLE_LENGTH)
        if not title or not item.get('dateTime'):
            return None

        images = item.get('images') or []
        end_time = item.get('endTime')

        return NormalizedEvent(
            id=f"{self.name}_{item['id']}",
            source=self.name,
            title=title,
            description=clean_text(item.get('description'), self.MAX_DESCRIPTION_LENGTH),
            start_time=format_instant(parse_instant(item['dateTime'])),
            end_time=format_instant(parse_instant(end_time)) if end_time else None,
            lat=float(venue['lat']),
            lng=float(venue['lng']),
            venue_name=venue.get('name') or 'Unknown Venue',
            city=venue.get('city') or 'Helsinki',
            category='tech',
            price_type=PRICE_FREE,
            url=item.get('eventUrl') or None,
            image_url=(images[0].get('baseUrl') if images else None) or None
        )
