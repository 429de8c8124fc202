"""Data models for event aggregation."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

SOURCES = ('linkedevents', 'myhelsinki', 'eventbrite', 'meetup')

CATEGORIES = (
    'music', 'food', 'sports', 'family', 'arts', 'tech', 'nightlife', 'other'
)
DEFAULT_CATEGORY = 'other'

PRICE_FREE = 'free'
PRICE_PAID = 'paid'
PRICE_TYPES = (PRICE_FREE, PRICE_PAID)


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Naive timestamps are treated as UTC.

    Raises:
        ValueError: If the value is not a valid ISO 8601 timestamp
    """
    if not value:
        raise ValueError("empty timestamp")
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(moment: datetime) -> str:
    """Format a datetime as a UTC ISO 8601 instant (YYYY-MM-DDTHH:MM:SSZ)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def timestamp_to_iso(timestamp: float) -> str:
    """Format a unix timestamp as a UTC ISO 8601 instant."""
    return format_instant(datetime.fromtimestamp(timestamp, tz=timezone.utc))


@dataclass
class NormalizedEvent:
    """Event in the shape every source adapter produces."""
    id: str
    source: str
    title: str
    start_time: str
    lat: float
    lng: float
    description: str = ''
    end_time: Optional[str] = None
    venue_name: str = ''
    city: str = ''
    category: str = DEFAULT_CATEGORY
    price_type: str = PRICE_PAID
    url: Optional[str] = None
    image_url: Optional[str] = None
    is_live_now: bool = False
    score: float = 0.0

    @property
    def start(self) -> datetime:
        return parse_instant(self.start_time)

    @property
    def end(self) -> Optional[datetime]:
        return parse_instant(self.end_time) if self.end_time else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire representation."""
        return {
            'id': self.id,
            'source': self.source,
            'title': self.title,
            'description': self.description,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'lat': self.lat,
            'lng': self.lng,
            'venueName': self.venue_name,
            'city': self.city,
            'category': self.category,
            'priceType': self.price_type,
            'url': self.url,
            'imageUrl': self.image_url,
            'isLiveNow': self.is_live_now,
            'score': self.score
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NormalizedEvent':
        """Build an event from its camelCase wire representation."""
        return cls(
            id=data['id'],
            source=data['source'],
            title=data['title'],
            description=data.get('description') or '',
            start_time=data['startTime'],
            end_time=data.get('endTime'),
            lat=float(data['lat']),
            lng=float(data['lng']),
            venue_name=data.get('venueName') or '',
            city=data.get('city') or '',
            category=data.get('category') or DEFAULT_CATEGORY,
            price_type=data.get('priceType') or PRICE_PAID,
            url=data.get('url'),
            image_url=data.get('imageUrl'),
            is_live_now=bool(data.get('isLiveNow', False)),
            score=float(data.get('score', 0))
        )


@dataclass(frozen=True)
class CachePayload:
    """Result of one aggregation cycle, as stored in each cache tier."""
    updated_at: str
    data: Tuple[NormalizedEvent, ...]

    @property
    def count(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'updatedAt': self.updated_at,
            'count': self.count,
            'data': [event.to_dict() for event in self.data]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CachePayload':
        return cls(
            updated_at=data['updatedAt'],
            data=tuple(NormalizedEvent.from_dict(item) for item in data['data'])
        )


@dataclass(frozen=True)
class Bounds:
    """Bounding box in minLng,minLat,maxLng,maxLat order."""
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.min_lng <= lng <= self.max_lng and
            self.min_lat <= lat <= self.max_lat
        )

    @property
    def center(self) -> Tuple[float, float]:
        """Center point as (lat, lng)."""
        return (
            (self.min_lat + self.max_lat) / 2,
            (self.min_lng + self.max_lng) / 2
        )

    def as_key(self) -> str:
        return ','.join(
            f"{value:.3f}"
            for value in (self.min_lng, self.min_lat, self.max_lng, self.max_lat)
        )


@dataclass
class RateLimitRecord:
    """Request counter for one client within the current window."""
    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""
    allowed: bool
    remaining: int
    reset_time: str
    limit: int


@dataclass(frozen=True)
class EventQuery:
    """Validated parameters of an event query."""
    lat: float
    lng: float
    radius_km: float = 5.0
    limit: int = 200
    q: str = ''
    category: Optional[str] = None
    free_only: bool = False
    live_only: bool = False
    bbox: Optional[Bounds] = None


@dataclass
class AggregationStats:
    """Per-source counts from one aggregation cycle."""
    fetched: Dict[str, int] = field(default_factory=dict)
    merged: int = 0
    deduplicated: int = 0
    failed_sources: List[str] = field(default_factory=list)
