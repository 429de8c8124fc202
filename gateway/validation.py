"""Whitelist and range validation of request parameters."""
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from exceptions import ValidationError
from processor.models import CATEGORIES, Bounds, EventQuery

DEFAULT_LAT = 60.1699
DEFAULT_LNG = 24.9384
DEFAULT_RADIUS_KM = 5
DEFAULT_LIMIT = 200

MIN_RADIUS_KM, MAX_RADIUS_KM = 1, 50
MIN_LIMIT, MAX_LIMIT = 1, 1000
MAX_PHOTO_WIDTH = 1600
MAX_QUERY_LENGTH = 200

_IDENTIFIER = re.compile(r'^[A-Za-z0-9_-]+$')
_TRUE_VALUES = ('true', '1', 'yes')
_FALSE_VALUES = ('false', '0', 'no', '')


def _to_float(value: Any, field: str) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(field, f"'{_preview(value)}' is not a number")
    if not math.isfinite(number):
        raise ValidationError(field, "must be a finite number")
    return number


def _preview(value: Any, length: int = 30) -> str:
    """Short, printable rendering of a rejected value for error messages."""
    text = str(value).replace('\0', '')
    text = ''.join(ch for ch in text if ch.isprintable())
    return text[:length]


def validate_number(value: Any, minimum: float, maximum: float, field: str = 'number') -> float:
    number = _to_float(value, field)
    if number < minimum or number > maximum:
        raise ValidationError(field, f"must be between {minimum} and {maximum}")
    return number


def validate_latitude(value: Any, field: str = 'lat') -> float:
    return validate_number(value, -90, 90, field)


def validate_longitude(value: Any, field: str = 'lng') -> float:
    return validate_number(value, -180, 180, field)


def validate_radius(value: Any, field: str = 'radiusKm') -> float:
    return validate_number(value, MIN_RADIUS_KM, MAX_RADIUS_KM, field)


def validate_limit(value: Any, field: str = 'limit') -> int:
    number = validate_number(value, MIN_LIMIT, MAX_LIMIT, field)
    if number != int(number):
        raise ValidationError(field, "must be a whole number")
    return int(number)


def validate_photo_width(value: Any, field: str = 'maxWidth') -> int:
    return int(validate_number(value, 1, MAX_PHOTO_WIDTH, field))


def validate_string(value: Any, max_length: int = 200, field: str = 'value') -> str:
    """
    Strip null bytes, cap the length and reject empty strings.

    Args:
        value: Raw value
        max_length: Maximum number of characters kept
        field: Parameter name used in error messages

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        raise ValidationError(field, "must be a string")
    sanitized = value.replace('\0', '')[:max_length].strip()
    if not sanitized:
        raise ValidationError(field, "cannot be empty")
    return sanitized


def validate_search_text(value: Optional[str], field: str = 'q') -> str:
    """Free-text search; absent or blank means no text filter."""
    if value is None or not str(value).replace('\0', '').strip():
        return ''
    return validate_string(value, MAX_QUERY_LENGTH, field)


def validate_identifier(value: Any, max_length: int = 200, field: str = 'id') -> str:
    """Accept only letters, digits, hyphens and underscores."""
    if not isinstance(value, str) or not (0 < len(value) <= max_length) or not _IDENTIFIER.match(value):
        raise ValidationError(field, "has an invalid format")
    return value


def validate_place_id(value: Any) -> str:
    return validate_identifier(value, 200, 'placeId')


def validate_photo_reference(value: Any) -> str:
    return validate_identifier(value, 500, 'photoReference')


def validate_choice(value: Any, allowed: Iterable[str], field: str) -> str:
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(field, f"must be one of: {', '.join(allowed)}")
    return value


def validate_category(value: Any) -> str:
    return validate_choice(value, CATEGORIES, 'category')


def validate_action(value: Any, allowed_actions: List[str]) -> str:
    return validate_choice(value, allowed_actions, 'action')


def validate_boolean(value: Any, field: str) -> bool:
    text = str(value).strip().lower() if value is not None else ''
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValidationError(field, "must be true or false")


def validate_bbox(value: Any) -> Bounds:
    """
    Parse a minLng,minLat,maxLng,maxLat bounding box.

    Returns:
        Bounds with min values strictly below max values
    """
    if not isinstance(value, str):
        raise ValidationError('bbox', "must be a string")

    parts = [part.strip() for part in value.split(',')]
    if len(parts) != 4:
        raise ValidationError('bbox', "must have 4 values: minLng,minLat,maxLng,maxLat")

    min_lng = validate_longitude(parts[0], 'bbox')
    min_lat = validate_latitude(parts[1], 'bbox')
    max_lng = validate_longitude(parts[2], 'bbox')
    max_lat = validate_latitude(parts[3], 'bbox')

    if min_lng >= max_lng or min_lat >= max_lat:
        raise ValidationError('bbox', "min values must be less than max values")

    return Bounds(min_lng=min_lng, min_lat=min_lat, max_lng=max_lng, max_lat=max_lat)


def parse_event_query(
    params: Optional[Dict[str, Any]],
    default_lat: float = DEFAULT_LAT,
    default_lng: float = DEFAULT_LNG
) -> EventQuery:
    """
    Validate raw query string parameters into an EventQuery.

    Args:
        params: Query string parameters (may be None)
        default_lat: Latitude used when lat is absent
        default_lng: Longitude used when lng is absent

    Returns:
        EventQuery with defaults filled in

    Raises:
        ValidationError: On the first invalid parameter
    """
    params = params or {}

    def present(name: str) -> bool:
        return params.get(name) not in (None, '')

    category = params.get('category')
    bbox = params.get('bbox')

    return EventQuery(
        lat=validate_latitude(params['lat']) if present('lat') else default_lat,
        lng=validate_longitude(params['lng']) if present('lng') else default_lng,
        radius_km=validate_radius(params['radiusKm']) if present('radiusKm') else DEFAULT_RADIUS_KM,
        limit=validate_limit(params['limit']) if present('limit') else DEFAULT_LIMIT,
        q=validate_search_text(params.get('q')),
        category=validate_category(category) if category else None,
        free_only=validate_boolean(params.get('freeOnly'), 'freeOnly'),
        live_only=validate_boolean(params.get('liveOnly'), 'liveOnly'),
        bbox=validate_bbox(bbox) if bbox else None
    )
