"""Runtime configuration read from environment variables."""
import os
from dataclasses import dataclass
from typing import Optional


def _optional(name: str) -> Optional[str]:
    value = os.environ.get(name, '').strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    cache_table_name: Optional[str]
    log_level: str
    source_timeout_seconds: float
    memory_cache_ttl_seconds: float
    shared_cache_ttl_seconds: int
    rate_limit_max_requests: int
    rate_limit_window_seconds: float
    shared_write_wait_seconds: float
    eventbrite_api_key: Optional[str]
    meetup_api_key: Optional[str]
    default_lat: float
    default_lng: float

    @classmethod
    def from_env(cls) -> 'Settings':
        """
        Build settings from the process environment.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        return cls(
            cache_table_name=_optional('CACHE_TABLE_NAME'),
            log_level=os.environ.get('LOG_LEVEL', 'INFO'),
            source_timeout_seconds=float(os.environ.get('SOURCE_TIMEOUT_SECONDS', '10')),
            memory_cache_ttl_seconds=float(os.environ.get('MEMORY_CACHE_TTL_SECONDS', '90')),
            shared_cache_ttl_seconds=int(os.environ.get('SHARED_CACHE_TTL_SECONDS', '300')),
            rate_limit_max_requests=int(os.environ.get('RATE_LIMIT_MAX_REQUESTS', '100')),
            rate_limit_window_seconds=float(os.environ.get('RATE_LIMIT_WINDOW_SECONDS', '900')),
            shared_write_wait_seconds=float(os.environ.get('SHARED_WRITE_WAIT_SECONDS', '2')),
            eventbrite_api_key=_optional('EVENTBRITE_API_KEY'),
            meetup_api_key=_optional('MEETUP_API_KEY'),
            default_lat=float(os.environ.get('DEFAULT_LAT', '60.1699')),
            default_lng=float(os.environ.get('DEFAULT_LNG', '24.9384'))
        )
