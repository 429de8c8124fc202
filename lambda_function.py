"""AWS Lambda handler for the hotspot events endpoint."""
import json
import logging
from typing import Any, Dict, Optional

from gateway.handler import EventsHandler
from gateway.rate_limiter import get_rate_limiter
from processor.aggregator import EventAggregator
from settings import Settings
from sources.registry import build_sources
from storage.cache import CacheHierarchy, LocalCache
from storage.dynamodb_cache import DynamoDBCacheStore

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


# Built once per container so tier 1 and the rate limiter survive warm starts
_events_handler: Optional[EventsHandler] = None


def build_handler(settings: Settings) -> EventsHandler:
    """
    Wire sources, cache tiers and rate limiter into a request handler.

    Args:
        settings: Runtime configuration

    Returns:
        EventsHandler ready to serve requests
    """
    aggregator = EventAggregator(
        build_sources(settings),
        timeout=settings.source_timeout_seconds,
        center=(settings.default_lat, settings.default_lng)
    )
    shared = (
        DynamoDBCacheStore(settings.cache_table_name)
        if settings.cache_table_name else None
    )
    cache = CacheHierarchy(
        aggregator,
        local=LocalCache(ttl_seconds=settings.memory_cache_ttl_seconds),
        shared=shared,
        shared_ttl_seconds=settings.shared_cache_ttl_seconds
    )
    rate_limiter = get_rate_limiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds
    )
    return EventsHandler(
        cache,
        rate_limiter,
        default_lat=settings.default_lat,
        default_lng=settings.default_lng
    )


def _internal_error() -> Dict[str, Any]:
    return {
        'statusCode': 500,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({'error': 'Internal server error'})
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the events query endpoint.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Proxy response dict with statusCode, headers and body
    """
    global _events_handler

    logger = logging.getLogger(__name__)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}", extra={'error_type': type(e).__name__})
        return _internal_error()

    setup_logging(settings.log_level)

    if _events_handler is None:
        logger.info(
            "Initializing events handler",
            extra={
                'cache_table_name': settings.cache_table_name,
                'source_timeout_seconds': settings.source_timeout_seconds
            }
        )
        try:
            _events_handler = build_handler(settings)
        except Exception as e:
            logger.error(
                "Failed to initialize events handler",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _internal_error()

    response = _events_handler.handle(event)

    # The container is frozen once we return, so give the shared cache
    # write a bounded chance to land first
    _events_handler.cache.wait_for_pending_writes(timeout=settings.shared_write_wait_seconds)

    return response
