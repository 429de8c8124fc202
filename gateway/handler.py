"""HTTP boundary for the events query endpoint."""
import json
import logging
import time
from typing import Any, Dict, Optional

from exceptions import AggregateFailure, RateLimitExceeded, ValidationError
from gateway.rate_limiter import RateLimiter, client_identifier, rate_limit_headers
from gateway.validation import DEFAULT_LAT, DEFAULT_LNG, parse_event_query
from processor.filters import apply_query
from storage.cache import CacheHierarchy

logger = logging.getLogger(__name__)

CACHE_CONTROL = 'public, s-maxage=60, stale-while-revalidate=120'


def _response(status_code: int, body: Optional[Dict[str, Any]], headers: Dict[str, str]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': headers,
        'body': json.dumps(body) if body is not None else ''
    }


class EventsHandler:
    """Validates, rate-limits and answers event queries."""

    def __init__(
        self,
        cache: CacheHierarchy,
        rate_limiter: RateLimiter,
        default_lat: float = DEFAULT_LAT,
        default_lng: float = DEFAULT_LNG,
        clock=time.time
    ):
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.default_lat = default_lat
        self.default_lng = default_lng
        self.clock = clock

    def handle(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Answer one API Gateway proxy request.

        Args:
            request: API Gateway proxy event

        Returns:
            Proxy response dict with statusCode, headers and JSON body
        """
        headers = {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Headers': '*'
        }
        method = (
            request.get('httpMethod') or
            ((request.get('requestContext') or {}).get('http') or {}).get('method') or
            'GET'
        ).upper()

        client = client_identifier(request)

        # Preflights and rejected methods report the limit but do not count
        if method == 'OPTIONS':
            headers.update(rate_limit_headers(self.rate_limiter.peek(client)))
            return _response(204, None, headers)
        if method != 'GET':
            headers.update(rate_limit_headers(self.rate_limiter.peek(client)))
            headers['Allow'] = 'GET, OPTIONS'
            return _response(405, {'error': 'Method not allowed'}, headers)

        validation_error = None
        try:
            query = parse_event_query(
                request.get('queryStringParameters'),
                default_lat=self.default_lat,
                default_lng=self.default_lng
            )
        except ValidationError as e:
            validation_error = e

        limit_result = self.rate_limiter.check(client)
        headers.update(rate_limit_headers(limit_result))

        if validation_error is not None:
            logger.info(f"Rejected request: {validation_error}", extra={'field': validation_error.field})
            return _response(400, {'error': str(validation_error)}, headers)

        try:
            if not limit_result.allowed:
                raise RateLimitExceeded(limit_result)

            payload = self.cache.get_payload(query.bbox)
            events = apply_query(payload.data, query, now=self.clock())
        except RateLimitExceeded as e:
            return _response(
                429,
                {'error': 'Too many requests', 'retryAfter': e.result.reset_time},
                headers
            )
        except AggregateFailure as e:
            logger.error(f"Aggregation produced no events: {e}")
            return _response(500, {'error': 'No events available'}, headers)
        except Exception as e:
            logger.error(
                "Unhandled error while serving events",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _response(500, {'error': 'Internal server error'}, headers)

        headers['Cache-Control'] = CACHE_CONTROL
        return _response(
            200,
            {
                'updatedAt': payload.updated_at,
                'count': len(events),
                'data': [event.to_dict() for event in events]
            },
            headers
        )
