"""Tests for the HTTP request handler, end to end with mock sources."""
import json
from datetime import timedelta
from unittest.mock import Mock

import pytest

from exceptions import AggregateFailure
from gateway.handler import CACHE_CONTROL, EventsHandler
from gateway.rate_limiter import RateLimiter
from processor.aggregator import EventAggregator
from storage.cache import CacheHierarchy, LocalCache


def api_request(params=None, method='GET', ip='203.0.113.9'):
    """Build an API Gateway proxy event."""
    return {
        'httpMethod': method,
        'headers': {'X-Forwarded-For': ip},
        'queryStringParameters': params,
        'requestContext': {'identity': {'sourceIp': '10.0.0.1'}}
    }


def make_source(name, events):
    source = Mock()
    source.name = name
    source.fetch.return_value = events
    return source


@pytest.fixture
def sources(event_factory, now_dt):
    """Two sources reporting the same concert plus one unique event each."""
    concert_bare = event_factory(
        id='linkedevents_1', title='Jazz Night', venue_name='Tavastia',
        start=now_dt + timedelta(hours=3)
    )
    concert_rich = event_factory(
        id='myhelsinki_7', source='myhelsinki', title='JAZZ NIGHT!', venue_name='tavastia',
        start=now_dt + timedelta(hours=3, minutes=20),
        url='https://example.com/jazz', image_url='https://example.com/jazz.jpg'
    )
    live_market = event_factory(
        id='linkedevents_2', title='Market Square Fair', category='food', price_type='free',
        start=now_dt - timedelta(hours=1), end=now_dt + timedelta(hours=3)
    )
    far_lecture = event_factory(
        id='myhelsinki_8', source='myhelsinki', title='Lecture', venue_name='Otaniemi',
        lat=60.1841, lng=24.8301, start=now_dt + timedelta(days=2)
    )
    return [
        make_source('linkedevents', [concert_bare, live_market]),
        make_source('myhelsinki', [concert_rich, far_lecture]),
    ]


@pytest.fixture
def handler(sources, clock):
    aggregator = EventAggregator(sources, clock=clock)
    cache = CacheHierarchy(aggregator, local=LocalCache(ttl_seconds=90, clock=clock), clock=clock)
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
    return EventsHandler(cache, limiter, clock=clock)


class TestEventsHandler:
    """Test cases for EventsHandler."""

    def test_success_merges_duplicates_and_ranks(self, handler, sources):
        """Test the merged result set and ranking order."""
        response = handler.handle(api_request({'radiusKm': '50'}))

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['updatedAt'] == '2026-06-01T12:00:00Z'
        assert body['count'] == 3
        ids = [event['id'] for event in body['data']]
        # live market first, then the merged concert, then the far lecture
        assert ids == ['linkedevents_2', 'myhelsinki_7', 'myhelsinki_8']
        assert body['data'][0]['isLiveNow'] is True
        scores = [event['score'] for event in body['data']]
        assert scores == sorted(scores, reverse=True)
        for source in sources:
            source.fetch.assert_called_once()

    def test_response_headers(self, handler):
        response = handler.handle(api_request())

        headers = response['headers']
        assert headers['Cache-Control'] == CACHE_CONTROL
        assert headers['Content-Type'] == 'application/json'
        assert headers['X-RateLimit-Limit'] == '5'
        assert headers['X-RateLimit-Remaining'] == '4'
        assert headers['X-RateLimit-Reset'] == '2026-06-01T12:01:00Z'

    def test_filters_are_applied_per_request(self, handler, sources):
        """Test that different filters reuse the cached aggregation."""
        free = json.loads(handler.handle(api_request({'freeOnly': 'true'}))['body'])
        text = json.loads(handler.handle(api_request({'q': 'jazz'}))['body'])
        near = json.loads(handler.handle(api_request({'radiusKm': '2'}))['body'])

        assert [event['id'] for event in free['data']] == ['linkedevents_2']
        assert [event['id'] for event in text['data']] == ['myhelsinki_7']
        assert 'myhelsinki_8' not in [event['id'] for event in near['data']]
        for source in sources:
            assert source.fetch.call_count == 1

    def test_limit(self, handler):
        body = json.loads(handler.handle(api_request({'limit': '1', 'radiusKm': '50'}))['body'])

        assert body['count'] == 1
        assert body['data'][0]['id'] == 'linkedevents_2'

    def test_validation_error(self, handler, sources):
        """Test that invalid input is rejected before any source is called."""
        response = handler.handle(api_request({'lat': '999'}))

        assert response['statusCode'] == 400
        body = json.loads(response['body'])
        assert 'lat' in body['error']
        assert set(body) == {'error'}
        assert 'X-RateLimit-Limit' in response['headers']
        for source in sources:
            source.fetch.assert_not_called()

    def test_valid_latitude_accepted(self, handler):
        assert handler.handle(api_request({'lat': '60.17'}))['statusCode'] == 200

    def test_rate_limit_exceeded(self, handler, sources):
        for _ in range(5):
            assert handler.handle(api_request())['statusCode'] == 200

        response = handler.handle(api_request())

        assert response['statusCode'] == 429
        body = json.loads(response['body'])
        assert body == {'error': 'Too many requests', 'retryAfter': '2026-06-01T12:01:00Z'}
        assert response['headers']['X-RateLimit-Remaining'] == '0'
        # Other clients are unaffected
        assert handler.handle(api_request(ip='198.51.100.1'))['statusCode'] == 200

    def test_aggregate_failure_returns_generic_500(self, clock):
        aggregator = Mock()
        aggregator.aggregate.side_effect = AggregateFailure('all sources empty')
        handler = EventsHandler(
            CacheHierarchy(aggregator, local=LocalCache(clock=clock), clock=clock),
            RateLimiter(clock=clock),
            clock=clock
        )

        response = handler.handle(api_request())

        assert response['statusCode'] == 500
        assert json.loads(response['body']) == {'error': 'No events available'}

    def test_unexpected_error_is_not_leaked(self, clock):
        aggregator = Mock()
        aggregator.aggregate.side_effect = RuntimeError('password=hunter2')
        handler = EventsHandler(
            CacheHierarchy(aggregator, local=LocalCache(clock=clock), clock=clock),
            RateLimiter(clock=clock),
            clock=clock
        )

        response = handler.handle(api_request())

        assert response['statusCode'] == 500
        assert 'hunter2' not in response['body']
        assert json.loads(response['body']) == {'error': 'Internal server error'}

    def test_options_preflight(self, handler, sources):
        response = handler.handle(api_request(method='OPTIONS'))

        assert response['statusCode'] == 204
        assert response['headers']['Access-Control-Allow-Origin'] == '*'
        for source in sources:
            source.fetch.assert_not_called()

    def test_method_not_allowed(self, handler):
        response = handler.handle(api_request(method='POST'))

        assert response['statusCode'] == 405

    def test_preflight_and_rejected_methods_carry_rate_limit_headers(self, handler):
        """Test that OPTIONS and 405 report the limit without consuming it."""
        preflight = handler.handle(api_request(method='OPTIONS'))
        rejected = handler.handle(api_request(method='DELETE'))
        served = handler.handle(api_request())

        for response in (preflight, rejected):
            assert response['headers']['X-RateLimit-Limit'] == '5'
            assert response['headers']['X-RateLimit-Remaining'] == '5'
            assert response['headers']['X-RateLimit-Reset'] == '2026-06-01T12:01:00Z'
        assert served['headers']['X-RateLimit-Remaining'] == '4'
