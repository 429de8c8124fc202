"""Unit tests for the per-request query stage."""
from processor.filters import apply_query
from processor.models import Bounds, EventQuery

HELSINKI = (60.1699, 24.9384)


def query(**overrides):
    fields = {'lat': HELSINKI[0], 'lng': HELSINKI[1], 'radius_km': 50}
    fields.update(overrides)
    return EventQuery(**fields)


def test_text_search_covers_title_description_and_venue(event_factory, clock):
    events = [
        event_factory(id='a', title='Jazz Night'),
        event_factory(id='b', title='Concert', description='Late night JAZZ'),
        event_factory(id='c', title='Concert', venue_name='Jazz Bar'),
        event_factory(id='d', title='Poetry'),
    ]

    result = apply_query(events, query(q='jazz'), now=clock())

    assert sorted(event.id for event in result) == ['a', 'b', 'c']


def test_category_price_and_live_filters(event_factory, clock):
    events = [
        event_factory(id='a', category='music', price_type='free', is_live_now=True),
        event_factory(id='b', category='music', price_type='paid', is_live_now=True),
        event_factory(id='c', category='food', price_type='free', is_live_now=True),
        event_factory(id='d', category='music', price_type='free', is_live_now=False),
    ]

    result = apply_query(
        events, query(category='music', free_only=True, live_only=True), now=clock()
    )

    assert [event.id for event in result] == ['a']


def test_radius_filter(event_factory, clock):
    """Test that events beyond the radius are dropped."""
    near = event_factory(id='near', lat=60.171, lng=24.941)
    far = event_factory(id='far', lat=60.2055, lng=24.6559)  # Espoo, ~16 km

    result = apply_query([near, far], query(radius_km=5), now=clock())

    assert [event.id for event in result] == ['near']


def test_max_radius_disables_distance_filter(event_factory, clock):
    far = event_factory(id='far', lat=61.4978, lng=23.7610)  # Tampere

    assert len(apply_query([far], query(radius_km=50), now=clock())) == 1


def test_bbox_replaces_radius(event_factory, clock):
    inside = event_factory(id='inside', lat=60.25, lng=24.80)
    outside = event_factory(id='outside', lat=60.40, lng=24.80)
    bbox = Bounds(min_lng=24.7, min_lat=60.2, max_lng=24.9, max_lat=60.3)

    result = apply_query([inside, outside], query(radius_km=1, bbox=bbox), now=clock())

    assert [event.id for event in result] == ['inside']


def test_rescored_for_viewer_and_limited(event_factory, clock):
    """Test ranking by viewer distance without touching cached events."""
    near = event_factory(id='near', lat=60.1699, lng=24.9384, score=1.0)
    mid = event_factory(id='mid', lat=60.18, lng=24.95, score=2.0)
    far = event_factory(id='far', lat=60.20, lng=24.99, score=3.0)

    result = apply_query([far, mid, near], query(limit=2), now=clock())

    assert [event.id for event in result] == ['near', 'mid']
    assert far.score == 3.0
    assert near.score == 1.0
    assert result[0] is not near
