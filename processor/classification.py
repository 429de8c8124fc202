"""Shared classification ruleset used by every source adapter."""
import re
from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup

from processor.models import DEFAULT_CATEGORY, PRICE_FREE, PRICE_PAID

Rule = Tuple[Callable[[str], bool], str]


def _matches_any(*keywords: str) -> Callable[[str], bool]:
    """Build a predicate that searches lowercase text for any keyword."""
    pattern = re.compile('|'.join(re.escape(keyword) for keyword in keywords))
    return lambda text: pattern.search(text) is not None


# First match wins
CATEGORY_RULES: List[Rule] = [
    (_matches_any('music', 'musiikki', 'concert', 'konsertti', 'band', 'dj',
                  'live music'), 'music'),
    (_matches_any('food', 'ruoka', 'restaurant', 'ravintola', 'street food',
                  'culinary', 'cooking'), 'food'),
    (_matches_any('sport', 'urheilu', 'game', 'ottelu', 'marathon', 'juoksu',
                  'fitness', 'yoga'), 'sports'),
    (_matches_any('family', 'perhe', 'kids', 'lapset', 'children',
                  'child'), 'family'),
    (_matches_any('art', 'taide', 'museum', 'gallery', 'exhibition',
                  'näyttely', 'performance'), 'arts'),
    (_matches_any('tech', 'technology', 'startup', 'coding', 'programming',
                  'meetup', 'hackathon'), 'tech'),
    (_matches_any('night', 'club', 'party', 'dance', 'nightlife',
                  'yö'), 'nightlife'),
]

VIRTUAL_VENUE_KEYWORDS = (
    'internet', 'online', 'verkko', 'video', 'zoom', 'stream', 'etä'
)
VIRTUAL_DESCRIPTION_KEYWORDS = (
    'online-tapahtuma', 'online event', 'virtual event', 'etätapahtuma',
    'zoom', 'streamattava'
)
VIRTUAL_TITLE_KEYWORDS = ('online', 'verkossa', 'zoom', 'stream')

# Events explicitly aimed at retirees and seniors
EXCLUDED_AUDIENCE_TEXT_KEYWORDS = (
    'eläkeläis', 'eläkeläin', 'seniorei', 'ikäihmis'
)
EXCLUDED_AUDIENCE_TITLE_KEYWORDS = EXCLUDED_AUDIENCE_TEXT_KEYWORDS + ('senior',)
EXCLUDED_AUDIENCE_VENUE_KEYWORDS = ('eläkeläis', 'seniorei')


def classify_category(keywords: Iterable[str], rules: List[Rule] = None) -> str:
    """
    Map source tags or keywords to one of the closed set of categories.

    Args:
        keywords: Tag/keyword strings from the source
        rules: Ordered (predicate, category) rules, defaults to CATEGORY_RULES

    Returns:
        Category of the first matching rule, or 'other'
    """
    text = ' '.join(keyword for keyword in keywords if keyword).lower()
    if not text:
        return DEFAULT_CATEGORY

    for predicate, category in (rules if rules is not None else CATEGORY_RULES):
        if predicate(text):
            return category
    return DEFAULT_CATEGORY


def price_type(is_free: Optional[bool]) -> str:
    return PRICE_FREE if is_free else PRICE_PAID


def price_type_from_offers(offers: Optional[list]) -> str:
    """An event is free if any of its offers is flagged free."""
    return price_type(any(
        offer.get('is_free') for offer in (offers or []) if isinstance(offer, dict)
    ))


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_virtual(title: str, description: str, venue: str) -> bool:
    """Check whether an event is online-only based on its text."""
    return (
        _contains_any((venue or '').lower(), VIRTUAL_VENUE_KEYWORDS) or
        _contains_any((description or '').lower(), VIRTUAL_DESCRIPTION_KEYWORDS) or
        _contains_any((title or '').lower(), VIRTUAL_TITLE_KEYWORDS)
    )


def is_excluded_audience(title: str, description: str, venue: str) -> bool:
    """Check whether an event is scoped to an excluded demographic."""
    return (
        _contains_any((title or '').lower(), EXCLUDED_AUDIENCE_TITLE_KEYWORDS) or
        _contains_any((description or '').lower(), EXCLUDED_AUDIENCE_TEXT_KEYWORDS) or
        _contains_any((venue or '').lower(), EXCLUDED_AUDIENCE_VENUE_KEYWORDS)
    )


def clean_text(value: Optional[str], max_length: int = None) -> str:
    """
    Strip HTML markup and collapse whitespace.

    Args:
        value: Raw text, possibly containing HTML
        max_length: Optional length cap

    Returns:
        Plain text
    """
    if not value:
        return ''
    if '<' in value:
        value = BeautifulSoup(value, 'html.parser').get_text(' ')
    text = ' '.join(value.split())
    if max_length is not None:
        text = text[:max_length]
    return text
