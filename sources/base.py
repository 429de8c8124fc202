"""Base class for upstream event source adapters."""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from exceptions import UpstreamSourceFailure
from processor.classification import is_excluded_audience, is_virtual
from processor.models import Bounds, NormalizedEvent

logger = logging.getLogger(__name__)

# Helsinki city centre
DEFAULT_CENTER = (60.1699, 24.9384)

LANGUAGE_PREFERENCE = ('fi', 'en', 'sv')

_missing_credential_logged = set()


def localized(value: Any, languages=LANGUAGE_PREFERENCE) -> str:
    """
    Resolve a multi-language field to a single string.

    Args:
        value: Plain string or mapping of language code to text
        languages: Language codes in order of preference

    Returns:
        Text in the first available language, or empty string
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return ''
    for language in languages:
        text = value.get(language)
        if text:
            return text
    return ''


class EventSource:
    """
    Fetches events from one upstream API and normalizes them.

    Subclasses implement _request() and _parse_item(). fetch() never
    raises: upstream failures are logged and yield an empty list.
    """

    name = ''
    BASE_URL = ''
    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def __init__(
        self,
        timeout: float = 10,
        api_key: Optional[str] = None,
        center=DEFAULT_CENTER,
        clock=time.time
    ):
        """
        Initialize the source adapter.

        Args:
            timeout: HTTP request timeout in seconds (default: 10)
            api_key: Upstream credential, for sources that need one
            center: (lat, lng) used when a search needs a center point
            clock: Callable returning the current unix time
        """
        self.timeout = timeout
        self.api_key = api_key
        self.center = center
        self.clock = clock

    @property
    def requires_credential(self) -> bool:
        return False

    def fetch(self, bounds: Optional[Bounds] = None) -> List[NormalizedEvent]:
        """
        Fetch and normalize events from the upstream source.

        Args:
            bounds: Optional bounding box events must fall within

        Returns:
            List of NormalizedEvent objects, empty on any failure
        """
        if self.requires_credential and not self.api_key:
            if self.name not in _missing_credential_logged:
                _missing_credential_logged.add(self.name)
                logger.info(f"{self.name} API key not configured, skipping")
            return []

        try:
            items = self._request(bounds)
        except UpstreamSourceFailure as e:
            logger.error(f"Fetch from {self.name} failed: {e}")
            return []
        except Exception as e:
            logger.error(
                f"Unexpected error fetching from {self.name}",
                extra={'source': self.name, 'error_type': type(e).__name__}
            )
            return []

        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        events = []
        for item in items:
            try:
                event = self._parse_item(item)
                if event and self._is_usable(event, bounds, now):
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse {self.name} item: {type(e).__name__}: {e}")

        logger.info(
            f"Fetched {len(events)} usable events from {self.name} "
            f"({len(items)} upstream items)"
        )
        return events

    def _request(self, bounds: Optional[Bounds]) -> List[Dict[str, Any]]:
        """Call the upstream API and return its raw event items."""
        raise NotImplementedError

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        """Normalize one raw item, or return None to drop it."""
        raise NotImplementedError

    def _get_json(self, url: str, **kwargs) -> Any:
        return self._send('GET', url, **kwargs)

    def _post_json(self, url: str, **kwargs) -> Any:
        return self._send('POST', url, **kwargs)

    def _send(self, method: str, url: str, **kwargs) -> Any:
        """
        Perform one HTTP request and decode its JSON body.

        Raises:
            UpstreamSourceFailure: On network errors, timeouts, non-2xx
                statuses or undecodable bodies
        """
        headers = {'Accept': 'application/json'}
        headers.update(kwargs.pop('headers', {}))
        try:
            response = requests.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.Timeout:
            raise UpstreamSourceFailure(self.name, f"timed out after {self.timeout}s")
        except requests.HTTPError as e:
            raise UpstreamSourceFailure(
                self.name, f"HTTP {e.response.status_code if e.response is not None else 'error'}"
            )
        except requests.RequestException as e:
            raise UpstreamSourceFailure(self.name, f"request failed ({type(e).__name__})")

        try:
            return response.json()
        except ValueError:
            raise UpstreamSourceFailure(self.name, "invalid JSON payload")

    def _is_usable(
        self,
        event: NormalizedEvent,
        bounds: Optional[Bounds],
        now: datetime
    ) -> bool:
        if not event.title.strip():
            return False
        if is_virtual(event.title, event.description, event.venue_name):
            return False
        if is_excluded_audience(event.title, event.description, event.venue_name):
            return False
        end = event.end
        if end is not None and end < now:
            return False
        if bounds is not None and not bounds.contains(event.lat, event.lng):
            return False
        return True

    def search_center(self, bounds: Optional[Bounds]):
        """Center point (lat, lng) for radius searches."""
        return bounds.center if bounds is not None else self.center
