"""Two-tier cache in front of event aggregation."""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import List, Optional

from exceptions import CacheBackendUnavailable
from processor.models import Bounds, CachePayload, timestamp_to_iso

logger = logging.getLogger(__name__)

AGGREGATION_KEY = 'events:aggregated:v3'


def aggregation_key(bounds: Optional[Bounds] = None) -> str:
    """Cache key for the aggregation of a given bounding box."""
    if bounds is None:
        return AGGREGATION_KEY
    return f"{AGGREGATION_KEY}:bbox:{bounds.as_key()}"


class CacheStore:
    """Key-value store holding cache payloads with a time-to-live."""

    def get(self, key: str) -> Optional[CachePayload]:
        """
        Return the payload stored under key, or None if absent or expired.

        Raises:
            CacheBackendUnavailable: If the backend cannot be reached
        """
        raise NotImplementedError

    def set(self, key: str, payload: CachePayload, ttl_seconds: float) -> None:
        """
        Store a payload under key for ttl_seconds.

        Raises:
            CacheBackendUnavailable: If the backend cannot be reached
        """
        raise NotImplementedError


class LocalCache(CacheStore):
    """Single in-memory slot holding the latest payload for a short TTL."""

    def __init__(self, ttl_seconds: float = 90, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._key = None
        self._payload = None
        self._expires_at = 0.0

    def get(self, key: str) -> Optional[CachePayload]:
        if self._payload is None or key != self._key:
            return None
        if self.clock() >= self._expires_at:
            return None
        return self._payload

    def set(self, key: str, payload: CachePayload, ttl_seconds: float = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._key = key
        self._payload = payload
        self._expires_at = self.clock() + ttl

    def clear(self) -> None:
        self._key = None
        self._payload = None
        self._expires_at = 0.0


class CacheHierarchy:
    """
    Serves payloads from tier 1, then tier 2, then a full aggregation.

    Tier 2 writes happen on a background executor so they never delay the
    response; their failures are logged and counted.
    """

    def __init__(
        self,
        aggregator,
        local: LocalCache,
        shared: Optional[CacheStore] = None,
        shared_ttl_seconds: int = 300,
        clock=time.time,
        single_flight: bool = False
    ):
        """
        Initialize the cache hierarchy.

        Args:
            aggregator: EventAggregator used on a full miss
            local: Tier 1 process-local cache
            shared: Tier 2 shared cache, or None when not configured
            shared_ttl_seconds: TTL for tier 2 entries
            clock: Callable returning the current unix time
            single_flight: Serialize concurrent misses within this process
        """
        self.aggregator = aggregator
        self.local = local
        self.shared = shared
        self.shared_ttl_seconds = shared_ttl_seconds
        self.clock = clock
        self.single_flight = single_flight
        self.background_write_failures = 0
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix='cache-writer')
        self._pending: List[Future] = []
        self._flight_lock = threading.Lock()

    def get_payload(self, bounds: Optional[Bounds] = None) -> CachePayload:
        """
        Return the current payload for the given bounds.

        Raises:
            AggregateFailure: If a full aggregation produced no events
        """
        key = aggregation_key(bounds)

        payload = self.local.get(key)
        if payload is not None:
            logger.info("Serving events from local cache", extra={'cache_key': key})
            return payload

        if not self.single_flight:
            return self._load(key, bounds)

        with self._flight_lock:
            # Another request may have filled tier 1 while we waited
            payload = self.local.get(key)
            if payload is not None:
                return payload
            return self._load(key, bounds)

    def _load(self, key: str, bounds: Optional[Bounds]) -> CachePayload:
        payload = self._read_shared(key)
        if payload is not None:
            logger.info("Serving events from shared cache", extra={'cache_key': key})
            self.local.set(key, payload)
            return payload

        logger.info("Cache miss, aggregating from all sources", extra={'cache_key': key})
        events = self.aggregator.aggregate(bounds)
        payload = CachePayload(updated_at=timestamp_to_iso(self.clock()), data=tuple(events))

        self.local.set(key, payload)
        self._write_shared_in_background(key, payload)
        return payload

    def _read_shared(self, key: str) -> Optional[CachePayload]:
        if self.shared is None:
            return None
        try:
            return self.shared.get(key)
        except CacheBackendUnavailable as e:
            logger.warning(f"Shared cache read failed, treating as miss: {e}")
            return None

    def _write_shared_in_background(self, key: str, payload: CachePayload) -> None:
        if self.shared is None:
            return
        future = self._writer.submit(self._write_shared, key, payload)
        self._pending = [f for f in self._pending if not f.done()] + [future]

    def _write_shared(self, key: str, payload: CachePayload) -> None:
        """Runs on the writer thread; failures end here."""
        try:
            self.shared.set(key, payload, self.shared_ttl_seconds)
        except Exception as e:
            self.background_write_failures += 1
            logger.error(
                f"Shared cache write failed: {e}",
                extra={
                    'error_type': type(e).__name__,
                    'background_write_failures': self.background_write_failures
                }
            )

    def wait_for_pending_writes(self, timeout: float = None) -> None:
        """Block until queued tier 2 writes have finished."""
        wait(list(self._pending), timeout=timeout)
        self._pending = [f for f in self._pending if not f.done()]
