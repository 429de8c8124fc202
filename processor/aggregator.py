"""Fan-out over all event sources and merge their results."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import List, Optional

from exceptions import AggregateFailure
from processor.deduplication import deduplicate
from processor.models import AggregationStats, Bounds, NormalizedEvent
from processor.scoring import is_live_now, rank_events, score_event
from sources.base import DEFAULT_CENTER, EventSource

logger = logging.getLogger(__name__)


class EventAggregator:
    """Runs every source concurrently and produces one ranked event list."""

    # Extra time allowed on top of the per-source HTTP timeout
    WAIT_GRACE_SECONDS = 2

    def __init__(
        self,
        sources: List[EventSource],
        timeout: float = 10,
        center=DEFAULT_CENTER,
        clock=time.time
    ):
        """
        Initialize the aggregator.

        Args:
            sources: Source adapters, in invocation order
            timeout: Per-source timeout in seconds
            center: (lat, lng) events are scored against
            clock: Callable returning the current unix time
        """
        self.sources = sources
        self.timeout = timeout
        self.center = center
        self.clock = clock
        self.last_stats = AggregationStats()

    def aggregate(self, bounds: Optional[Bounds] = None) -> List[NormalizedEvent]:
        """
        Fetch from all sources, deduplicate, score and rank.

        Args:
            bounds: Optional bounding box passed to every source

        Returns:
            Ranked list of events

        Raises:
            AggregateFailure: If no source produced any event
        """
        stats = AggregationStats()
        merged: List[NormalizedEvent] = []

        for source, events in zip(self.sources, self._fetch_all(bounds, stats)):
            stats.fetched[source.name] = len(events)
            merged.extend(events)

        stats.merged = len(merged)
        unique = deduplicate(merged)
        stats.deduplicated = len(unique)
        self.last_stats = stats

        logger.info(
            f"Aggregated {stats.merged} events, {stats.deduplicated} after deduplication",
            extra={'fetched': stats.fetched, 'failed_sources': stats.failed_sources}
        )

        if not unique:
            raise AggregateFailure("No source returned any usable events")

        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        center_lat, center_lng = self.center
        for event in unique:
            event.is_live_now = is_live_now(event, now)
            event.score = score_event(event, center_lat, center_lng, now)

        return rank_events(unique)

    def _fetch_all(self, bounds: Optional[Bounds], stats: AggregationStats) -> List[List[NormalizedEvent]]:
        if not self.sources:
            return []

        executor = ThreadPoolExecutor(
            max_workers=len(self.sources), thread_name_prefix='source'
        )
        try:
            futures = [executor.submit(source.fetch, bounds) for source in self.sources]
            wait(futures, timeout=self.timeout + self.WAIT_GRACE_SECONDS)

            results = []
            for source, future in zip(self.sources, futures):
                if not future.done():
                    logger.error(f"Source {source.name} did not finish in time, skipping")
                    stats.failed_sources.append(source.name)
                    results.append([])
                elif future.exception() is not None:
                    logger.error(
                        f"Source {source.name} raised {type(future.exception()).__name__}"
                    )
                    stats.failed_sources.append(source.name)
                    results.append([])
                else:
                    results.append(future.result())
            return results
        finally:
            # A hung source must not hold up the response
            executor.shutdown(wait=False)
