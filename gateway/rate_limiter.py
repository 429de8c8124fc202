"""Fixed-window request counter per client address."""
import logging
import threading
import time
from typing import Any, Dict, Tuple

from processor.models import RateLimitRecord, RateLimitResult, timestamp_to_iso

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 5 * 60


class RateLimiter:
    """
    Counts requests per client within fixed windows.

    Stale records are swept on check() at most once per sweep interval,
    so no timer outlives a request.
    """

    def __init__(self, max_requests: int = 100, window_seconds: float = 15 * 60, clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, identifier: str) -> RateLimitResult:
        """
        Count one request from a client.

        Args:
            identifier: Client identifier (usually its IP address)

        Returns:
            RateLimitResult; allowed is False once the window is used up
        """
        now = self.clock()
        with self._lock:
            self._sweep(now)

            record = self._records.get(identifier)
            if record is None or now - record.window_start >= self.window_seconds:
                record = RateLimitRecord(count=0, window_start=now)
                self._records[identifier] = record

            record.count += 1
            allowed = record.count <= self.max_requests

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={'client': identifier, 'limit': self.max_requests}
            )

        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.max_requests - record.count),
            reset_time=timestamp_to_iso(record.window_start + self.window_seconds),
            limit=self.max_requests
        )

    def peek(self, identifier: str) -> RateLimitResult:
        """
        Report a client's current standing without counting a request.

        Args:
            identifier: Client identifier (usually its IP address)
        """
        now = self.clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now - record.window_start >= self.window_seconds:
                count, window_start = 0, now
            else:
                count, window_start = record.count, record.window_start

        return RateLimitResult(
            allowed=count < self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_time=timestamp_to_iso(window_start + self.window_seconds),
            limit=self.max_requests
        )

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        stale = [
            identifier for identifier, record in self._records.items()
            if now - record.window_start > self.window_seconds
        ]
        for identifier in stale:
            del self._records[identifier]
        if stale:
            logger.debug(f"Swept {len(stale)} stale rate limit records")

    def __len__(self) -> int:
        return len(self._records)


_limiters: Dict[Tuple[int, float], RateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(max_requests: int = 100, window_seconds: float = 15 * 60) -> RateLimiter:
    """Return the shared limiter for a configuration, creating it once."""
    key = (max_requests, window_seconds)
    with _limiters_lock:
        if key not in _limiters:
            _limiters[key] = RateLimiter(max_requests=max_requests, window_seconds=window_seconds)
        return _limiters[key]


def client_identifier(request: Dict[str, Any]) -> str:
    """
    Derive the client address from an API Gateway proxy event.

    Prefers X-Real-IP, then the first X-Forwarded-For entry, then the
    connection address reported by API Gateway.
    """
    headers = {
        name.lower(): value
        for name, value in (request.get('headers') or {}).items()
        if value
    }

    if headers.get('x-real-ip'):
        return headers['x-real-ip'].strip()
    if headers.get('x-forwarded-for'):
        return headers['x-forwarded-for'].split(',')[0].strip()

    context = request.get('requestContext') or {}
    source_ip = (
        (context.get('identity') or {}).get('sourceIp') or
        (context.get('http') or {}).get('sourceIp')
    )
    return source_ip or 'unknown'


def rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        'X-RateLimit-Limit': str(result.limit),
        'X-RateLimit-Remaining': str(result.remaining),
        'X-RateLimit-Reset': result.reset_time
    }
