"""Error taxonomy for the events service."""


class EventsServiceError(Exception):
    """Base exception for events service errors."""


class ValidationError(EventsServiceError):
    """Raised when a request parameter is malformed or out of range.

    The message is safe to return to the caller verbatim.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid {field}: {message}")


class RateLimitExceeded(EventsServiceError):
    """Raised when a client has used up its request window."""

    def __init__(self, result):
        self.result = result
        super().__init__(f"Rate limit of {result.limit} requests exceeded")


class UpstreamSourceFailure(EventsServiceError):
    """Raised inside an adapter when its upstream API cannot be used."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class CacheBackendUnavailable(EventsServiceError):
    """Raised by a shared cache store when the backend cannot be reached."""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        error_type = type(cause).__name__ if cause else 'unknown'
        super().__init__(f"Cache backend unavailable during {operation} ({error_type})")


class AggregateFailure(EventsServiceError):
    """Raised when no source produced any usable event."""
