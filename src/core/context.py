"""Request context management for correlation IDs and per-request records."""

import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field

from src.core.constants import MILLISECONDS_PER_SECOND, UNKNOWN_ROUTE

# Context variable for storing correlation ID across async boundaries
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class RequestContext:
    """Manages request context using contextvars for async-safe storage.

    This class provides async-safe storage for request-scoped data,
    particularly correlation IDs that need to be accessible throughout the
    request lifecycle.
    """

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Set the correlation ID for the current context.

        Args:
            correlation_id: The correlation ID to store in the context.
        """
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Get the correlation ID from the current context.

        Returns:
            str | None: The correlation ID if set, None otherwise.
        """
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        """Clear all context variables."""
        _correlation_id_var.set(None)


@dataclass(slots=True)
class RequestRecord:
    """What is known about one in-flight request.

    Created when the request enters the middleware stack and dropped once
    the response is sent. Never shared between requests.
    """

    method: str
    path: str
    query: str
    route: str = UNKNOWN_ROUTE
    started_at: float = field(default_factory=time.perf_counter)

    def elapsed_ms(self) -> int:
        """Whole milliseconds since the record was opened."""
        return int((time.perf_counter() - self.started_at) * MILLISECONDS_PER_SECOND)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracking.

    Returns:
        str: A string representation of a UUID4.
    """
    return str(uuid.uuid4())


def generate_request_id() -> str:
    """Generate a unique request ID for individual request tracking.

    Request IDs are unique per request, while correlation IDs can span
    multiple services in a distributed system.

    Returns:
        str: A prefixed UUID4 string in format 'req-<uuid4>'.

    Examples:
        >>> request_id = generate_request_id()
        >>> request_id.startswith('req-')
        True
    """
    return f"req-{uuid.uuid4()}"
