"""Per-request tracing span and outcome logging.

Every request gets an ``http_request`` span and a log context carrying the
method, raw path, matched route template (``unknown`` when nothing matched)
and query string. When the response starts, exactly one outcome line is
written:

- ``response_sent`` (INFO) with ``status`` and ``latency_ms`` for 1xx-3xx
- ``request_failed`` (ERROR) with ``error`` and ``latency_ms`` otherwise,
  where ``error`` is ``client_error``, ``server_error`` or the type of an
  exception that escaped the handlers

Latency is whole milliseconds from context open to the moment the response
starts (status and headers emitted). For streaming bodies the time spent
sending the remaining chunks is not included.

No path is excluded by default; ``log_config.excluded_paths`` is an
operator opt-in.
"""

from loguru import logger
from opentelemetry.trace import Span, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.api.constants import (
    CLIENT_ERROR,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
    REQUEST_ID_HEADER,
    REQUEST_SPAN_NAME,
    SERVER_ERROR,
)
from src.core.config import LogConfig
from src.core.constants import UNKNOWN_ROUTE
from src.core.context import RequestRecord, generate_request_id
from src.core.observability import trace_operation


def matched_route(request: Request) -> str:
    """Return the route template the router matched, or ``unknown``."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNKNOWN_ROUTE


def classify_status(status_code: int) -> str | None:
    """Return the failure classification of a status, None for success."""
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        return SERVER_ERROR
    if status_code >= HTTP_400_BAD_REQUEST:
        return CLIENT_ERROR
    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that traces and logs the outcome of every request.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request inside its span and log context.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response, with ``X-Request-ID`` set.

        Raises:
            Exception: Anything raised downstream is re-raised after logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        request.state.request_id = request_id

        record = RequestRecord(
            method=request.method,
            path=request.url.path,
            query=request.url.query,
        )

        with (
            trace_operation(
                REQUEST_SPAN_NAME,
                method=record.method,
                path=record.path,
                query=record.query,
                request_id=request_id,
            ) as span,
            logger.contextualize(
                request_id=request_id,
                method=record.method,
                path=record.path,
                query=record.query,
            ),
        ):
            try:
                response = await call_next(request)
            except Exception as exc:
                record.route = matched_route(request)
                self._log_failure(span, record, type(exc).__name__)
                raise

            record.route = matched_route(request)
            span.set_attribute("route", record.route)
            span.set_attribute("status", response.status_code)

            failure = classify_status(response.status_code)
            if failure is None:
                self._log_success(record, response.status_code)
            else:
                self._log_failure(span, record, failure, response.status_code)

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

    def _log_success(self, record: RequestRecord, status_code: int) -> None:
        latency_ms = record.elapsed_ms()
        logger.info(
            "response_sent",
            route=record.route,
            status=status_code,
            latency_ms=latency_ms,
        )
        self._warn_if_slow(record, latency_ms)

    def _log_failure(
        self,
        span: Span,
        record: RequestRecord,
        classification: str,
        status_code: int | None = None,
    ) -> None:
        latency_ms = record.elapsed_ms()
        span.set_attribute("route", record.route)
        span.set_status(StatusCode.ERROR, classification)
        logger.error(
            "request_failed",
            route=record.route,
            error=classification,
            status=status_code,
            latency_ms=latency_ms,
        )
        self._warn_if_slow(record, latency_ms)

    def _warn_if_slow(self, record: RequestRecord, latency_ms: int) -> None:
        if latency_ms > self.log_config.slow_request_threshold_ms:
            logger.warning(
                "Slow request detected",
                route=record.route,
                latency_ms=latency_ms,
                threshold_ms=self.log_config.slow_request_threshold_ms,
            )
