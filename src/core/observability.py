"""Tracing setup using OpenTelemetry with pluggable exporters.

Spans are opened explicitly by the request observability middleware and by
``trace_operation``; no framework auto-instrumentation is installed.

Exporters:
- **console**: Finished spans are written through Loguru
- **otlp**: Spans are shipped to a collector over gRPC
- **none**: Spans are sampled and dropped
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from src.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from src.core.config import Settings

SERVICE_NAME_KEY: Final[str] = "service.name"
SERVICE_VERSION_KEY: Final[str] = "service.version"
ENVIRONMENT_KEY: Final[str] = "deployment.environment"
DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"


class _TracingState:
    """Tracks the provider installed by ``setup_tracing``."""

    def __init__(self) -> None:
        self.provider: TracerProvider | None = None


_state = _TracingState()


class LoguruSpanExporter(SpanExporter):
    """Span exporter that writes finished spans through Loguru."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Log one DEBUG line per finished span."""
        for span in spans:
            span_context = span.get_span_context()
            if not span_context:
                continue

            attributes = dict(span.attributes or {})
            duration_ms = None
            if span.end_time and span.start_time:
                duration_ms = (span.end_time - span.start_time) // 1_000_000

            logger.bind(
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                correlation_id=attributes.get("correlation_id"),
                span_name=span.name,
                duration_ms=duration_ms,
                attributes=attributes,
                span_status=span.status.status_code.name,
            ).debug("Trace span completed: {}", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Get the span exporter named by configuration.

    Args:
        settings: Application settings.

    Returns:
        SpanExporter | None: Configured exporter or None if disabled.
    """
    exporter_type = settings.observability_config.exporter_type

    if exporter_type == "console":
        return LoguruSpanExporter()

    if exporter_type == "otlp":
        endpoint = (
            settings.observability_config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
        )
        logger.info("Using OTLP exporter at {}", endpoint)
        return OTLPSpanExporter(
            endpoint=endpoint,
            insecure=settings.environment == "development",
        )

    return None


@lru_cache(maxsize=32)
def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for the given component.

    Args:
        name: Component name, typically __name__.

    Returns:
        trace.Tracer: OpenTelemetry tracer instance.
    """
    return trace.get_tracer(name)


def setup_tracing(settings: Settings) -> None:
    """Install the global tracer provider.

    Calling this more than once keeps the first provider.

    Args:
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        logger.info("Tracing disabled by configuration")
        return

    if _state.provider is not None:
        return

    resource = Resource.create(
        {
            SERVICE_NAME_KEY: settings.app_name,
            SERVICE_VERSION_KEY: settings.app_version,
            ENVIRONMENT_KEY: settings.environment,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.observability_config.trace_sample_rate),
    )

    if exporter := get_span_exporter(settings):
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    _state.provider = provider

    logger.info(
        "Tracing configured",
        exporter_type=settings.observability_config.exporter_type,
        sample_rate=settings.observability_config.trace_sample_rate,
    )


def shutdown_tracing() -> None:
    """Flush buffered spans and stop the provider, if one was installed."""
    if _state.provider is None:
        return
    _state.provider.shutdown()
    _state.provider = None


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Open a span for a custom operation.

    Args:
        name: Operation name for the span.
        **attributes: Initial attributes for the span.

    Yields:
        trace.Span: The span, current for the duration of the block.

    Example:
        >>> with trace_operation("http_request", method="GET"):
        ...     await handle()
    """
    tracer = get_tracer(__name__)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(key, value)
        if correlation_id := RequestContext.get_correlation_id():
            span.set_attribute("correlation_id", correlation_id)
        yield span
