"""Structured logging built on Loguru.

This module configures a single Loguru sink for the whole process and routes
standard library logging (uvicorn, SQLAlchemy, drivers) through it.

Formatter types:
- **console**: Human-readable with inline context (development)
- **json**: One JSON object per line (staging, production)

When ``log_formatter_type`` is not set the formatter follows the environment:
``console`` for development, ``json`` otherwise.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any, Final, cast

from loguru import logger

from src.core.error_context import is_sensitive_field, set_sensitive_fields

if TYPE_CHECKING:
    from src.core.config import Settings


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "method",
    "path",
    "route",
    "status",
    "latency_ms",
)


def _escape(value: object) -> str:
    # Loguru treats the returned string as a format template
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_priority_field(field: str, value: object) -> str:
    """Format a priority field for display.

    Args:
        field: The field name.
        value: The field value.

    Returns:
        str: Formatted value.
    """
    if field == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        value = str(value)[:CORRELATION_ID_DISPLAY_LENGTH]
    elif field == "latency_ms":
        value = f"{value}ms"
    elif field == "status":
        status_str = _escape(value)
        if status_str.startswith(("2", "3")):
            return f"<green>{status_str}</green>"
        if status_str.startswith("4"):
            return f"<red>{status_str}</red>"
        return f"<red><bold>{status_str}</bold></red>"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    """Format an extra field as ``key=value``, redacting sensitive keys.

    Args:
        key: The field name.
        value: The field value.

    Returns:
        str: Formatted field.
    """
    str_value = str(value)
    if is_sensitive_field(key):
        str_value = "[REDACTED]"
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Format all context fields from extra data.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: List of formatted context parts.
    """
    context_parts = [
        f"<yellow>{_format_priority_field(field, extra[field])}</yellow>"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]
    context_parts.extend(
        f"<dim>{_format_extra_field(key, value)}</dim>"
        for key, value in extra.items()
        if key not in PRIORITY_FIELDS and not key.startswith("_") and value is not None
    )
    return context_parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format log record for console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Formatted log string with context.
    """
    try:
        time_str = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level_name = record["level"].name

        parts = [
            f"<green>{time_str}</green>",
            f"<level>{level_name: <8}</level>",
            f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
        ]

        context_parts = _format_context_fields(record.get("extra", {}))
        if context_parts:
            parts.append(" ".join(f"[{part}]" for part in context_parts))

        parts.append(_escape(record.get("message", "")))

        if record.get("exception"):
            parts.append("\n{exception}")

        return " | ".join(parts) + "\n"
    except (AttributeError, TypeError, ValueError, KeyError):
        return DEFAULT_LOG_FORMAT + "\n"


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format log record as one JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if extra := record.get("extra", {}):
        log_entry.update(
            {
                k: "[REDACTED]" if is_sensitive_field(k) else v
                for k, v in extra.items()
                if not k.startswith("_")
            }
        )

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return json.dumps(log_entry, default=str) + "\n"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru.

    This handler captures logs from libraries using standard logging
    (uvicorn, SQLAlchemy, aio-pika, ...) and forwards them to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def resolve_formatter_type(settings: Settings) -> str:
    """Pick the formatter from configuration or the environment.

    Args:
        settings: Application settings.

    Returns:
        str: ``console`` or ``json``.
    """
    if settings.log_config.log_formatter_type:
        return settings.log_config.log_formatter_type
    if settings.environment == "development":
        return "console"
    return "json"


def setup_logging(settings: Settings) -> None:
    """Configure Loguru and intercept standard library logging.

    Args:
        settings: Application settings containing log configuration.

    Note:
        This function ensures it's only called once using module state.
    """
    if _state.configured:
        return

    logger.remove()
    set_sensitive_fields(settings.log_config.sensitive_fields)

    formatter_type = resolve_formatter_type(settings)

    if formatter_type == "console":
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: object) -> None:
            """Write one JSON line per record."""
            if hasattr(message, "record"):
                sys.stdout.write(serialize_for_json(message.record))
                sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        formatter_type=formatter_type,
        log_level=settings.log_config.log_level,
    )

    _state.configured = True


async def flush_logging() -> None:
    """Wait until every enqueued record has been written."""
    await logger.complete()
