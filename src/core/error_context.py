"""Sensitive data sanitization for error logging.

Failures are logged with full internal detail for operators, but values under
sensitive-looking keys (passwords, tokens, connection strings, ...) are
replaced by ``[REDACTED]`` before they reach any sink.

Key features:
- **Pattern matching**: Regex-based detection of sensitive field names
- **Configurable fields**: Additional names registered by ``setup_logging``
- **Deep sanitization**: Recursive handling of nested data structures
- **Secret awareness**: ``SecretValue`` instances are always redacted
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from re import Pattern
from typing import TYPE_CHECKING, Any, Final

from src.core.constants import REDACTED
from src.core.secrets import SecretValue

if TYPE_CHECKING:
    from src.core.types import ErrorContext

# Type alias for values we can sanitize
SanitizableValue = (
    str | int | float | bool | None | dict[str, Any] | list[Any] | tuple[Any, ...]
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|api[_-]?key|apikey|auth|authorization|"
    r"credential|private[_-]?key|access[_-]?key|secret[_-]?key|session|"
    r"connection[_-]?string|dsn)",
    re.IGNORECASE,
)

# Maximum depth for nested structure sanitization
MAX_DEPTH: Final[int] = 10


class _SanitizerState:
    """Holds the extra sensitive field names configured at startup."""

    def __init__(self) -> None:
        self.sensitive_fields: tuple[str, ...] = ()


_state = _SanitizerState()


def set_sensitive_fields(fields: Iterable[str]) -> None:
    """Register additional field names to redact.

    Args:
        fields: Case-insensitive substrings that mark a field as sensitive.
    """
    _state.sensitive_fields = tuple(f.lower() for f in fields)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the field appears to contain sensitive data.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in _state.sensitive_fields)


def sanitize_value(
    value: SanitizableValue, field_name: str = "", depth: int = 0
) -> SanitizableValue:
    """Sanitize a value if it appears to be sensitive.

    Args:
        value: The value to potentially sanitize.
        field_name: The field name for context.
        depth: Current recursion depth.

    Returns:
        SanitizableValue: Sanitized value or original if not sensitive.
    """
    if depth > MAX_DEPTH:
        return REDACTED

    if isinstance(value, SecretValue):
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, dict):
        return {k: sanitize_value(v, k, depth + 1) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_value(item, "", depth + 1) for item in value]

    if isinstance(value, tuple):
        return tuple(sanitize_value(item, "", depth + 1) for item in value)

    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Sanitize a dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize.

    Returns:
        dict[str, Any]: New dictionary with sensitive values redacted.
    """
    return {key: sanitize_value(value, key) for key, value in data.items()}


def sanitize_error_context(
    error: BaseException, context: dict[str, Any] | None = None
) -> ErrorContext:
    """Create sanitized error context for logging.

    The wrapped cause of a taxonomy member is included by type and text, so
    operators see the driver's own message even when clients do not.

    Args:
        error: The exception to create context for.
        context: Additional context to include (will be sanitized).

    Returns:
        ErrorContext: Sanitized error context safe for logging.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    cause = getattr(error, "cause", None) or error.__cause__
    if cause is not None:
        error_context["cause_type"] = type(cause).__name__
        error_context["cause_message"] = str(cause)

    if context:
        error_context.update(sanitize_dict(context))

    return error_context
