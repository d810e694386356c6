"""Closed error taxonomy shared by startup and request handling.

Every failure the service can report ends as exactly one member of this
taxonomy. Each member knows its ``ErrorKind``, and the kind alone decides the
HTTP status and the externally visible message.

Key components:
- **ErrorKind enum**: The closed set of failure categories
- **Severity enum**: Error classification for monitoring and alerting
- **BackplaneError**: Base exception with cause chaining and fingerprinting
- **Variants**: One subclass per kind (configuration, each backend, ...)
- **HTTP_POLICY**: Kind -> (status code, public message) table

Backend-origin failures expose only a generic category label; the wrapped
cause is kept on the exception for logging and never rendered to clients.
"""

import hashlib
import traceback
from collections.abc import Iterable, Mapping
from enum import Enum
from http import HTTPStatus
from types import MappingProxyType
from typing import Any, ClassVar, Final, Self


class ErrorKind(Enum):
    """Failure categories produced by the service."""

    CONFIGURATION = "CONFIGURATION_ERROR"
    """Settings could not be loaded or failed validation."""

    IO = "IO_ERROR"
    """Operating system or socket level failure."""

    RELATIONAL_STORE = "RELATIONAL_STORE_ERROR"
    """Relational pool or query failure."""

    DOCUMENT_STORE = "DOCUMENT_STORE_ERROR"
    """Document store client failure."""

    CACHE = "CACHE_ERROR"
    """Cache client failure."""

    QUEUE = "QUEUE_ERROR"
    """Message queue connection, channel or declaration failure."""

    STREAM = "STREAM_ERROR"
    """Stream producer configuration or delivery failure."""

    VALIDATION = "VALIDATION_ERROR"
    """Input failed field validation."""

    SERIALIZATION = "SERIALIZATION_ERROR"
    """Payload could not be decoded or encoded."""

    UNEXPECTED = "UNEXPECTED_ERROR"
    """Anything not covered by a more specific kind."""


class Severity(Enum):
    """Severity levels used to pick log levels and alerting."""

    LOW = "LOW"
    """Caused by client input, no operator action needed."""

    MEDIUM = "MEDIUM"
    """Degraded behaviour that may need attention."""

    HIGH = "HIGH"
    """A backend or the host is failing requests."""

    CRITICAL = "CRITICAL"
    """The service cannot start or is in an unknown state."""


class BackplaneError(Exception):
    """Base exception for all taxonomy members.

    Subclasses pin ``kind``, ``severity`` and ``description``; instances carry
    the internal message, the original cause and optional structured details.

    Args:
        message: Internal, human-readable description of the failure
        cause: The original exception that caused this error
        details: Structured data safe to return to clients on 4xx responses
    """

    kind: ClassVar[ErrorKind] = ErrorKind.UNEXPECTED
    severity: ClassVar[Severity] = Severity.CRITICAL
    description: ClassVar[str] = "unexpected error"
    # False for kinds whose message is returned to clients on a 5xx
    cause_text_in_message: ClassVar[bool] = True

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.cause = cause
        self.details = details or {}

        # Capture stack trace at creation time
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    @classmethod
    def from_cause(cls, cause: BaseException) -> Self:
        """Wrap a native exception, prefixing it with the kind label.

        The cause text goes into the message unless the kind returns its
        message to clients; then only the cause type is named and the text
        stays on ``cause`` for the sanitized log context.

        Args:
            cause: The native exception raised by a driver or library

        Returns:
            Self: A new taxonomy member chained to ``cause``
        """
        if cls.cause_text_in_message:
            return cls(f"{cls.description}: {cause}", cause=cause)
        return cls(f"{cls.description}: {type(cause).__name__}", cause=cause)

    @property
    def error_code(self) -> str:
        """Machine-readable code for this error."""
        return self.kind.value

    @property
    def should_alert(self) -> bool:
        """True for errors that need operator attention."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def _generate_fingerprint(self) -> str:
        """Hash the error kind and raising location for grouping.

        Returns:
            str: A 16 character hex digest
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "src/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        cause_str = f", cause={type(self.cause).__name__}" if self.cause else ""
        return (
            f"{self.__class__.__name__}(message='{self.message}', "
            f"severity={self.severity.value}{cause_str})"
        )


class ConfigurationError(BackplaneError):
    """Settings are missing, malformed or fail the schema."""

    kind = ErrorKind.CONFIGURATION
    severity = Severity.CRITICAL
    description = "configuration error"


class IoError(BackplaneError):
    """Operating system level I/O failure."""

    kind = ErrorKind.IO
    severity = Severity.HIGH
    description = "io error"
    cause_text_in_message = False


class RelationalStoreError(BackplaneError):
    """Failure from the relational connection pool or a SQL statement."""

    kind = ErrorKind.RELATIONAL_STORE
    severity = Severity.HIGH
    description = "mysql error"


class DocumentStoreError(BackplaneError):
    """Failure from the document store client."""

    kind = ErrorKind.DOCUMENT_STORE
    severity = Severity.HIGH
    description = "mongo error"


class CacheError(BackplaneError):
    """Failure from the cache client."""

    kind = ErrorKind.CACHE
    severity = Severity.HIGH
    description = "redis error"


class QueueError(BackplaneError):
    """Failure from the message queue connection or channel."""

    kind = ErrorKind.QUEUE
    severity = Severity.HIGH
    description = "rabbitmq error"


class StreamError(BackplaneError):
    """Failure from the stream producer."""

    kind = ErrorKind.STREAM
    severity = Severity.HIGH
    description = "kafka error"


class ValidationError(BackplaneError):
    """Input failed validation; details carry the per-field messages."""

    kind = ErrorKind.VALIDATION
    severity = Severity.LOW
    description = "validation error"

    @classmethod
    def from_errors(
        cls,
        errors: Iterable[Mapping[str, Any]],
        *,
        loc_offset: int = 0,
        cause: BaseException | None = None,
    ) -> Self:
        """Build a validation error from pydantic-style error dictionaries.

        Args:
            errors: Items with ``loc`` and ``msg`` keys, as produced by
                ``pydantic.ValidationError.errors()``
            loc_offset: Leading ``loc`` entries to drop (``1`` strips the
                ``body`` segment FastAPI prepends)
            cause: The original exception, if any

        Returns:
            Self: Error whose message lists every field and whose details
                group the messages by field
        """
        field_errors = group_field_errors(errors, loc_offset=loc_offset)
        summary = "; ".join(
            f"{field}: {', '.join(messages)}"
            for field, messages in field_errors.items()
        )
        return cls(
            f"{cls.description}: {summary}",
            cause=cause,
            details={"validation_errors": field_errors},
        )


class SerializationError(BackplaneError):
    """A payload could not be decoded or encoded."""

    kind = ErrorKind.SERIALIZATION
    severity = Severity.LOW
    description = "serde json error"


class UnexpectedError(BackplaneError):
    """Anything that has no more specific taxonomy member."""

    kind = ErrorKind.UNEXPECTED
    severity = Severity.CRITICAL
    description = "unexpected error"
    cause_text_in_message = False


GENERIC_DATABASE_MESSAGE: Final[str] = "database error"
GENERIC_CACHE_MESSAGE: Final[str] = "cache error"
GENERIC_MESSAGING_MESSAGE: Final[str] = "messaging error"

# Public message None means the full internal description is returned.
HTTP_POLICY: Final[Mapping[ErrorKind, tuple[HTTPStatus, str | None]]] = (
    MappingProxyType(
        {
            ErrorKind.CONFIGURATION: (HTTPStatus.INTERNAL_SERVER_ERROR, None),
            ErrorKind.IO: (HTTPStatus.INTERNAL_SERVER_ERROR, None),
            ErrorKind.RELATIONAL_STORE: (
                HTTPStatus.INTERNAL_SERVER_ERROR,
                GENERIC_DATABASE_MESSAGE,
            ),
            ErrorKind.DOCUMENT_STORE: (
                HTTPStatus.INTERNAL_SERVER_ERROR,
                GENERIC_DATABASE_MESSAGE,
            ),
            ErrorKind.CACHE: (HTTPStatus.INTERNAL_SERVER_ERROR, GENERIC_CACHE_MESSAGE),
            ErrorKind.QUEUE: (
                HTTPStatus.INTERNAL_SERVER_ERROR,
                GENERIC_MESSAGING_MESSAGE,
            ),
            ErrorKind.STREAM: (
                HTTPStatus.INTERNAL_SERVER_ERROR,
                GENERIC_MESSAGING_MESSAGE,
            ),
            ErrorKind.VALIDATION: (HTTPStatus.BAD_REQUEST, None),
            ErrorKind.SERIALIZATION: (HTTPStatus.BAD_REQUEST, None),
            ErrorKind.UNEXPECTED: (HTTPStatus.INTERNAL_SERVER_ERROR, None),
        }
    )
)


def http_response_parts(error: BackplaneError) -> tuple[int, str]:
    """Map a taxonomy member to its HTTP status and public message.

    Args:
        error: The error to convert

    Returns:
        tuple[int, str]: Status code and the message safe to show clients
    """
    status_code, public_message = HTTP_POLICY[error.kind]
    if public_message is None:
        public_message = error.message
    return int(status_code), public_message


def group_field_errors(
    errors: Iterable[Mapping[str, Any]], *, loc_offset: int = 0
) -> dict[str, list[str]]:
    """Group pydantic-style error messages by dotted field path.

    Args:
        errors: Items with ``loc`` and ``msg`` keys
        loc_offset: Leading ``loc`` entries to drop

    Returns:
        dict[str, list[str]]: Field path -> list of messages
    """
    field_errors: dict[str, list[str]] = {}
    for error in errors:
        field_path = tuple(error.get("loc", ()))[loc_offset:]
        field_name = ".".join(str(loc) for loc in field_path if loc != "__root__")
        if not field_name:
            field_name = "root"
        field_errors.setdefault(field_name, []).append(
            str(error.get("msg", "Invalid value"))
        )
    return field_errors
