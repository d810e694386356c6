"""Conversion of native library exceptions into the error taxonomy.

Two entry points:
- **classify**: Map any exception to its taxonomy member using one table of
  native exception roots
- **translate_errors**: The boundary each backend call runs inside; anything
  raised in it becomes the given taxonomy member
"""

import json
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Final

from aio_pika.exceptions import AMQPError
from confluent_kafka import KafkaException
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import (
    BackplaneError,
    CacheError,
    DocumentStoreError,
    IoError,
    QueueError,
    RelationalStoreError,
    SerializationError,
    StreamError,
    UnexpectedError,
    ValidationError,
)


def _from_pydantic(exc: BaseException) -> BackplaneError:
    if isinstance(exc, PydanticValidationError):
        return ValidationError.from_errors(exc.errors(include_url=False), cause=exc)
    return ValidationError.from_cause(exc)


# First matching root wins; pydantic and JSON errors are ValueErrors, so they
# sit before anything broader.
NATIVE_ERROR_TABLE: Final[
    tuple[tuple[type[BaseException], Callable[[BaseException], BackplaneError]], ...]
] = (
    (SQLAlchemyError, RelationalStoreError.from_cause),
    (PyMongoError, DocumentStoreError.from_cause),
    (RedisError, CacheError.from_cause),
    (AMQPError, QueueError.from_cause),
    (KafkaException, StreamError.from_cause),
    (PydanticValidationError, _from_pydantic),
    (json.JSONDecodeError, SerializationError.from_cause),
    (OSError, IoError.from_cause),
)


def classify(exc: BaseException) -> BackplaneError:
    """Return the taxonomy member for an exception.

    Taxonomy members are returned unchanged. Anything without a matching
    native root becomes ``UnexpectedError``.

    Args:
        exc: The exception to classify.

    Returns:
        BackplaneError: Exactly one taxonomy member, chained to ``exc``.
    """
    if isinstance(exc, BackplaneError):
        return exc

    for root, convert in NATIVE_ERROR_TABLE:
        if isinstance(exc, root):
            return convert(exc)

    return UnexpectedError.from_cause(exc)


@contextmanager
def translate_errors(error_cls: type[BackplaneError]) -> Generator[None]:
    """Wrap everything raised inside the block as ``error_cls``.

    Taxonomy members raised inside pass through untouched, so nested
    boundaries never re-wrap.

    Args:
        error_cls: The taxonomy member for this backend.

    Raises:
        BackplaneError: ``error_cls`` chained to the original exception.

    Example:
        >>> with translate_errors(CacheError):
        ...     await client.get("key")
    """
    try:
        yield
    except BackplaneError:
        raise
    except Exception as e:
        raise error_cls.from_cause(e) from e
