"""Document store connector (MongoDB via pymongo's async client)."""

from typing import Any

from loguru import logger
from pymongo import AsyncMongoClient

from src.core.config import Settings
from src.core.exceptions import DocumentStoreError
from src.infrastructure.errors import translate_errors


async def connect_document_store(settings: Settings) -> AsyncMongoClient[Any]:
    """Build the document store client.

    The URI is parsed eagerly, so a malformed URI fails here. The client
    connects lazily on first use.

    Args:
        settings: Application settings; ``mongodb`` is used.

    Returns:
        AsyncMongoClient: Client tagged with the configured application name.

    Raises:
        DocumentStoreError: If the URI or its options are invalid.
    """
    with translate_errors(DocumentStoreError):
        client: AsyncMongoClient[Any] = AsyncMongoClient(
            settings.mongodb.uri.reveal(),
            appname=settings.mongodb.app_name,
        )

    logger.info(
        "Document store client ready - app_name: {}",
        settings.mongodb.app_name,
        backend="document",
    )
    return client
