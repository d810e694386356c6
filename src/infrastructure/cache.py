"""Cache connector (Redis via redis-py asyncio)."""

from loguru import logger
from redis.asyncio import Redis, from_url

from src.core.config import Settings
from src.core.exceptions import CacheError
from src.infrastructure.errors import translate_errors


async def connect_cache(settings: Settings) -> Redis:
    """Build the cache client from its URI.

    Connections are opened on first command.

    Args:
        settings: Application settings; ``redis`` is used.

    Returns:
        Redis: Client backed by its own connection pool.

    Raises:
        CacheError: If the URI is malformed.
    """
    with translate_errors(CacheError):
        client = from_url(settings.redis.uri.reveal())

    logger.info("Cache client ready", backend="cache")
    return client
