"""The startup sequence that turns settings into a ``ServiceState``.

Connectors run one after another in a fixed order. The first failure stops
the sequence: handles opened so far are released and the original error
propagates, so no later connector can mask it and no listener is bound.
There are no retries.
"""

from collections.abc import Awaitable, Callable

from loguru import logger

from src.core.config import Settings
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.state import ServiceState
from src.infrastructure.cache import connect_cache
from src.infrastructure.database.session import create_relational_pool
from src.infrastructure.document_store import connect_document_store
from src.infrastructure.messaging.queue import connect_queue
from src.infrastructure.messaging.stream import create_stream_producer

type Release = Callable[[], Awaitable[object]]


async def _release_all(opened: list[tuple[str, Release]]) -> None:
    """Release already opened handles, newest first, logging each failure."""
    for backend, release in reversed(opened):
        try:
            await release()
        except Exception as e:  # noqa: BLE001 - the startup error wins
            logger.opt(exception=e).error(
                "Failed to release {} backend after startup failure",
                backend,
                backend=backend,
            )


async def connect_backends(settings: Settings) -> ServiceState:
    """Open all five backends and aggregate them.

    Order: relational, document, cache, queue, stream.

    Args:
        settings: Validated application settings.

    Returns:
        ServiceState: The aggregate, only once every connector succeeded.

    Raises:
        BackplaneError: The failing connector's taxonomy member.
    """
    opened: list[tuple[str, Release]] = []
    try:
        relational_pool = await create_relational_pool(settings)
        opened.append(("relational", relational_pool.dispose))

        document_client = await connect_document_store(settings)
        opened.append(("document", document_client.close))

        cache_client = await connect_cache(settings)
        opened.append(("cache", cache_client.aclose))

        queue_connection = await connect_queue(settings)
        opened.append(("queue", queue_connection.close))

        stream_producer = await create_stream_producer(settings)
    except BaseException:
        await _release_all(opened)
        raise

    logger.info("All backends connected")
    return ServiceState(
        relational_pool=relational_pool,
        document_client=document_client,
        cache_client=cache_client,
        queue_connection=queue_connection,
        stream_producer=stream_producer,
        stream_flush_timeout=settings.kafka.message_timeout_ms
        / MILLISECONDS_PER_SECOND,
    )
