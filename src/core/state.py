"""The shared, read-only aggregate of live backend handles."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aio_pika.abc import AbstractConnection
    from confluent_kafka import Producer
    from pymongo import AsyncMongoClient
    from redis.asyncio import Redis
    from sqlalchemy.ext.asyncio import AsyncEngine


@dataclass(frozen=True, slots=True)
class ServiceState:
    """Five backend handles, assembled once after every connector succeeded.

    Request handlers receive the same instance by reference and may use any
    handle, but no field can be replaced. The application lifespan owns the
    instance and calls ``close`` exactly once, at shutdown.

    Attributes:
        relational_pool: Pooled SQLAlchemy engine for the relational store.
        document_client: Document store client.
        cache_client: Cache client.
        queue_connection: Open message queue connection.
        stream_producer: Stream producer handle.
        stream_flush_timeout: Seconds to wait for queued stream messages on
            close.
    """

    relational_pool: AsyncEngine
    document_client: AsyncMongoClient[Any]
    cache_client: Redis
    queue_connection: AbstractConnection
    stream_producer: Producer
    stream_flush_timeout: float = 5.0

    async def close(self) -> None:
        """Release every handle in reverse order of acquisition.

        A failure while releasing one handle is logged and does not prevent
        the remaining handles from being released.
        """
        steps: list[tuple[str, Callable[[], Awaitable[object]]]] = [
            ("stream", self._flush_stream),
            ("queue", self.queue_connection.close),
            ("cache", self.cache_client.aclose),
            ("document", self.document_client.close),
            ("relational", self.relational_pool.dispose),
        ]
        for backend, release in steps:
            try:
                await release()
            except Exception as e:  # noqa: BLE001 - keep releasing the rest
                logger.opt(exception=e).error(
                    "Failed to release {} backend", backend, backend=backend
                )
            else:
                logger.debug("Released {} backend", backend, backend=backend)

    async def _flush_stream(self) -> None:
        remaining = await asyncio.to_thread(
            self.stream_producer.flush, self.stream_flush_timeout
        )
        if remaining:
            logger.warning(
                "Stream producer closed with undelivered messages",
                undelivered=remaining,
            )
