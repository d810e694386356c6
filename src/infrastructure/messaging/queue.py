"""Message queue connector (RabbitMQ via aio-pika)."""

import aio_pika
from aio_pika.abc import AbstractConnection
from loguru import logger

from src.core.config import Settings
from src.core.exceptions import QueueError
from src.infrastructure.errors import translate_errors


async def declare_queue(connection: AbstractConnection, queue_name: str) -> None:
    """Declare ``queue_name`` as durable on a short-lived channel.

    Declaring a queue that already exists with the same properties is a
    no-op on the broker; differing properties close the channel with an
    error.

    Args:
        connection: Open broker connection.
        queue_name: Name of the queue to declare.
    """
    channel = await connection.channel()
    try:
        await channel.declare_queue(queue_name, durable=True)
    finally:
        if not channel.is_closed:
            await channel.close()


async def connect_queue(settings: Settings) -> AbstractConnection:
    """Connect to the broker and make sure the well-known queue exists.

    The connection is not robust: it does not reconnect on its own.

    Args:
        settings: Application settings; ``rabbitmq`` is used.

    Returns:
        AbstractConnection: The open connection. The declaring channel is
            already closed.

    Raises:
        QueueError: If the broker is unreachable or the declaration
            conflicts with an existing queue.
    """
    rabbitmq = settings.rabbitmq
    with translate_errors(QueueError):
        connection = await aio_pika.connect(rabbitmq.uri.reveal())
        try:
            await declare_queue(connection, rabbitmq.queue_name)
        except Exception:
            await connection.close()
            raise

    logger.info(
        "Queue connection ready - queue: {}", rabbitmq.queue_name, backend="queue"
    )
    return connection
