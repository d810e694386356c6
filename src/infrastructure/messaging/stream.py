"""Stream producer connector (Kafka via confluent-kafka)."""

from typing import Any

from confluent_kafka import Producer
from loguru import logger

from src.core.config import APP_IDENTIFIER, Settings
from src.core.exceptions import StreamError
from src.infrastructure.errors import translate_errors


def producer_config(settings: Settings) -> dict[str, Any]:
    """Build the librdkafka configuration for the producer.

    Args:
        settings: Application settings; ``kafka`` is used.

    Returns:
        dict[str, Any]: Configuration passed to ``Producer``.
    """
    return {
        "bootstrap.servers": settings.kafka.brokers,
        "message.timeout.ms": settings.kafka.message_timeout_ms,
        "client.id": APP_IDENTIFIER,
    }


async def create_stream_producer(settings: Settings) -> Producer:
    """Configure the stream producer.

    Brokers are contacted in the background; only invalid configuration
    fails here.

    Args:
        settings: Application settings; ``kafka`` is used.

    Returns:
        Producer: The configured producer.

    Raises:
        StreamError: If librdkafka rejects the configuration.
    """
    with translate_errors(StreamError):
        producer = Producer(producer_config(settings))

    logger.info(
        "Stream producer ready - brokers: {}",
        settings.kafka.brokers,
        backend="stream",
    )
    return producer
