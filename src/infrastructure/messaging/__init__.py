"""Messaging connectors.

- **queue**: RabbitMQ connection with the well-known queue declared
- **stream**: Kafka producer with a bounded delivery timeout
"""
