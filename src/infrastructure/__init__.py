"""Infrastructure layer: backend connectors and native error conversion.

Key responsibilities:
- **Relational store**: Pooled MySQL access with SQLAlchemy asyncio
- **Document store**: MongoDB async client
- **Cache**: Redis asyncio client
- **Messaging**: RabbitMQ connection and Kafka producer
- **Bootstrap**: The ordered, fail-fast startup sequence
- **Errors**: The single conversion point from native exceptions to the
  error taxonomy
"""
