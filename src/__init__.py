"""Backplane - bootstrap and unified-failure layer for a multi-backend API.

Backplane is a small REST service built with Python 3.13+ and FastAPI that
sits on top of five external resources: a relational pool, a document store,
a cache, a message queue and a stream producer.

Architecture Overview:
- **API Layer**: FastAPI application, middleware and the users resource
- **Core Layer**: Configuration, error taxonomy, service state and shutdown
- **Infrastructure Layer**: One connector per backend plus error translation

Key Features:
- **Atomic startup**: All five backends connect before the listener binds
- **Immutable state**: Backend handles are shared read-only across requests
- **Unified errors**: Every failure maps to one status code and safe message
- **Observability**: Structured logging and per-request tracing spans
- **Graceful shutdown**: SIGINT/SIGTERM drain the server before exit
"""
