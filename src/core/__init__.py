"""Core package for cross-cutting application functionality.

This package provides the foundational components used across all layers
of the Backplane service:

- **config**: Layered configuration loading with validation
- **secrets**: Opaque wrapper for credentials and connection strings
- **context**: Request context and correlation ID management
- **exceptions**: Closed error taxonomy with its HTTP mapping
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Structured logging with Loguru
- **observability**: Distributed tracing with OpenTelemetry
- **state**: Immutable aggregate of the live backend handles
- **shutdown**: Signal-driven shutdown state machine
"""
