"""Middleware and exception handlers applied to every request.

- **RequestContextMiddleware**: Correlation ID for the request
- **RequestLoggingMiddleware**: Span and one outcome line per request
- **error_handler**: Renders every failure through the error taxonomy

Execution order: request context, request logging, exception handlers.
"""
