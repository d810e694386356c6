"""FastAPI application factory and lifecycle.

The lifespan runs the backend startup sequence before uvicorn binds its
socket: if any connector fails, startup fails and the listener is never
opened. On success the resulting ``ServiceState`` is published as lifespan
state, read by handlers through ``get_services``, and closed once on
shutdown.

Middleware are executed in reverse order of registration:
1. Request context (correlation ID)
2. Request logging (span, outcome line)
3. Exception handlers (taxonomy rendering)
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from loguru import logger

from src.api.constants import API_V1_PREFIX
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.utils.responses import ORJSONResponse
from src.api.v1 import router as v1_router
from src.core.config import Settings, get_settings
from src.core.logging import setup_logging
from src.core.observability import setup_tracing
from src.core.state import ServiceState
from src.infrastructure.bootstrap import connect_backends

type BackendsFactory = Callable[[Settings], Awaitable[ServiceState]]


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[dict[str, Any]]:
    """Open every backend on startup and release them on shutdown.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        dict[str, Any]: Lifespan state holding ``services``.

    Raises:
        BackplaneError: The first connector failure; startup is aborted.
    """
    settings: Settings = app_instance.state.settings
    factory: BackendsFactory = app_instance.state.backends_factory

    try:
        services = await factory(settings)
    except Exception as e:
        logger.opt(exception=e).critical("Backend startup failed: {}", e)
        raise

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )
    try:
        yield {"services": services}
    finally:
        logger.info("Application shutdown initiated")
        await services.close()
        logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    *,
    backends_factory: BackendsFactory = connect_backends,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use
            get_settings().
        backends_factory: Coroutine building the ``ServiceState`` at startup.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.backends_factory = backends_factory

    # Register exception handlers BEFORE middleware
    register_exception_handlers(application)

    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    application.add_middleware(RequestContextMiddleware)

    @application.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe; touches no backend."""
        return {"status": "healthy"}

    @application.get("/info")
    async def info(request: Request) -> dict[str, Any]:
        """Get application information.

        Returns:
            dict[str, Any]: Application name, version and environment.
        """
        app_settings: Settings = request.app.state.settings
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    application.include_router(v1_router, prefix=API_V1_PREFIX)

    return application
