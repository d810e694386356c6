"""Main entry point for running the Backplane service.

Exit codes: 0 after a clean shutdown, 1 when configuration cannot be
loaded, 3 when backend startup fails and the listener is never bound.
"""

import asyncio
import sys

from loguru import logger

from src.api.main import create_app
from src.api.server import EXIT_CONFIGURATION_ERROR, serve
from src.core.config import get_settings
from src.core.exceptions import ConfigurationError
from src.core.logging import flush_logging, setup_logging
from src.core.observability import shutdown_tracing


async def run() -> int:
    """Load settings, then serve until shutdown."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error("Failed to load configuration: {}", e.message)
        return EXIT_CONFIGURATION_ERROR

    setup_logging(settings)
    logger.info(
        "Starting {} v{} on {}:{}",
        settings.app_name,
        settings.app_version,
        settings.server.host,
        settings.server.port,
        environment=settings.environment,
    )

    app = create_app(settings)
    try:
        return await serve(app, settings)
    finally:
        shutdown_tracing()
        await flush_logging()


def main() -> int:
    """Run the service and return its exit code."""
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
