"""Programmatic uvicorn server driven by the shutdown coordinator.

uvicorn's own signal handling is disabled; SIGINT and SIGTERM go to the
``ShutdownCoordinator`` instead, which races the server task. When draining
begins the server is told to exit: it stops accepting connections, lets
in-flight requests finish and runs the lifespan shutdown. The coordinator
then waits out its grace delay.
"""

import asyncio
from collections.abc import Generator
from contextlib import contextmanager
from typing import Final

import uvicorn
from fastapi import FastAPI
from loguru import logger

from src.core.config import Settings
from src.core.shutdown import ShutdownCoordinator, ShutdownPhase

EXIT_OK: Final[int] = 0
EXIT_CONFIGURATION_ERROR: Final[int] = 1
EXIT_STARTUP_FAILURE: Final[int] = 3


class CoordinatedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the coordinator."""

    @contextmanager
    def capture_signals(self) -> Generator[None]:
        yield


def build_server(app: FastAPI, settings: Settings) -> CoordinatedServer:
    """Configure the server for ``settings.server``.

    Logging is left to the already configured Loguru sink.

    Args:
        app: The application to serve.
        settings: Application settings.

    Returns:
        CoordinatedServer: A server that has not started yet.
    """
    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        lifespan="on",
        log_config=None,
        access_log=False,
    )
    return CoordinatedServer(config)


async def serve(
    app: FastAPI,
    settings: Settings,
    coordinator: ShutdownCoordinator | None = None,
    server: uvicorn.Server | None = None,
) -> int:
    """Run the server until it stops or a termination signal arrives.

    Args:
        app: The application to serve.
        settings: Application settings.
        coordinator: Shutdown coordinator; one is created when omitted.
        server: Server instance; one is built when omitted.

    Returns:
        int: ``EXIT_OK`` after a clean shutdown, ``EXIT_STARTUP_FAILURE`` if
            the application never started (the socket was not bound).
    """
    coordinator = coordinator or ShutdownCoordinator(settings.server.shutdown_grace_ms)
    server = server or build_server(app, settings)

    coordinator.install()
    server_task = asyncio.create_task(server.serve(), name="uvicorn")
    drain_task = asyncio.create_task(coordinator.wait(), name="shutdown-signal")
    try:
        done, _ = await asyncio.wait(
            {server_task, drain_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if drain_task in done:
            server.should_exit = True
        else:
            drain_task.cancel()
        await server_task
    finally:
        coordinator.uninstall()

    if not server.started:
        logger.error("Server did not start; listener was never bound")
        return EXIT_STARTUP_FAILURE

    if coordinator.phase is ShutdownPhase.RUNNING:
        coordinator.request_shutdown()
    await coordinator.finish()
    return EXIT_OK
