"""Integration tests for startup, shutdown and the process exit codes."""

import asyncio
import signal
import socket
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.main import create_app, lifespan
from src.api.server import EXIT_OK, EXIT_STARTUP_FAILURE, serve
from src.core.config import Settings
from src.core.exceptions import RelationalStoreError
from src.core.shutdown import ShutdownCoordinator, ShutdownPhase
from src.core.state import ServiceState


async def unreachable_database(_settings: Settings) -> ServiceState:
    raise RelationalStoreError("mysql error: Connection refused")


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


@pytest.mark.integration
class TestLifespan:
    """Test backend startup inside the application lifespan."""

    async def test_startup_failure_propagates(
        self, settings: Settings, log_records: list[dict[str, Any]]
    ) -> None:
        """A connector failure aborts startup and is logged as critical."""
        app = create_app(settings, backends_factory=unreachable_database)

        with pytest.raises(RelationalStoreError):
            async with lifespan(app):
                pass  # pragma: no cover

        critical = [r for r in log_records if r["level"].name == "CRITICAL"]
        assert len(critical) == 1
        assert "Connection refused" in critical[0]["message"]

    def test_state_is_closed_on_shutdown(
        self, app: FastAPI, opened_states: list[ServiceState]
    ) -> None:
        """Handles are published to requests and released on exit."""
        with TestClient(app) as client:
            assert client.get("/health").json() == {"status": "healthy"}
            (state,) = opened_states
            state.queue_connection.close.assert_not_awaited()

        state.queue_connection.close.assert_awaited_once()
        state.cache_client.aclose.assert_awaited_once()
        state.stream_producer.flush.assert_called_once()

    def test_info_endpoint(self, client: TestClient) -> None:
        """/info reports the running configuration."""
        body = client.get("/info").json()

        assert body == {
            "app_name": "Backplane",
            "version": "0.1.0",
            "environment": "development",
            "debug": False,
        }


@pytest.mark.integration
class TestServe:
    """Run the real uvicorn server through the coordinator."""

    async def test_backend_failure_never_binds(
        self, make_settings: Callable[..., Settings]
    ) -> None:
        """Startup failure exits 3 and nothing listens on the port."""
        port = free_port()
        settings = make_settings(server={"host": "127.0.0.1", "port": port})
        app = create_app(settings, backends_factory=unreachable_database)

        code = await serve(app, settings, coordinator=ShutdownCoordinator(grace_ms=0))

        assert code == EXIT_STARTUP_FAILURE
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=0.5).close()

    async def test_signal_lets_in_flight_request_finish(
        self,
        make_settings: Callable[..., Settings],
        backends_factory: Callable[[Settings], Awaitable[ServiceState]],
        opened_states: list[ServiceState],
    ) -> None:
        """A request in flight when SIGTERM arrives still completes."""
        port = free_port()
        settings = make_settings(server={"host": "127.0.0.1", "port": port})
        app = create_app(settings, backends_factory=backends_factory)
        in_flight = asyncio.Event()

        @app.get("/slow")
        async def slow() -> dict[str, str]:
            in_flight.set()
            await asyncio.sleep(0.3)
            return {"status": "done"}

        coordinator = ShutdownCoordinator(grace_ms=50)
        server_task = asyncio.create_task(serve(app, settings, coordinator=coordinator))

        async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as http:
            for _ in range(100):
                try:
                    await http.get("/health")
                    break
                except httpx.ConnectError:
                    await asyncio.sleep(0.05)

            request = asyncio.create_task(http.get("/slow"))
            await asyncio.wait_for(in_flight.wait(), timeout=5)
            coordinator.request_shutdown(signal.SIGTERM)

            response = await request

        code = await asyncio.wait_for(server_task, timeout=10)

        assert response.status_code == 200
        assert response.json() == {"status": "done"}
        assert code == EXIT_OK
        assert coordinator.phase is ShutdownPhase.STOPPED
        for state in opened_states:
            state.queue_connection.close.assert_awaited_once()
