"""Shared fixtures for integration tests.

The application is built with a backends factory that opens an in-memory
SQLite pool with the schema created and mock handles for the other four
backends, so the full middleware, error handling and lifespan stack runs
without external services.
"""

from collections.abc import Awaitable, Callable, Generator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.main import create_app
from src.core.config import Settings
from src.core.context import RequestContext
from src.core.state import ServiceState
from src.infrastructure.database.base import Base

type BackendsFactory = Callable[[Settings], Awaitable[ServiceState]]


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Reset the correlation ID around each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def opened_states() -> list[ServiceState]:
    """Collect every state built by the fake factory."""
    return []


@pytest.fixture
def backends_factory(
    mocker: MockerFixture, opened_states: list[ServiceState]
) -> BackendsFactory:
    """Provide a factory building a usable ``ServiceState`` offline."""

    async def factory(_settings: Settings) -> ServiceState:
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        state = ServiceState(
            relational_pool=engine,
            document_client=mocker.AsyncMock(),
            cache_client=mocker.AsyncMock(),
            queue_connection=mocker.AsyncMock(),
            stream_producer=mocker.Mock(flush=mocker.Mock(return_value=0)),
        )
        opened_states.append(state)
        return state

    return factory


@pytest.fixture
def app(settings: Settings, backends_factory: BackendsFactory) -> FastAPI:
    """Provide the application wired to the fake backends."""
    return create_app(settings, backends_factory=backends_factory)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient]:
    """Provide a client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def lenient_client(app: FastAPI) -> Generator[TestClient]:
    """Provide a client that returns 500 responses instead of raising."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def error_body_keys() -> set[str]:
    """Keys every error body carries."""
    return {
        "error",
        "error_code",
        "details",
        "correlation_id",
        "request_id",
        "timestamp",
        "severity",
        "service_info",
    }


@pytest.fixture
def assert_error_body() -> Callable[..., dict[str, Any]]:
    """Check the shape of an error body and return it."""

    def check(body: dict[str, Any], error_code: str) -> dict[str, Any]:
        assert set(body) == error_body_keys()
        assert body["error_code"] == error_code
        assert body["service_info"]["name"] == "Backplane"
        return body

    return check
