"""Unit tests for request outcome logging."""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

from src.api.middleware.request_logging import (
    RequestLoggingMiddleware,
    classify_status,
)
from src.core.config import LogConfig


@pytest.fixture
def app() -> FastAPI:
    """Provide an app with only the logging middleware installed."""
    application = FastAPI()
    application.add_middleware(
        RequestLoggingMiddleware,
        log_config=LogConfig(excluded_paths=["/health"]),
    )

    @application.get("/items/{item_id}")
    async def get_item(item_id: int) -> dict[str, int]:
        return {"id": item_id}

    @application.get("/missing")
    async def missing() -> None:
        raise HTTPException(status_code=404, detail="nope")

    @application.get("/broken")
    async def broken() -> None:
        raise RuntimeError("boom")

    @application.get("/stream")
    async def stream() -> StreamingResponse:
        async def chunks() -> AsyncGenerator[bytes]:
            yield b"first"
            await asyncio.sleep(0.5)
            yield b"second"

        return StreamingResponse(chunks(), media_type="text/plain")

    @application.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return application


def outcome_lines(log_records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        r for r in log_records if r["message"] in {"response_sent", "request_failed"}
    ]


@pytest.mark.unit
class TestClassifyStatus:
    """Test status classification."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (200, None),
            (204, None),
            (307, None),
            (400, "client_error"),
            (404, "client_error"),
            (500, "server_error"),
            (503, "server_error"),
        ],
    )
    def test_classification(self, status: int, expected: str | None) -> None:
        """Only 4xx and 5xx are failures."""
        assert classify_status(status) == expected


@pytest.mark.unit
class TestRequestLoggingMiddleware:
    """Test one outcome line per request."""

    def test_success_logs_response_sent(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """A 200 writes response_sent with the route template."""
        with TestClient(app) as client:
            response = client.get("/items/7?verbose=1")

        (line,) = outcome_lines(log_records)
        assert response.status_code == 200
        assert line["message"] == "response_sent"
        assert line["level"].name == "INFO"
        assert line["extra"]["route"] == "/items/{item_id}"
        assert line["extra"]["path"] == "/items/7"
        assert line["extra"]["query"] == "verbose=1"
        assert line["extra"]["status"] == 200
        assert isinstance(line["extra"]["latency_ms"], int)

    def test_client_error_logs_request_failed(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """A 4xx writes request_failed and never response_sent."""
        with TestClient(app) as client:
            client.get("/missing")

        (line,) = outcome_lines(log_records)
        assert line["message"] == "request_failed"
        assert line["level"].name == "ERROR"
        assert line["extra"]["error"] == "client_error"

    def test_unmatched_route_is_unknown(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """Requests no route matched report the route as unknown."""
        with TestClient(app) as client:
            client.get("/nowhere")

        (line,) = outcome_lines(log_records)
        assert line["extra"]["route"] == "unknown"

    def test_escaping_exception_logs_its_type(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """An exception that escaped the handlers is named in the line."""
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/broken")

        (line,) = outcome_lines(log_records)
        assert response.status_code == 500
        assert line["message"] == "request_failed"
        assert line["extra"]["error"] == "RuntimeError"

    def test_request_id_header(self, app: FastAPI) -> None:
        """A request ID is echoed or generated."""
        with TestClient(app) as client:
            echoed = client.get("/items/1", headers={"X-Request-ID": "req-abc"})
            generated = client.get("/items/1")

        assert echoed.headers["X-Request-ID"] == "req-abc"
        assert generated.headers["X-Request-ID"].startswith("req-")

    def test_excluded_path_is_not_logged(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """Excluded paths produce no outcome line."""
        with TestClient(app) as client:
            client.get("/health")

        assert outcome_lines(log_records) == []

    def test_latency_stops_at_response_start(
        self, app: FastAPI, log_records: list[dict[str, Any]]
    ) -> None:
        """Streaming body chunks sent after the start are not timed."""
        with TestClient(app) as client:
            response = client.get("/stream")

        (line,) = outcome_lines(log_records)
        assert response.text == "firstsecond"
        assert line["message"] == "response_sent"
        assert line["extra"]["latency_ms"] < 500
