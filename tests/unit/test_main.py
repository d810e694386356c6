"""Unit tests for the process entry point."""

import pytest
from pytest_mock import MockerFixture

import main
from src.core.config import Settings
from src.core.exceptions import ConfigurationError


@pytest.mark.unit
class TestRun:
    """Test exit code propagation."""

    async def test_configuration_error_exits_1(self, mocker: MockerFixture) -> None:
        """Settings failures stop before any server is built."""
        mocker.patch(
            "main.get_settings",
            side_effect=ConfigurationError("configuration error: mysql.uri"),
        )
        create_app = mocker.patch("main.create_app")

        assert await main.run() == 1
        create_app.assert_not_called()

    async def test_returns_serve_exit_code(
        self, settings: Settings, mocker: MockerFixture
    ) -> None:
        """Whatever serve returns becomes the exit code."""
        mocker.patch("main.get_settings", return_value=settings)
        create_app = mocker.patch("main.create_app")
        serve = mocker.patch("main.serve", return_value=3)
        shutdown_tracing = mocker.patch("main.shutdown_tracing")

        assert await main.run() == 3
        serve.assert_awaited_once_with(create_app.return_value, settings)
        shutdown_tracing.assert_called_once()

    def test_main_runs_event_loop(self, mocker: MockerFixture) -> None:
        """main() returns the exit code of run()."""
        mocker.patch("main.run", return_value=0)

        assert main.main() == 0
