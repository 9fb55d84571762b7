"""Tests for main application entrypoint."""

from unittest.mock import AsyncMock, patch

import pytest

from rolling_requests.adapters.driven.config.settings import RequestSpec, Settings
from rolling_requests.main import EXIT_CONFIG_ERROR, EXIT_FAILURES, EXIT_OK, main, run_batch
from rolling_requests.ports.errors import ErrorKind
from rolling_requests.ports.http import Failure, HttpResponse, Outcome, Request

__all__ = []


def make_settings(n: int = 2) -> Settings:
    return Settings(
        simultaneous_limit=1,
        requests_file_path="unused.json",
        requests=[RequestSpec(url=f"http://localhost:8000/{i}") for i in range(n)],
    )


def ok_outcome(index: int) -> Outcome:
    req = Request(url=f"http://localhost:8000/{index}")
    return Outcome(index=index, request=req, response=HttpResponse(status=200, body=b"ok"))


def failed_outcome(index: int) -> Outcome:
    req = Request(url=f"http://localhost:8000/{index}", extra_info="tagged")
    failure = Failure(kind=ErrorKind.CONNECTION, message="refused")
    return Outcome(index=index, request=req, failure=failure)


@pytest.mark.asyncio
async def test_run_batch_sends_every_configured_request() -> None:
    """run_batch should queue every request and return outcomes in order."""
    transport = AsyncMock()
    transport.send = AsyncMock(return_value=HttpResponse(status=200))

    with patch("rolling_requests.builder.HttpTransport", return_value=transport):
        outcomes = await run_batch(make_settings(3))

    assert [o.request.url for o in outcomes] == [f"http://localhost:8000/{i}" for i in range(3)]
    assert transport.send.await_count == 3
    transport.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_main_returns_ok_when_all_succeed() -> None:
    """Main should exit 0 when every outcome is a success."""
    with (
        patch("rolling_requests.main.configure_logs"),
        patch("rolling_requests.main.load_settings", return_value=make_settings()),
        patch("rolling_requests.main.run_batch", new_callable=AsyncMock) as mock_run,
    ):
        mock_run.return_value = [ok_outcome(0), ok_outcome(1)]
        result = await main()

    assert result == EXIT_OK
    mock_run.assert_awaited_once()


@pytest.mark.asyncio
async def test_main_reports_failures() -> None:
    """Main should exit 1 and log an error when any request fails."""
    with (
        patch("rolling_requests.main.configure_logs"),
        patch("rolling_requests.main.load_settings", return_value=make_settings()),
        patch("rolling_requests.main.run_batch", new_callable=AsyncMock) as mock_run,
        patch("rolling_requests.main.logger") as mock_logger,
    ):
        mock_run.return_value = [ok_outcome(0), failed_outcome(1)]
        result = await main()

    assert result == EXIT_FAILURES
    mock_logger.error.assert_called_once()
    assert "tagged" in mock_logger.error.call_args[0][0]


@pytest.mark.asyncio
async def test_main_aborts_on_configuration_error() -> None:
    """Main should not run anything when configuration fails to load."""
    with (
        patch("rolling_requests.main.configure_logs"),
        patch("rolling_requests.main.load_settings", side_effect=RuntimeError("bad env")),
        patch("rolling_requests.main.run_batch", new_callable=AsyncMock) as mock_run,
    ):
        result = await main()

    assert result == EXIT_CONFIG_ERROR
    mock_run.assert_not_called()
