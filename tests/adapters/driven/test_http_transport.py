"""Tests for the aiohttp transport adapter."""

import asyncio
import json
import socket
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from rolling_requests.adapters.driven.http.transport import HttpTransport, classify_error
from rolling_requests.builder import ExecutorBuilder
from rolling_requests.ports.errors import DispatchError, ErrorKind
from rolling_requests.ports.http import Method, Request

__all__ = []


async def _echo(request: web.Request) -> web.Response:
    body = await request.read()
    payload = {
        "method": request.method,
        "path": request.path,
        "content_type": request.headers.get("Content-Type"),
        "body": body.decode(errors="replace"),
    }
    return web.json_response(payload, headers={"X-Echo": "yes"})


async def _status(request: web.Request) -> web.Response:
    return web.Response(status=int(request.match_info["code"]), text="status")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(0.5)
    return web.Response(text="late")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/echo", _echo)
    app.router.add_get("/status/{code}", _status)
    app.router.add_get("/slow", _slow)
    return app


def free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_transport_context_manager() -> None:
    """Transport should open and close its session."""
    transport = HttpTransport()
    assert transport.session is None

    async with transport as t:
        assert t is transport
        assert t.session is not None
        session = t.session

    assert session.closed


@pytest.mark.asyncio
async def test_transport_sends_get() -> None:
    """A GET should come back with status, headers and body."""
    async with TestServer(make_app()) as server, HttpTransport() as transport:
        resp = await transport.send(Request(url=str(server.make_url("/echo"))))

    assert resp.status == 200
    assert resp.headers["x-echo"] == "yes"
    assert json.loads(resp.body)["method"] == "GET"


@pytest.mark.asyncio
async def test_transport_sends_put_body_and_headers() -> None:
    """Body and headers should reach the server unchanged."""
    async with TestServer(make_app()) as server, HttpTransport() as transport:
        req = Request(
            url=str(server.make_url("/echo")),
            method=Method.PUT,
            headers={"content-type": "application/json"},  # type: ignore[arg-type]
            body=b'{"key": "value"}',
        )
        resp = await transport.send(req)

    echoed = json.loads(resp.text())
    assert echoed["method"] == "PUT"
    assert echoed["content_type"] == "application/json"
    assert echoed["body"] == '{"key": "value"}'


@pytest.mark.asyncio
async def test_transport_sends_multipart_form() -> None:
    """Form fields should be sent as multipart data."""
    async with TestServer(make_app()) as server, HttpTransport() as transport:
        req = Request(url=str(server.make_url("/echo")), method=Method.POST)
        resp = await transport.send(req.with_form_text("name", "alice"))

    echoed = json.loads(resp.body)
    assert echoed["content_type"].startswith("multipart/form-data")
    assert "alice" in echoed["body"]


@pytest.mark.asyncio
async def test_transport_returns_error_status_as_response() -> None:
    """Non-2xx statuses are responses, not transport errors."""
    async with TestServer(make_app()) as server, HttpTransport() as transport:
        resp = await transport.send(Request(url=str(server.make_url("/status/503"))))

    assert resp.status == 503
    assert not resp.is_success


@pytest.mark.asyncio
async def test_transport_connection_refused() -> None:
    """An unreachable endpoint should raise a CONNECTION dispatch error."""
    async with HttpTransport() as transport:
        with pytest.raises(DispatchError) as exc_info:
            await transport.send(Request(url=f"http://127.0.0.1:{free_port()}/"))

    assert exc_info.value.kind is ErrorKind.CONNECTION


@pytest.mark.asyncio
async def test_transport_timeout() -> None:
    """The transport's own timeout should raise a TIMEOUT dispatch error."""
    async with TestServer(make_app()) as server, HttpTransport(timeout_sec=0.05) as transport:
        with pytest.raises(DispatchError) as exc_info:
            await transport.send(Request(url=str(server.make_url("/slow"))))

    assert exc_info.value.kind is ErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_transport_keeps_external_session_open() -> None:
    """A session passed in belongs to the caller and is not closed."""
    session = Mock()
    session.closed = False
    session.close = AsyncMock()

    await HttpTransport(session=session).close()

    session.close.assert_not_called()


@pytest.mark.parametrize("timeout_sec", [0, -1.0])
def test_transport_rejects_non_positive_timeout(timeout_sec: float) -> None:
    """A zero or negative timeout is a configuration mistake, not 'no timeout'."""
    with pytest.raises(ValueError, match="timeout_sec must be positive"):
        HttpTransport(timeout_sec=timeout_sec)


@pytest.mark.parametrize(
    ("exc", "kind"),
    [
        (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
        (aiohttp.ServerTimeoutError("read"), ErrorKind.TIMEOUT),
        (aiohttp.InvalidURL("nope"), ErrorKind.INVALID_REQUEST),
        (aiohttp.ServerDisconnectedError(), ErrorKind.PROTOCOL),
        (aiohttp.ClientPayloadError("truncated"), ErrorKind.PROTOCOL),
        (aiohttp.ClientConnectionError("reset"), ErrorKind.CONNECTION),
        (ConnectionRefusedError(), ErrorKind.CONNECTION),
        (KeyError("x"), ErrorKind.UNKNOWN),
    ],
)
def test_classify_error(exc: BaseException, kind: ErrorKind) -> None:
    """aiohttp errors should map to the matching failure kind."""
    assert classify_error(exc) is kind


@pytest.mark.asyncio
async def test_executor_over_real_transport() -> None:
    """Batch of five GETs with limit 2 should succeed in order."""
    async with TestServer(make_app()) as server:
        executor = ExecutorBuilder().simultaneous_limit(2).build()
        async with executor:
            for i in range(5):
                executor.add_request(
                    Request(url=str(server.make_url("/echo")), extra_info=f"req-{i}")
                )
            outcomes = await executor.execute_requests()

    assert len(outcomes) == 5
    assert all(o.ok and o.response.status == 200 for o in outcomes)
    assert [o.request.extra_info for o in outcomes] == [f"req-{i}" for i in range(5)]
    assert executor.peak_in_flight <= 2
