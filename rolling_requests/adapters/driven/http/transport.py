"""HTTP transport adapter over aiohttp."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

import aiohttp
from aiohttp import ClientTimeout, MultipartWriter

from rolling_requests.ports.errors import DispatchError, ErrorKind
from rolling_requests.ports.http import HttpResponse, Request, freeze_headers

__all__ = ["HttpTransport", "classify_error"]

logger = logging.getLogger(__name__)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an aiohttp/asyncio exception to a failure kind.

    Args:
        exc: Exception raised while sending a request.

    Returns:
        The matching ErrorKind (UNKNOWN if none matches).
    """
    # ServerTimeoutError is also a ClientConnectionError: check timeouts first
    if isinstance(exc, (aiohttp.ServerTimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, aiohttp.InvalidURL):
        return ErrorKind.INVALID_REQUEST
    if isinstance(
        exc,
        (
            aiohttp.ServerDisconnectedError,
            aiohttp.ClientPayloadError,
            aiohttp.ClientResponseError,
        ),
    ):
        return ErrorKind.PROTOCOL
    if isinstance(exc, (aiohttp.ClientConnectionError, OSError)):
        return ErrorKind.CONNECTION
    return ErrorKind.UNKNOWN


class HttpTransport:
    """Transport sending requests through a shared aiohttp session.

    Features:
    - Lazily opened session (no network activity at construction).
    - Optional total timeout per request.
    - aiohttp errors mapped to DispatchError with a failure kind.
    - Context manager for proper resource cleanup.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout_sec: float | None = None,
    ) -> None:
        """Initialize transport.

        Args:
            session: Session to reuse; a private one is created when omitted.
            timeout_sec: Optional total timeout for each call.

        Raises:
            ValueError: If timeout_sec is not positive.
        """
        if timeout_sec is not None and timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be positive (got: {timeout_sec!r})")
        self.session = session
        self._owns_session = session is None
        self._timeout = ClientTimeout(total=timeout_sec) if timeout_sec is not None else None

    async def __aenter__(self) -> HttpTransport:
        """Enter async context manager (open session).

        Returns:
            Self for use in async with statement.
        """
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()

    @staticmethod
    def _build_payload(req: Request) -> bytes | MultipartWriter | None:
        if not req.form:
            return req.body
        writer = MultipartWriter("form-data")
        for part in req.form:
            payload = writer.append(part.value)
            disposition = {"name": part.name}
            if part.filename is not None:
                disposition["filename"] = part.filename
            payload.set_content_disposition("form-data", **disposition)
        return writer

    async def send(self, req: Request) -> HttpResponse:
        """Send one request and read the full response.

        Args:
            req: Request to send.

        Returns:
            Response with status, headers and body.

        Raises:
            DispatchError: On any transport failure, tagged with its kind.
        """
        session = self._ensure_session()
        kwargs = {} if self._timeout is None else {"timeout": self._timeout}
        try:
            async with session.request(
                req.method.value,
                req.url,
                headers=dict(req.headers) or None,
                data=self._build_payload(req),
                **kwargs,
            ) as resp:
                body = await resp.read()
                logger.debug(f"{req.method.value} {req.url} -> {resp.status} ({len(body)} bytes)")
                return HttpResponse(
                    status=resp.status,
                    headers=freeze_headers(resp.headers.items()),
                    body=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            kind = classify_error(e)
            raise DispatchError(f"{type(e).__name__}: {e}", kind=kind) from e
