"""Transport port definition (interface)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rolling_requests.ports.http import HttpResponse, Request

__all__ = ["TransportPort"]


@runtime_checkable
class TransportPort(Protocol):
    """Capability that performs the network call for one request.

    Implementations must be safe to call from many concurrent tasks.
    Failures are raised, preferably as DispatchError so the failure kind
    survives; the executor turns them into failure outcomes.
    """

    async def send(self, request: Request, /) -> HttpResponse:
        """Perform the call and return the full response.

        Args:
            request: The request to dispatch.

        Returns:
            The response received.
        """
        ...
