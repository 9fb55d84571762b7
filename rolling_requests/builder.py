"""Fluent construction of a BoundedExecutor."""

from __future__ import annotations

import logging

from rolling_requests.adapters.driven.http.transport import HttpTransport
from rolling_requests.core.executor import BoundedExecutor
from rolling_requests.ports.errors import ConfigurationError
from rolling_requests.ports.metrics import MetricsPort
from rolling_requests.ports.transport import TransportPort

__all__ = ["ExecutorBuilder", "DEFAULT_SIMULTANEOUS_LIMIT"]

logger = logging.getLogger(__name__)

DEFAULT_SIMULTANEOUS_LIMIT = 10


class ExecutorBuilder:
    """Collect and validate executor configuration.

    Invalid values are rejected by the setter that receives them, so a
    misconfigured builder never reaches build().

    Example:
        executor = ExecutorBuilder().simultaneous_limit(2).timeout(5).build()
    """

    def __init__(self) -> None:
        self._limit = DEFAULT_SIMULTANEOUS_LIMIT
        self._timeout_sec: float | None = None
        self._transport: TransportPort | None = None
        self._metrics: MetricsPort | None = None
        self._fail_on_status = False

    def simultaneous_limit(self, limit: int) -> ExecutorBuilder:
        """Set the maximum number of requests in flight.

        Raises:
            ConfigurationError: If limit is not a positive integer.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ConfigurationError(
                f"simultaneous_limit must be a positive integer (got: {limit!r})"
            )
        self._limit = limit
        return self

    def timeout(self, seconds: float | None) -> ExecutorBuilder:
        """Set the per-request timeout; None disables it.

        Raises:
            ConfigurationError: If seconds is not positive.
        """
        if seconds is not None and seconds <= 0:
            raise ConfigurationError(f"timeout must be positive (got: {seconds!r})")
        self._timeout_sec = seconds
        return self

    def transport(self, transport: TransportPort) -> ExecutorBuilder:
        """Use a specific transport instead of the default aiohttp one."""
        self._transport = transport
        return self

    def metrics(self, metrics: MetricsPort | None) -> ExecutorBuilder:
        self._metrics = metrics
        return self

    def fail_on_status(self, enabled: bool = True) -> ExecutorBuilder:
        """Report status >= 400 as failure outcomes instead of responses."""
        self._fail_on_status = enabled
        return self

    def build(self) -> BoundedExecutor:
        """Create the executor with an empty request queue.

        No network activity happens here; the default transport opens its
        session on first use.
        """
        transport = self._transport if self._transport is not None else HttpTransport()
        logger.debug(
            f"Building executor: limit={self._limit}, timeout={self._timeout_sec}, "
            f"transport={type(transport).__name__}, fail_on_status={self._fail_on_status}"
        )
        return BoundedExecutor(
            transport=transport,
            simultaneous_limit=self._limit,
            timeout_sec=self._timeout_sec,
            metrics=self._metrics,
            fail_on_status=self._fail_on_status,
        )
