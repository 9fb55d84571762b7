"""Bounded-concurrency execution of queued requests."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from rolling_requests.core.admission import AdmissionGate
from rolling_requests.core.request_queue import RequestQueue
from rolling_requests.ports.errors import DispatchError, ErrorKind, ProtocolError
from rolling_requests.ports.http import Failure, HttpResponse, Outcome, Request
from rolling_requests.ports.metrics import DispatchAttemptDto, MetricsPort
from rolling_requests.ports.transport import TransportPort

__all__ = ["BoundedExecutor"]

logger = logging.getLogger(__name__)

FIRST_FAILING_HTTP_CODE = 400


class BoundedExecutor:
    """Run queued requests with at most `simultaneous_limit` in flight.

    Use ExecutorBuilder to construct one with validated configuration.
    """

    def __init__(
        self,
        transport: TransportPort,
        simultaneous_limit: int,
        *,
        timeout_sec: float | None = None,
        metrics: MetricsPort | None = None,
        fail_on_status: bool = False,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Capability used to send each request.
            simultaneous_limit: Maximum number of dispatches in flight.
            timeout_sec: Optional per-request timeout.
            metrics: Optional metrics collector fed after each dispatch.
            fail_on_status: Treat status >= 400 as a failure outcome.
        """
        self._transport = transport
        self._limit = simultaneous_limit
        self._timeout_sec = timeout_sec
        self._fail_on_status = fail_on_status
        self.metrics = metrics
        self._queue = RequestQueue()
        self._gate: AdmissionGate | None = None
        self._gate_loop: asyncio.AbstractEventLoop | None = None

    async def __aenter__(self) -> BoundedExecutor:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport, if it holds resources."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()

    @property
    def simultaneous_limit(self) -> int:
        return self._limit

    @property
    def pending(self) -> int:
        """Number of requests waiting for the next run."""
        return len(self._queue)

    @property
    def peak_in_flight(self) -> int:
        """Highest concurrency reached since the executor was last idle."""
        return self._gate.peak_in_flight if self._gate is not None else 0

    def _gate_for(self, loop: asyncio.AbstractEventLoop) -> AdmissionGate:
        """Return the gate shared by every run of this executor.

        An idle gate is replaced when runs move to another event loop.
        """
        if self._gate is None or (self._gate_loop is not loop and self._gate.in_flight == 0):
            self._gate = AdmissionGate(self._limit)
            self._gate_loop = loop
        if self._gate.in_flight == 0:
            self._gate.reset_peak()
        return self._gate

    def add_request(self, request: Request) -> None:
        """Enqueue one request for the next run."""
        self._queue.add(request)

    def clear_requests(self) -> int:
        """Discard pending requests without sending them.

        Returns:
            Number of requests discarded.
        """
        return self._queue.clear()

    async def execute_requests(self) -> list[Outcome]:
        """Drain the queue and dispatch every request under the limit.

        Slots are acquired in submission order; the returned list follows
        submission order too, whatever order the responses arrive in.
        Per-request failures become failure outcomes and never abort the
        rest of the batch.

        Returns:
            One outcome per drained request, result[i] for request i.
        """
        batch = self._queue.drain()
        if not batch:
            return []

        loop = asyncio.get_running_loop()
        queued_at = loop.time()
        # Overlapping runs on one executor share the same slots
        gate = self._gate_for(loop)
        outcomes: list[Outcome | None] = [None] * len(batch)
        tasks: list[asyncio.Task[None]] = []
        started: set[int] = set()

        async def _run_one(index: int, req: Request) -> None:
            """Dispatch one request and store its outcome; holds one slot."""
            started.add(index)
            started_at = loop.time()
            try:
                outcome = await self._dispatch(index, req)
            finally:
                gate.release()
            outcomes[index] = outcome
            try:
                self._record(outcome, queued_at, started_at, loop.time())
            except Exception as e:  # noqa: BLE001
                logger.error(f"Metrics update failed for request #{index}: {e}", exc_info=True)

        logger.debug(f"Executing {len(batch)} requests, limit={self._limit}")
        try:
            for index, req in enumerate(batch):
                await gate.acquire()
                tasks.append(loop.create_task(_run_one(index, req)))
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            # Tasks cancelled before their first step never reached their finally
            for _ in range(len(tasks) - len(started)):
                gate.release()
            raise

        results = [outcome for outcome in outcomes if outcome is not None]
        failures = sum(1 for outcome in results if not outcome.ok)
        logger.info(
            f"Batch done: requests={len(results)}, failures={failures}, "
            f"peak_in_flight={gate.peak_in_flight}/{self._limit}"
        )
        if self.metrics:
            logger.debug(f"Dispatch metrics: {self.metrics}")
        return results

    async def _dispatch(self, index: int, req: Request) -> Outcome:
        """Send one request and capture any failure as data."""
        try:
            if self._timeout_sec is None:
                response = await self._transport.send(req)
            else:
                response = await asyncio.wait_for(self._transport.send(req), self._timeout_sec)
            self._check_status(response)
        except asyncio.TimeoutError as e:
            if self._timeout_sec is not None:
                message = f"Timed out after {self._timeout_sec}s"
            else:
                message = str(e) or "Transport timed out"
            return self._failed(index, req, ErrorKind.TIMEOUT, message)
        except DispatchError as e:
            return self._failed(index, req, e.kind, str(e))
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected transport error for {req.url}: {e}", exc_info=True)
            return self._failed(index, req, ErrorKind.UNKNOWN, f"{type(e).__name__}: {e}")
        return Outcome(index=index, request=req, response=response)

    def _check_status(self, response: HttpResponse) -> None:
        if self._fail_on_status and response.status >= FIRST_FAILING_HTTP_CODE:
            raise ProtocolError(response.status)

    @staticmethod
    def _failed(index: int, req: Request, kind: ErrorKind, message: str) -> Outcome:
        logger.warning(
            f"Request #{index} {req.method.value} {req.url} failed ({kind.value}): {message}"
        )
        return Outcome(index=index, request=req, failure=Failure(kind=kind, message=message))

    def _record(
        self, outcome: Outcome, queued_at: float, started_at: float, finished_at: float
    ) -> None:
        if not self.metrics:
            return
        self.metrics.update(
            DispatchAttemptDto(
                queued_at_sec=queued_at,
                started_at_sec=started_at,
                finished_at_sec=finished_at,
                is_failed=not outcome.ok,
                status_code=outcome.response.status if outcome.response else None,
            )
        )
