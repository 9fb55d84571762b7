"""Admission gate bounding the number of in-flight dispatches."""

from __future__ import annotations

import asyncio
from types import TracebackType

__all__ = ["AdmissionGate"]


class AdmissionGate:
    """Counting semaphore with queryable occupancy.

    Waiters are admitted in the order they called acquire().
    Bound to the event loop it first blocks on.
    """

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError(f"Admission limit must be positive (got: {limit})")
        self._limit = limit
        self._sem = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        """Slots currently held."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of slots held at once so far."""
        return self._peak

    @property
    def available(self) -> int:
        return self._limit - self._in_flight

    def reset_peak(self) -> None:
        """Restart peak tracking from the current occupancy."""
        self._peak = self._in_flight

    async def acquire(self) -> None:
        """Wait for a free slot and take it."""
        await self._sem.acquire()
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)

    def release(self) -> None:
        """Give a slot back.

        Raises:
            RuntimeError: If no slot is held.
        """
        if self._in_flight == 0:
            raise RuntimeError("release() called with no slot held")
        self._in_flight -= 1
        self._sem.release()

    async def __aenter__(self) -> AdmissionGate:
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
