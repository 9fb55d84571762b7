"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["DispatchAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class DispatchAttemptDto:
    """Immutable snapshot of a single dispatch.

    Attributes:
        queued_at_sec: Monotonic time when the batch was drained.
        started_at_sec: Monotonic time when the request got its admission slot.
        finished_at_sec: Monotonic time when the dispatch completed.
        is_failed: True if the outcome is a failure.
        status_code: HTTP status code when a response arrived; None otherwise.
    """

    queued_at_sec: float
    started_at_sec: float
    finished_at_sec: float
    is_failed: bool = False
    status_code: int | None = None


class MetricsPort(Protocol):
    """Interface for recording dispatch metrics.

    Implementations must be async-safe and non-blocking.
    The executor calls update() after each dispatch; presentation layers call
    __str__() to render summaries.
    """

    def update(self, attempt: DispatchAttemptDto, /) -> None:
        """Record a finished dispatch.

        Args:
            attempt: The attempt to record.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans.

        Returns:
            Formatted metrics string.
        """
        ...
