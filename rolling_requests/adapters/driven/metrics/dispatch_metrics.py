"""Sliding-window dispatch statistics kept in memory."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from rolling_requests.ports.metrics import DispatchAttemptDto, MetricsPort

__all__ = ["Metrics", "MetricsSnapshot"]

NO_STATUS = 0


@dataclass(slots=True, frozen=True)
class MetricsSnapshot:
    """Aggregates over the dispatches currently in the window.

    Attributes:
        window: Dispatches the figures are computed from.
        capacity: Maximum window length.
        total: Dispatches recorded since creation, evicted ones included.
        avg_wait_ms: Mean time between drain and slot acquisition.
        avg_latency_ms: Mean time a slot was held.
        p95_latency_ms: 95th percentile of slot-held time (nearest rank).
        fail_pct: Share of failed dispatches, 0-100.
        last_status: Status of the newest dispatch, 0 when it got no response.
    """

    window: int
    capacity: int
    total: int
    avg_wait_ms: float
    avg_latency_ms: float
    p95_latency_ms: float
    fail_pct: float
    last_status: int


def _nearest_rank(sorted_values: list[float], pct: float) -> float:
    rank = max(1, math.ceil(pct / 100 * len(sorted_values)))
    return sorted_values[rank - 1]


class Metrics(MetricsPort):
    """Rolling dispatch statistics for one executor.

    Keeps running sums next to the window so averages stay O(1) per
    update; only the percentile sorts. Meant to be fed from a single
    event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        if window_size <= 0:
            raise ValueError(f"window_size must be positive (got: {window_size})")
        # (wait_ms, latency_ms, failed, status)
        self._entries: deque[tuple[float, float, bool, int]] = deque(maxlen=window_size)
        self._wait_sum = 0.0
        self._latency_sum = 0.0
        self._failed = 0
        self._total = 0

    def update(self, attempt: DispatchAttemptDto) -> None:
        if len(self._entries) == self._entries.maxlen:
            old_wait, old_latency, old_failed, _ = self._entries[0]
            self._wait_sum -= old_wait
            self._latency_sum -= old_latency
            self._failed -= old_failed

        wait_ms = (attempt.started_at_sec - attempt.queued_at_sec) * 1_000.0
        latency_ms = (attempt.finished_at_sec - attempt.started_at_sec) * 1_000.0
        status = attempt.status_code if attempt.status_code is not None else NO_STATUS
        self._entries.append((wait_ms, latency_ms, attempt.is_failed, status))

        self._wait_sum += wait_ms
        self._latency_sum += latency_ms
        self._failed += attempt.is_failed
        self._total += 1

    def snapshot(self) -> MetricsSnapshot | None:
        """Compute the current aggregates.

        Returns:
            The snapshot, or None before the first dispatch is recorded.
        """
        count = len(self._entries)
        if not count:
            return None
        latencies = sorted(entry[1] for entry in self._entries)
        return MetricsSnapshot(
            window=count,
            capacity=self._entries.maxlen or count,
            total=self._total,
            avg_wait_ms=self._wait_sum / count,
            avg_latency_ms=self._latency_sum / count,
            p95_latency_ms=_nearest_rank(latencies, 95),
            fail_pct=self._failed * 100 / count,
            last_status=self._entries[-1][3],
        )

    def __str__(self) -> str:
        snap = self.snapshot()
        if snap is None:
            return "Metrics: waiting for data …"
        return " | ".join(
            (
                f"wait={snap.avg_wait_ms:7.1f} ms",
                f"latency={snap.avg_latency_ms:7.1f} ms",
                f"p95={snap.p95_latency_ms:7.1f} ms",
                f"status={snap.last_status:3d}",
                f"fail={snap.fail_pct:5.1f}%",
                f"win={snap.window}/{snap.capacity}",
                f"total={snap.total}",
            )
        )
