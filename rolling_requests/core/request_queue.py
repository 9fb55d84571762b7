"""Ordered queue of pending requests."""

import logging
import threading

from rolling_requests.ports.http import Request

__all__ = ["RequestQueue"]

logger = logging.getLogger(__name__)


class RequestQueue:
    """Insertion-ordered collection of requests waiting for execution.

    add/drain/clear serialize on a lock, so producers on other threads never
    lose or duplicate a request across a drain.
    """

    def __init__(self) -> None:
        self._items: list[Request] = []
        self._lock = threading.Lock()

    def add(self, request: Request) -> None:
        """Append a request to the tail.

        Raises:
            TypeError: If request is not a Request.
        """
        if not isinstance(request, Request):
            raise TypeError(f"Expected Request, got {type(request).__name__}")
        with self._lock:
            self._items.append(request)

    def drain(self) -> list[Request]:
        """Remove and return every pending request, in insertion order."""
        with self._lock:
            drained, self._items = self._items, []
        return drained

    def clear(self) -> int:
        """Discard every pending request.

        Returns:
            Number of requests discarded.
        """
        with self._lock:
            discarded = len(self._items)
            self._items = []
        if discarded:
            logger.debug(f"Discarded {discarded} pending requests")
        return discarded

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0
