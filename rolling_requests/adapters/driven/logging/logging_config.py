"""Console logging for the rolling-requests CLI."""

import logging
from typing import TextIO

__all__ = ["configure_logs"]

HANDLER_NAME = "rolling_requests.console"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"

# Libraries whose INFO/DEBUG chatter drowns out per-request lines
NOISY_LOGGERS = ("aiohttp", "asyncio", "multidict")


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logs(level: int | str = logging.INFO, *, stream: TextIO | None = None) -> None:
    """Attach one console handler to the root logger.

    The package's own loggers always emit DEBUG; the root level decides
    what reaches the console. Calling it again only updates levels and
    the handler's stream.

    Args:
        level: Root level, as a number or a name such as "debug".
        stream: Destination; stderr when omitted.

    Raises:
        ValueError: If a level name is not recognised.
    """
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    handler = next((h for h in root.handlers if h.get_name() == HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(stream)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(handler)
    elif stream is not None and isinstance(handler, logging.StreamHandler):
        handler.setStream(stream)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("rolling_requests").setLevel(logging.DEBUG)
