"""Application entrypoint: run one batch of requests from a JSON file."""

import asyncio
import logging

from rolling_requests.adapters.driven.config.settings import Settings, load_settings
from rolling_requests.adapters.driven.logging.logging_config import configure_logs
from rolling_requests.adapters.driven.metrics.dispatch_metrics import Metrics
from rolling_requests.builder import ExecutorBuilder
from rolling_requests.ports.http import Outcome

__all__ = ["main", "run_batch", "cli"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


async def run_batch(settings: Settings) -> list[Outcome]:
    """Enqueue every configured request and execute them under the limit.

    Args:
        settings: Validated runtime settings.

    Returns:
        Outcomes in request-file order.
    """
    executor = (
        ExecutorBuilder()
        .simultaneous_limit(settings.simultaneous_limit)
        .timeout(settings.timeout_sec)
        .fail_on_status(settings.fail_on_status)
        .metrics(Metrics())
        .build()
    )
    async with executor:
        for request in settings.build_requests():
            executor.add_request(request)
        return await executor.execute_requests()


def log_outcome(outcome: Outcome) -> None:
    req = outcome.request
    tag = f" [{req.extra_info}]" if req.extra_info else ""
    if outcome.response is not None:
        logger.info(
            f"#{outcome.index}{tag} {req.method.value} {req.url} -> {outcome.response.status} "
            f"({len(outcome.response.body)} bytes)"
        )
    elif outcome.failure is not None:
        logger.error(
            f"#{outcome.index}{tag} {req.method.value} {req.url} -> "
            f"{outcome.failure.kind.value}: {outcome.failure.message}"
        )


async def main() -> int:
    """Run the batch described by the environment.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Execute the batch.
    4. Log each outcome.

    Returns:
        0 if every request succeeded, 1 if any failed, 2 on configuration error.
    """
    configure_logs()
    logger.info("Starting rolling-requests batch...")

    try:
        settings = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check REQUESTS_FILE_PATH, SIMULTANEOUS_LIMIT, REQUEST_TIMEOUT_SECONDS, "
            "FAIL_ON_STATUS and that the requests file exists and is valid JSON.",
            exc,
        )
        return EXIT_CONFIG_ERROR

    outcomes = await run_batch(settings)
    for outcome in outcomes:
        log_outcome(outcome)

    failed = sum(1 for outcome in outcomes if not outcome.ok)
    logger.info(f"Batch finished: {len(outcomes) - failed} ok, {failed} failed.")
    return EXIT_FAILURES if failed else EXIT_OK


def cli() -> None:
    """Console script entrypoint."""
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
        raise SystemExit(130) from None


if __name__ == "__main__":
    cli()
