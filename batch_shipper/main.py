"""Demo entry point: generates sample logs and ships them through a LogDispatcher."""

import asyncio
import logging
import random
import signal
import sys

from batch_shipper.config import ConfigError, load_config
from batch_shipper.dispatcher import LogDispatcher
from batch_shipper.handler import DispatchHandler

logger = logging.getLogger(__name__)

SAMPLE_SERVICE = "batch-shipper"
SAMPLE_LEVELS = ["DEBUG", "INFO", "INFO", "INFO", "WARNING", "ERROR"]
SAMPLE_MESSAGES = [
    "User logged in",
    "Request processed successfully",
    "Database query completed",
    "Cache miss for key",
    "Configuration reloaded",
    "Health check passed",
    "Connection timeout to upstream",
    "Disk usage above threshold",
    "Authentication failed for user",
    "Service restarted",
]


async def generate_sample_logs(
    app_logger: logging.Logger,
    logs_per_second: int,
    run_time: int,
    shutdown: asyncio.Event,
) -> int:
    """Emit random sample logs at *logs_per_second* for *run_time* seconds.

    Returns the number of logs emitted.
    """
    emitted = 0
    interval = 1.0 / logs_per_second if logs_per_second > 0 else 1.0
    loop = asyncio.get_running_loop()
    deadline = loop.time() + run_time

    while not shutdown.is_set() and loop.time() < deadline:
        app_logger.log(
            logging.getLevelName(random.choice(SAMPLE_LEVELS)),
            random.choice(SAMPLE_MESSAGES),
            extra={"metadata": {"service": SAMPLE_SERVICE}},
        )
        emitted += 1
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    return emitted


async def run(argv=None) -> int:
    try:
        config, args = load_config(argv)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    app_logger = logging.getLogger("demo-app")
    async with LogDispatcher(config) as dispatcher:
        handler = DispatchHandler(dispatcher)
        app_logger.addHandler(handler)
        logger.info(
            "Shipping to %s: batch_size=%d, time_threshold=%dms",
            dispatcher.api_url,
            config.batch_size,
            config.time_threshold_ms,
        )
        try:
            emitted = await generate_sample_logs(
                app_logger, args.logs_per_second, args.run_time, shutdown
            )
            logger.info("Generated %d logs, shutting down...", emitted)
        finally:
            app_logger.removeHandler(handler)

    logger.info("Dispatcher metrics: %s", dispatcher.metrics.snapshot())
    return 0


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
