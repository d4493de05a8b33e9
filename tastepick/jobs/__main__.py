"""Run the embedding worker schedule as its own process.

Usage::

    EMBEDDING_WORKER_ENABLED=true python -m tastepick.jobs

The API process can then run with EMBEDDING_WORKER_ENABLED=false.
"""

import asyncio
import signal

from tastepick.config import config
from tastepick.jobs.scheduler import setup_all_jobs, shutdown_scheduler, start_scheduler
from tastepick.logging import get_logger, setup_logging
from tastepick.storage import close_engine

setup_logging(config.log_level)
logger = get_logger(__name__)


async def _run() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    start_scheduler()
    setup_all_jobs()
    logger.info(
        f"Embedding worker process started: batch={config.embedding_batch_size}, "
        f"interval={config.embedding_worker_interval_seconds}s"
    )

    try:
        await stop.wait()
    finally:
        logger.info("Stopping embedding worker process")
        shutdown_scheduler()
        await close_engine()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
