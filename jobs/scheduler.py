"""
Task scheduler.

Registers periodic jobs at process start and serves health checks.
Jobs only enqueue dramatiq messages; workers do the work.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from jobs.health import start_health_server, stop_health_server
from jobs.tasks.expire_payment_requests import expire_payment_requests
from nearme.config.logging import setup_logging
from nearme.config.settings import settings

EXPIRY_JOB_ID = "expire_payment_requests"


def enqueue_expiry_sweep() -> None:
    """Send one expiry sweep message to the workers."""
    expire_payment_requests.send()


def create_scheduler(
    interval_seconds: int | None = None,
) -> AsyncIOScheduler:
    """
    Create scheduler with the expiry sweep registered.

    Args:
        interval_seconds: Sweep cadence (default from settings)

    Returns:
        Configured, not yet started AsyncIOScheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        enqueue_expiry_sweep,
        "interval",
        seconds=interval_seconds or settings.expiry_sweep_interval_seconds,
        id=EXPIRY_JOB_ID,
        name="Expire stale payment requests",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler


async def run() -> None:
    """Run scheduler until SIGINT/SIGTERM."""
    scheduler = create_scheduler()
    scheduler.start()
    logger.info(
        f"Scheduler started: expiry sweep every "
        f"{settings.expiry_sweep_interval_seconds}s"
    )

    runner = await start_health_server(scheduler, port=settings.health_check_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)


def main() -> None:
    """Scheduler entry point."""
    setup_logging("scheduler")
    asyncio.run(run())


if __name__ == "__main__":
    main()
