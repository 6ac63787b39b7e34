"""
Payment request expiry task.

Expires pending payment requests whose deadline has passed.
Enqueued by the scheduler every EXPIRY_SWEEP_INTERVAL_SECONDS.
"""

import dramatiq
from loguru import logger

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401
from jobs.utils.database import create_session_maker, create_task_engine
from nearme.config.constants import DRAMATIQ_TIME_LIMIT_SHORT
from nearme.config.logging import setup_logging
from nearme.config.settings import settings
from nearme.services.expiry_service import ExpiryService

# Worker processes import this module; give them the same sinks as the API
setup_logging("worker")


@dramatiq.actor(max_retries=0, time_limit=DRAMATIQ_TIME_LIMIT_SHORT)
def expire_payment_requests() -> dict:
    """
    Expire stale pending payment requests.

    Failures are logged, never raised: the next tick re-runs the query and
    picks up whatever this run missed.

    Returns:
        Dict with matched/expired/skipped/errors counts
    """
    logger.info("Starting payment request expiry sweep...")

    try:
        return run_async(_expire_payment_requests_async())
    except Exception as e:
        logger.exception(f"Payment request expiry sweep failed: {e}")
        return {"matched": 0, "expired": 0, "skipped": 0, "errors": 1}


async def _expire_payment_requests_async() -> dict:
    """Run one sweep on a task-local engine."""
    engine = create_task_engine()
    try:
        service = ExpiryService(
            create_session_maker(engine),
            batch_size=settings.expiry_batch_size,
        )
        result = await service.expire_stale_requests()
        return result.to_dict()
    finally:
        await engine.dispose()
