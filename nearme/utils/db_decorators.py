"""
Database helpers for atomic units of work.

Provides a runner that applies a group of writes as one transaction and
retries the whole group on transient store conflicts.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.config.constants import COMMIT_MAX_ATTEMPTS, COMMIT_RETRY_BACKOFF_BASE
from nearme.utils.exceptions import is_transient_db_error


T = TypeVar("T")


async def run_in_transaction(
    session_maker: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int = COMMIT_MAX_ATTEMPTS,
    backoff_base: float = COMMIT_RETRY_BACKOFF_BASE,
    operation_name: str = "unit of work",
) -> T:
    """
    Run ``work`` inside a single transaction with conflict retry.

    Every attempt opens a fresh session. The transaction commits when
    ``work`` returns and rolls back when it raises, so either all of its
    writes are applied or none are. Transient conflicts (lock timeouts,
    serialization failures, deadlocks) roll back and rerun ``work`` from
    scratch; any other exception propagates after the rollback.

    Args:
        session_maker: Store handle
        work: Coroutine function receiving the transactional session
        max_attempts: Attempts before the last conflict is re-raised
        backoff_base: Base delay in seconds, doubled on each retry
        operation_name: Operation name for logging

    Returns:
        Whatever ``work`` returned on the committed attempt
    """
    for attempt in range(1, max_attempts + 1):
        try:
            async with session_maker() as session:
                async with session.begin():
                    return await work(session)
        except Exception as e:
            if not is_transient_db_error(e) or attempt == max_attempts:
                raise

            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning(
                f"{operation_name} hit store conflict on attempt "
                f"{attempt}/{max_attempts}: {type(e).__name__}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise RuntimeError(f"{operation_name}: max_attempts must be >= 1")
