"""
RPC Wrapper with Timeout and Retry Logic.

Provides centralized timeout and retry functionality for ledger RPC calls.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from loguru import logger

from nearme.config.constants import (
    LEDGER_MAX_RETRIES,
    LEDGER_RETRY_BACKOFF_BASE,
    LEDGER_TIMEOUT,
)
from nearme.utils.exceptions import LedgerError, LedgerTimeoutError


async def with_timeout(
    coro: Any,
    timeout: float = LEDGER_TIMEOUT,
    operation_name: str = "RPC call",
) -> Any:
    """
    Execute async coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds (default: LEDGER_TIMEOUT)
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        LedgerTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.error(error_msg)
        raise LedgerTimeoutError(error_msg) from e


async def rpc_call_with_retry(
    coro_factory: Callable[[], Any],
    max_retries: int = LEDGER_MAX_RETRIES,
    timeout: float = LEDGER_TIMEOUT,
    operation_name: str = "RPC call",
    backoff_base: float = LEDGER_RETRY_BACKOFF_BASE,
) -> Any:
    """
    Execute RPC call with retry logic and timeout.

    Args:
        coro_factory: Factory function that returns a coroutine
        max_retries: Maximum number of attempts
        timeout: Timeout per attempt in seconds
        operation_name: Operation name for logging
        backoff_base: Delay before retry N is backoff_base * 2**(N-1)

    Returns:
        Result of the RPC call

    Raises:
        LedgerTimeoutError: If the last attempt timed out
        LedgerError: If all attempts fail with errors
    """
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            result = await with_timeout(
                coro_factory(),
                timeout=timeout,
                operation_name=f"{operation_name} (attempt {attempt + 1}/{max_retries})",
            )

            if attempt > 0:
                logger.success(
                    f"{operation_name} succeeded on attempt {attempt + 1}"
                )

            return result

        except Exception as e:
            last_error = e

            if attempt < max_retries - 1:
                delay = backoff_base * (2 ** attempt)
                logger.warning(
                    f"{operation_name} failed on attempt {attempt + 1}/{max_retries}: {e}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"{operation_name} failed after {max_retries} attempts: {e}"
                )

    if isinstance(last_error, LedgerTimeoutError):
        raise last_error
    raise LedgerError(
        f"{operation_name} failed after {max_retries} attempts: {last_error}"
    ) from last_error
