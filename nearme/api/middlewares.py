"""
API middlewares.

Request logging with timing, and a last-resort handler that turns
unexpected exceptions into an ``internal`` JSON error.
"""

import time
from collections.abc import Awaitable, Callable

from aiohttp import web
from loguru import logger

from nearme.api.handlers import error_response
from nearme.services.base_service import CODE_INTERNAL, PaymentErrorKind

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def logging_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Log method, path, status and duration of every request."""
    start_time = time.time()
    response = await handler(request)
    duration = time.time() - start_time

    log = logger.warning if response.status >= 400 else logger.info
    log(
        f"{request.method} {request.path} -> {response.status} "
        f"({duration * 1000:.1f}ms)"
    )
    return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Render unexpected exceptions as internal errors."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unhandled error in {request.method} {request.path}: {e}")
        return error_response(
            CODE_INTERNAL,
            "Internal error",
            kind=PaymentErrorKind.INTERNAL,
            retryable=True,
        )
