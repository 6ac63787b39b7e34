"""
Health check server for scheduler monitoring.

Provides HTTP endpoints reporting scheduler state and registered jobs.
"""

import asyncio

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

SCHEDULER = web.AppKey("scheduler", AsyncIOScheduler)


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with scheduler status and job schedule
    """
    scheduler = request.app[SCHEDULER]
    is_running = scheduler.running
    jobs = []
    for job in scheduler.get_jobs():
        # Pending jobs of a stopped scheduler have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
            }
        )

    return web.json_response(
        {
            "status": "healthy" if is_running else "stopped",
            "scheduler_running": is_running,
            "jobs_count": len(jobs),
            "jobs": jobs,
        },
        status=200 if is_running else 503,
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """Ready once the scheduler is running."""
    if not request.app[SCHEDULER].running:
        return web.json_response({"status": "not_ready", "ready": False}, status=503)
    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    """Process is alive."""
    return web.json_response({"status": "alive", "alive": True})


def create_health_app(scheduler: AsyncIOScheduler) -> web.Application:
    """Build health check application for a scheduler."""
    app = web.Application()
    app[SCHEDULER] = scheduler
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    scheduler: AsyncIOScheduler,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start health check server.

    Args:
        scheduler: Scheduler to report on
        host: Host to bind to
        port: Port to bind to

    Returns:
        AppRunner for cleanup
    """
    runner = web.AppRunner(create_health_app(scheduler))
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on {host}:{port}")
    return runner


async def stop_health_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
