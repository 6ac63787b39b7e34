"""Database setup for background tasks."""
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from nearme.config.database import create_session_maker
from nearme.config.settings import settings


def create_task_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create engine for one task run.

    NullPool: every worker thread has its own event loop, pooled
    connections must not outlive the loop that opened them.
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=False,
        poolclass=NullPool,
    )


__all__ = ["create_task_engine", "create_session_maker"]
