"""Utilities for background tasks."""
from jobs.utils.database import create_session_maker, create_task_engine

__all__ = [
    "create_task_engine",
    "create_session_maker",
]
