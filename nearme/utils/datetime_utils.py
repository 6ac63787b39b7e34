"""
Datetime utilities.

Provides timezone-aware datetime functions and the clock type services
receive by injection.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_epoch_millis(value: datetime) -> int:
    """Convert datetime to integer epoch milliseconds."""
    return int(ensure_utc(value).timestamp() * 1000)
