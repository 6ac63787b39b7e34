"""
Standard type definitions for database models.

Provides consistent types for monetary and timestamp fields across all models.
"""

from datetime import datetime

from sqlalchemy import DECIMAL, DateTime
from sqlalchemy.types import TypeDecorator

from nearme.utils.datetime_utils import ensure_utc

# Standard amount type for payment amounts and volumes
# Precision: 18 digits total, 9 after decimal point
# Suitable for: SOL (9 decimals, lamports), USDC (6 decimals)
# Range: up to 999,999,999.999999999
AmountType = DECIMAL(18, 9)

# Volume type for merchant totals (sums of many AmountType values)
VolumeType = DECIMAL(30, 9)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp.

    Values are converted to UTC on the way in and come back aware even
    from backends that drop tzinfo (SQLite).
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)
