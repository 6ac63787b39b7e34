"""
Merchant repository.

Data access layer for Merchant model. Directory lookups plus the only
write path to the merchant stats columns.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from nearme.models.merchant import Merchant
from nearme.repositories.base import BaseRepository


class MerchantRepository(BaseRepository[Merchant]):
    """Merchant repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize merchant repository."""
        super().__init__(Merchant, session)

    async def increment_payment_stats(
        self,
        merchant_id: str,
        amount: Decimal,
        currency: str,
        updated_at: datetime,
    ) -> bool:
        """
        Apply one settled payment to merchant stats.

        Single atomic UPDATE (count + 1, volume + amount), so concurrent
        settlements for the same merchant never lose an increment. Must be
        called inside the settlement unit of work, next to the
        TransactionRecord insert it accounts for.

        Args:
            merchant_id: Merchant ID
            amount: Settled amount
            currency: Settlement currency
            updated_at: Settlement time

        Returns:
            True if merchant row was updated
        """
        volume_column = getattr(Merchant, Merchant.volume_column_name(currency))

        stmt = (
            update(Merchant)
            .where(Merchant.id == merchant_id)
            .values(
                {
                    Merchant.total_payments_count: Merchant.total_payments_count + 1,
                    volume_column: volume_column + amount,
                    Merchant.last_updated_at: updated_at,
                }
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
