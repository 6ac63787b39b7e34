"""
TransactionRecord repository.

Data access layer for TransactionRecord model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from nearme.models.transaction_record import TransactionRecord
from nearme.repositories.base import BaseRepository


class TransactionRecordRepository(BaseRepository[TransactionRecord]):
    """TransactionRecord repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction record repository."""
        super().__init__(TransactionRecord, session)

    async def signature_exists(self, tx_signature: str) -> bool:
        """Check if a settlement was already recorded for signature."""
        return await self.exists(tx_signature=tx_signature)

    async def list_by_sender(
        self,
        sender_wallet: str,
        limit: int,
        currency: str | None = None,
        before: datetime | None = None,
        before_signature: str | None = None,
    ) -> list[TransactionRecord]:
        """
        Get sender payment history, newest first.

        Args:
            sender_wallet: Payer wallet
            limit: Page size
            currency: Optional currency filter
            before: Cursor time, created_at of the last record seen
            before_signature: Cursor tiebreak, tx_signature of that record

        Returns:
            List of transaction records
        """
        stmt = select(TransactionRecord).where(
            TransactionRecord.sender_wallet == sender_wallet
        )
        if currency:
            stmt = stmt.where(TransactionRecord.currency == currency)
        if before is not None and before_signature is not None:
            # Same order as ORDER BY created_at DESC, tx_signature
            stmt = stmt.where(
                or_(
                    TransactionRecord.created_at < before,
                    and_(
                        TransactionRecord.created_at == before,
                        TransactionRecord.tx_signature > before_signature,
                    ),
                )
            )
        elif before is not None:
            stmt = stmt.where(TransactionRecord.created_at < before)

        stmt = stmt.order_by(
            TransactionRecord.created_at.desc(),
            TransactionRecord.tx_signature,
        ).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_merchant(
        self, merchant_id: str, limit: int
    ) -> list[TransactionRecord]:
        """
        Get most recent payments received by merchant.

        Args:
            merchant_id: Merchant ID
            limit: Max number of records

        Returns:
            List of transaction records
        """
        stmt = (
            select(TransactionRecord)
            .where(TransactionRecord.merchant_id == merchant_id)
            .order_by(TransactionRecord.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def aggregate_for_merchant(
        self, merchant_id: str
    ) -> tuple[int, dict[str, Decimal]]:
        """
        Recompute merchant totals from records.

        Args:
            merchant_id: Merchant ID

        Returns:
            Tuple of (record count, volume by currency)
        """
        stmt = (
            select(
                TransactionRecord.currency,
                func.count(),
                func.sum(TransactionRecord.amount),
            )
            .where(TransactionRecord.merchant_id == merchant_id)
            .group_by(TransactionRecord.currency)
        )
        result = await self.session.execute(stmt)

        total_count = 0
        volumes: dict[str, Decimal] = {}
        for currency, count, volume in result.all():
            total_count += count
            volumes[currency] = Decimal(str(volume or 0))

        return total_count, volumes
