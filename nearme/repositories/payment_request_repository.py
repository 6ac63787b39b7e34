"""
PaymentRequest repository.

Data access layer for PaymentRequest model. Every status change goes
through a conditional UPDATE guarded by the expected current status.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nearme.models.enums import PaymentRequestStatus
from nearme.models.payment_request import PaymentRequest
from nearme.repositories.base import BaseRepository


class PaymentRequestRepository(BaseRepository[PaymentRequest]):
    """PaymentRequest repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment request repository."""
        super().__init__(PaymentRequest, session)

    async def get_status(self, request_id: str) -> str | None:
        """
        Read current status straight from the database.

        Bypasses the identity map, so it sees writes committed by other
        sessions after this session loaded the row.

        Args:
            request_id: Payment request ID

        Returns:
            Status or None if request does not exist
        """
        stmt = select(PaymentRequest.status).where(PaymentRequest.id == request_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def transition_status(
        self,
        request_id: str,
        from_status: PaymentRequestStatus,
        to_status: PaymentRequestStatus,
        **values: Any,
    ) -> bool:
        """
        Compare-and-swap status transition.

        Args:
            request_id: Payment request ID
            from_status: Status the row must still have
            to_status: New status
            **values: Extra columns to set with the transition

        Returns:
            True if the row was in ``from_status`` and got updated
        """
        stmt = (
            update(PaymentRequest)
            .where(PaymentRequest.id == request_id)
            .where(PaymentRequest.status == from_status.value)
            .values(status=to_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_paid(
        self,
        request_id: str,
        tx_signature: str,
        sender_wallet: str,
        paid_at: datetime,
    ) -> bool:
        """
        Transition pending -> paid with settlement fields.

        Returns:
            True if request was still pending
        """
        return await self.transition_status(
            request_id,
            PaymentRequestStatus.PENDING,
            PaymentRequestStatus.PAID,
            paid_at=paid_at,
            tx_signature=tx_signature,
            sender_wallet=sender_wallet,
        )

    async def expire_if_pending(self, request_id: str, now: datetime) -> bool:
        """
        Transition pending -> expired if deadline passed at ``now``.

        Both conditions are re-evaluated at write time, so a request
        settled after the reaper's query is left alone.

        Args:
            request_id: Payment request ID
            now: Current time

        Returns:
            True if request was expired by this call
        """
        stmt = (
            update(PaymentRequest)
            .where(PaymentRequest.id == request_id)
            .where(PaymentRequest.status == PaymentRequestStatus.PENDING.value)
            .where(PaymentRequest.expires_at < now)
            .values(status=PaymentRequestStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def find_expired_pending_ids(
        self, now: datetime, limit: int
    ) -> list[str]:
        """
        Find pending requests past their deadline.

        Args:
            now: Current time
            limit: Max number of IDs (oldest deadline first)

        Returns:
            List of request IDs
        """
        stmt = (
            select(PaymentRequest.id)
            .where(PaymentRequest.status == PaymentRequestStatus.PENDING.value)
            .where(PaymentRequest.expires_at < now)
            .order_by(PaymentRequest.expires_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
