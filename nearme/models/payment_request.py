"""
Payment Request model.

An open invoice a merchant presents to a payer, settled on the ledger
or expired after its TTL.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from nearme.models.base import Base
from nearme.models.enums import PaymentRequestStatus
from nearme.models.types import AmountType, UTCDateTime


class PaymentRequest(Base):
    """
    Payment request.

    Merchant name and wallet are snapshots taken at creation. Status moves
    pending -> paid or pending -> expired exactly once; the settlement
    fields stay null until the request is paid.
    """

    __tablename__ = "payment_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_payment_request_amount_positive"),
        CheckConstraint(
            "status IN ('pending', 'paid', 'expired')",
            name="check_payment_request_status",
        ),
        CheckConstraint("currency IN ('SOL', 'USDC')", name="check_payment_request_currency"),
        Index("ix_payment_requests_status_expires_at", "status", "expires_at"),
    )

    # Primary key
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)

    # Merchant reference and snapshot
    merchant_id: Mapped[str] = mapped_column(
        ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    merchant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_wallet: Mapped[str] = mapped_column(String(64), nullable=False)

    # Invoice
    amount: Mapped[Decimal] = mapped_column(AmountType, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentRequestStatus.PENDING.value,
        comment="pending, paid, expired",
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Settlement (null until paid)
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    tx_signature: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sender_wallet: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PaymentRequest("
            f"id={self.id}, "
            f"merchant_id={self.merchant_id}, "
            f"amount={self.amount} {self.currency}, "
            f"status={self.status}"
            f")>"
        )

    @staticmethod
    def calculate_expiry(created_at: datetime, ttl_seconds: int) -> datetime:
        """
        Calculate deadline from creation time.

        Args:
            created_at: Server creation timestamp
            ttl_seconds: Request lifetime

        Returns:
            expires_at
        """
        return created_at + timedelta(seconds=ttl_seconds)

    @property
    def is_pending(self) -> bool:
        """Check if request still awaits settlement."""
        return self.status == PaymentRequestStatus.PENDING

    def is_past_deadline(self, now: datetime) -> bool:
        """Check if deadline passed at ``now``."""
        return self.expires_at < now
