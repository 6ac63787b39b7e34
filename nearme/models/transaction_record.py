"""
Transaction Record model.

Immutable receipt of a settled payment, keyed by ledger signature.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from nearme.models.base import Base
from nearme.models.types import AmountType, UTCDateTime


class TransactionRecord(Base):
    """
    Settled payment receipt.

    The ledger signature is the primary key, so a second insert for the
    same signature fails and aborts the settlement commit it belongs to.
    Created only by settlement; never updated or deleted.
    """

    __tablename__ = "transaction_records"
    __table_args__ = (
        Index("ix_transaction_records_sender_created", "sender_wallet", "created_at"),
        Index("ix_transaction_records_merchant_created", "merchant_id", "created_at"),
    )

    # Ledger signature (idempotency key)
    tx_signature: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Request and merchant snapshot
    request_id: Mapped[str] = mapped_column(
        ForeignKey("payment_requests.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    merchant_id: Mapped[str] = mapped_column(
        ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=False
    )
    merchant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_wallet: Mapped[str] = mapped_column(String(64), nullable=False)

    # Payment
    sender_wallet: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal] = mapped_column(AmountType, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    block_time: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, comment="Ledger-reported block time (epoch seconds)"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TransactionRecord(tx_signature={self.tx_signature[:16]}..., "
            f"request_id={self.request_id}, amount={self.amount} {self.currency})>"
        )
