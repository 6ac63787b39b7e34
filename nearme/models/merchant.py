"""
Merchant model.

Merchant directory entry plus the payment statistics that settlement
maintains for it.
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from nearme.models.base import Base
from nearme.models.enums import Currency
from nearme.models.types import UTCDateTime, VolumeType


class Merchant(Base):
    """
    Merchant accepting crypto payments.

    Directory fields (name, wallet, accepted currencies, owner) are managed
    by merchant registration. The stats fields are written only by the
    settlement commit, one increment per TransactionRecord.
    """

    __tablename__ = "merchants"
    __table_args__ = (
        CheckConstraint("total_payments_count >= 0", name="check_merchant_payments_count_non_negative"),
    )

    # Primary key
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid4().hex)

    # Directory data
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    owner_identity: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True, comment="Caller identity allowed to bill on behalf of merchant"
    )
    accepts_sol: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    accepts_usdc: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Stats
    total_payments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_volume_sol: Mapped[Decimal] = mapped_column(VolumeType, nullable=False, default=Decimal("0"))
    total_volume_usdc: Mapped[Decimal] = mapped_column(VolumeType, nullable=False, default=Decimal("0"))
    last_updated_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True, comment="Last stats update (settlement time)"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Merchant(id={self.id}, name={self.name!r}, "
            f"payments={self.total_payments_count})>"
        )

    def accepts(self, currency: str) -> bool:
        """Check if merchant accepts the currency."""
        if currency == Currency.SOL:
            return self.accepts_sol
        if currency == Currency.USDC:
            return self.accepts_usdc
        return False

    def volume_for(self, currency: str) -> Decimal:
        """Get total settled volume in a currency."""
        if currency == Currency.SOL:
            return self.total_volume_sol
        if currency == Currency.USDC:
            return self.total_volume_usdc
        raise ValueError(f"Unsupported currency: {currency}")

    @staticmethod
    def volume_column_name(currency: str) -> str:
        """Stats column holding the volume for a currency."""
        if currency == Currency.SOL:
            return "total_volume_sol"
        if currency == Currency.USDC:
            return "total_volume_usdc"
        raise ValueError(f"Unsupported currency: {currency}")
