"""
Merchant stats service.

Read side of the merchant counters maintained by settlement, plus an
audit that recomputes them from transaction records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from nearme.config.business_constants import SUPPORTED_CURRENCIES
from nearme.repositories.merchant_repository import MerchantRepository
from nearme.repositories.transaction_record_repository import (
    TransactionRecordRepository,
)
from nearme.services.base_service import (
    BaseService,
    PaymentErrorKind,
    PaymentResult,
)


@dataclass(frozen=True)
class MerchantStats:
    """Merchant counters snapshot."""

    merchant_id: str
    total_payments_count: int
    total_volume: dict[str, Decimal]
    last_updated_at: datetime | None


@dataclass
class MerchantStatsAudit:
    """Stored counters versus counters recomputed from records."""

    merchant_id: str
    stored_count: int
    recorded_count: int
    stored_volume: dict[str, Decimal] = field(default_factory=dict)
    recorded_volume: dict[str, Decimal] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        return (
            self.stored_count == self.recorded_count
            and self.stored_volume == self.recorded_volume
        )


class MerchantStatsService(BaseService):
    """Merchant stats snapshot and consistency audit."""

    async def get_merchant_stats(
        self, merchant_id: str | None
    ) -> PaymentResult[MerchantStats]:
        """
        Get merchant counters.

        Args:
            merchant_id: Merchant ID

        Returns:
            PaymentResult with MerchantStats
        """
        if not merchant_id:
            return PaymentResult.fail(
                PaymentErrorKind.INPUT, "Missing required field: merchantId"
            )

        async with self.session_maker() as session:
            merchant = await MerchantRepository(session).get_by_id(merchant_id)

        if merchant is None:
            return PaymentResult.fail(PaymentErrorKind.NOT_FOUND, "Merchant not found")

        return PaymentResult.ok(
            MerchantStats(
                merchant_id=merchant.id,
                total_payments_count=merchant.total_payments_count,
                total_volume={
                    currency: merchant.volume_for(currency)
                    for currency in SUPPORTED_CURRENCIES
                },
                last_updated_at=merchant.last_updated_at,
            )
        )

    async def audit_merchant_stats(
        self, merchant_id: str
    ) -> PaymentResult[MerchantStatsAudit]:
        """
        Recompute merchant counters from transaction records.

        Both reads happen in one transaction so a concurrent settlement
        cannot land between them.

        Args:
            merchant_id: Merchant ID

        Returns:
            PaymentResult with MerchantStatsAudit
        """
        async with self.session_maker() as session:
            async with session.begin():
                merchant = await MerchantRepository(session).get_by_id(merchant_id)
                if merchant is None:
                    return PaymentResult.fail(
                        PaymentErrorKind.NOT_FOUND, "Merchant not found"
                    )
                count, volumes = await TransactionRecordRepository(
                    session
                ).aggregate_for_merchant(merchant_id)

        audit = MerchantStatsAudit(
            merchant_id=merchant_id,
            stored_count=merchant.total_payments_count,
            recorded_count=count,
            stored_volume={
                currency: merchant.volume_for(currency)
                for currency in SUPPORTED_CURRENCIES
            },
            recorded_volume={
                currency: volumes.get(currency, Decimal("0"))
                for currency in SUPPORTED_CURRENCIES
            },
        )

        if not audit.is_consistent:
            self.logger.error(
                f"Merchant {merchant_id} stats drifted: stored "
                f"count={audit.stored_count} volume={audit.stored_volume}, "
                f"recorded count={audit.recorded_count} "
                f"volume={audit.recorded_volume}"
            )

        return PaymentResult.ok(audit)
