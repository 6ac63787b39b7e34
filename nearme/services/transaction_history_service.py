"""
Transaction history service.

Payer history and merchant recent payments, newest first.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from nearme.config.business_constants import (
    HISTORY_MAX_PAGE_SIZE,
    MERCHANT_RECENT_TRANSACTIONS,
    SENDER_HISTORY_PAGE_SIZE,
)
from nearme.models.transaction_record import TransactionRecord
from nearme.repositories.transaction_record_repository import (
    TransactionRecordRepository,
)
from nearme.services.base_service import (
    BaseService,
    PaymentErrorKind,
    PaymentResult,
)
from nearme.validators import validate_currency


@dataclass(frozen=True)
class TransactionView:
    """Transaction record as shown in history lists."""

    tx_signature: str
    request_id: str
    merchant_id: str
    merchant_name: str
    merchant_wallet: str
    sender_wallet: str
    amount: Decimal
    currency: str
    block_time: int | None
    created_at: datetime

    @classmethod
    def from_model(cls, record: TransactionRecord) -> "TransactionView":
        return cls(
            tx_signature=record.tx_signature,
            request_id=record.request_id,
            merchant_id=record.merchant_id,
            merchant_name=record.merchant_name,
            merchant_wallet=record.merchant_wallet,
            sender_wallet=record.sender_wallet,
            amount=record.amount,
            currency=record.currency,
            block_time=record.block_time,
            created_at=record.created_at,
        )


@dataclass(frozen=True)
class TransactionPage:
    """
    One page of history with the cursor for the next one.

    The cursor is the (created_at, tx_signature) pair of the last item,
    so records sharing a timestamp are never skipped between pages.
    """

    items: list[TransactionView]
    next_before: datetime | None
    next_before_signature: str | None = None


def _clamp_limit(limit: int | None, default: int) -> int:
    if limit is None:
        return default
    return max(1, min(limit, HISTORY_MAX_PAGE_SIZE))


class TransactionHistoryService(BaseService):
    """Read-only transaction history queries."""

    async def list_sender_transactions(
        self,
        sender_wallet: str | None,
        currency: str | None = None,
        limit: int | None = SENDER_HISTORY_PAGE_SIZE,
        before: datetime | None = None,
        before_signature: str | None = None,
    ) -> PaymentResult[TransactionPage]:
        """
        List payments sent from a wallet.

        Args:
            sender_wallet: Payer wallet
            currency: Optional currency filter
            limit: Page size (clamped to 1..HISTORY_MAX_PAGE_SIZE)
            before: Cursor, ``next_before`` of the previous page
            before_signature: Cursor tiebreak, ``next_before_signature``
                of the previous page

        Returns:
            PaymentResult with TransactionPage
        """
        if not sender_wallet:
            return PaymentResult.fail(
                PaymentErrorKind.INPUT, "Missing required field: senderWallet"
            )

        if before_signature is not None and before is None:
            return PaymentResult.fail(
                PaymentErrorKind.INPUT, "beforeSignature requires before"
            )

        if currency is not None:
            valid, currency, error = validate_currency(currency)
            if not valid:
                return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        page_size = _clamp_limit(limit, SENDER_HISTORY_PAGE_SIZE)

        async with self.session_maker() as session:
            records = await TransactionRecordRepository(session).list_by_sender(
                sender_wallet,
                limit=page_size,
                currency=currency,
                before=before,
                before_signature=before_signature,
            )

        items = [TransactionView.from_model(record) for record in records]
        if len(items) < page_size:
            return PaymentResult.ok(TransactionPage(items=items, next_before=None))

        return PaymentResult.ok(
            TransactionPage(
                items=items,
                next_before=items[-1].created_at,
                next_before_signature=items[-1].tx_signature,
            )
        )

    async def list_merchant_transactions(
        self,
        merchant_id: str | None,
        limit: int | None = MERCHANT_RECENT_TRANSACTIONS,
    ) -> PaymentResult[list[TransactionView]]:
        """
        List most recent payments received by a merchant.

        Args:
            merchant_id: Merchant ID
            limit: Max number of records

        Returns:
            PaymentResult with list of TransactionView
        """
        if not merchant_id:
            return PaymentResult.fail(
                PaymentErrorKind.INPUT, "Missing required field: merchantId"
            )

        async with self.session_maker() as session:
            records = await TransactionRecordRepository(session).list_by_merchant(
                merchant_id, limit=_clamp_limit(limit, MERCHANT_RECENT_TRANSACTIONS)
            )

        return PaymentResult.ok([TransactionView.from_model(r) for r in records])
