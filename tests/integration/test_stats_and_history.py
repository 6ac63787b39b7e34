"""Integration tests for merchant stats audit and transaction history."""

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import update

from nearme.models import Merchant
from nearme.services import (
    MerchantStatsService,
    PaymentErrorKind,
    PaymentRequestService,
    SettlementService,
    TransactionHistoryService,
)


@pytest.fixture
def stats_service(session_maker, clock):
    return MerchantStatsService(session_maker, clock=clock)


@pytest.fixture
def history_service(session_maker, clock):
    return TransactionHistoryService(session_maker, clock=clock)


@pytest.fixture
def payer(make_wallet):
    return make_wallet()


@pytest_asyncio.fixture
async def settle(session_maker, ledger, clock, merchant, owner_identity, make_signature):
    """Factory creating and settling a request; returns the signature."""
    requests = PaymentRequestService(session_maker, clock=clock)
    settlement = SettlementService(
        session_maker, ledger, clock=clock, ledger_backoff_base=0
    )

    async def _settle(
        payer: str, amount: str, currency: str, advance: float = 10
    ) -> str:
        created = await requests.create_payment_request(
            merchant.id, amount, currency, owner_identity
        )
        signature = make_signature()
        ledger.add_transfer(signature, payer, merchant.wallet_address)
        clock.advance(advance)
        result = await settlement.fulfill_payment_request(
            created.data.request_id, signature, payer, owner_identity
        )
        assert result.success, result.error
        return signature

    return _settle


class TestMerchantStats:
    """Tests for MerchantStatsService."""

    @pytest.mark.asyncio
    async def test_stats_match_records(self, stats_service, settle, merchant, payer):
        await settle(payer, "0.5", "SOL")
        await settle(payer, "1.25", "SOL")
        await settle(payer, "2.5", "USDC")

        stats = await stats_service.get_merchant_stats(merchant.id)
        assert stats.data.total_payments_count == 3
        assert stats.data.total_volume == {"SOL": Decimal("1.75"), "USDC": Decimal("2.5")}

        audit = await stats_service.audit_merchant_stats(merchant.id)
        assert audit.success is True
        assert audit.data.is_consistent is True
        assert audit.data.recorded_count == 3

    @pytest.mark.asyncio
    async def test_audit_detects_drift(
        self, stats_service, settle, session_maker, merchant, payer
    ):
        await settle(payer, "0.5", "SOL")
        async with session_maker() as session:
            async with session.begin():
                await session.execute(
                    update(Merchant)
                    .where(Merchant.id == merchant.id)
                    .values(total_payments_count=5)
                )

        audit = await stats_service.audit_merchant_stats(merchant.id)

        assert audit.data.is_consistent is False
        assert audit.data.stored_count == 5
        assert audit.data.recorded_count == 1

    @pytest.mark.asyncio
    async def test_unknown_merchant(self, stats_service, merchant):
        assert (
            await stats_service.get_merchant_stats("missing")
        ).error_kind == PaymentErrorKind.NOT_FOUND
        assert (
            await stats_service.audit_merchant_stats("missing")
        ).error_kind == PaymentErrorKind.NOT_FOUND


class TestTransactionHistory:
    """Tests for TransactionHistoryService."""

    @pytest.mark.asyncio
    async def test_sender_history_newest_first_with_cursor(
        self, history_service, settle, payer, make_wallet
    ):
        signatures = [await settle(payer, "0.5", "SOL") for _ in range(3)]
        await settle(make_wallet(), "0.5", "SOL")

        first = await history_service.list_sender_transactions(payer, limit=2)
        assert [item.tx_signature for item in first.data.items] == signatures[::-1][:2]
        assert first.data.next_before is not None

        second = await history_service.list_sender_transactions(
            payer,
            limit=2,
            before=first.data.next_before,
            before_signature=first.data.next_before_signature,
        )
        assert [item.tx_signature for item in second.data.items] == [signatures[0]]
        assert second.data.next_before is None

    @pytest.mark.asyncio
    async def test_sender_history_pages_through_same_instant(
        self, history_service, settle, payer
    ):
        """Records sharing created_at are all reachable one page at a time."""
        signatures = [await settle(payer, "0.5", "SOL", advance=0) for _ in range(3)]

        seen = []
        before, before_signature = None, None
        for _ in range(5):
            page = await history_service.list_sender_transactions(
                payer, limit=1, before=before, before_signature=before_signature
            )
            seen.extend(item.tx_signature for item in page.data.items)
            if page.data.next_before is None:
                break
            before = page.data.next_before
            before_signature = page.data.next_before_signature

        assert seen == sorted(signatures)

    @pytest.mark.asyncio
    async def test_signature_cursor_requires_time_cursor(self, history_service, payer):
        result = await history_service.list_sender_transactions(
            payer, before_signature="abc"
        )

        assert result.error_kind == PaymentErrorKind.INPUT

    @pytest.mark.asyncio
    async def test_sender_history_currency_filter(self, history_service, settle, payer):
        await settle(payer, "0.5", "SOL")
        usdc = await settle(payer, "2.5", "USDC")

        result = await history_service.list_sender_transactions(payer, currency="USDC")

        assert [item.tx_signature for item in result.data.items] == [usdc]
        assert result.data.items[0].amount == Decimal("2.5")

    @pytest.mark.asyncio
    async def test_sender_history_rejects_unknown_currency(self, history_service, payer):
        result = await history_service.list_sender_transactions(payer, currency="BTC")

        assert result.error_kind == PaymentErrorKind.INPUT

    @pytest.mark.asyncio
    async def test_merchant_recent_transactions(
        self, history_service, settle, merchant, payer
    ):
        signatures = [await settle(payer, "0.5", "SOL") for _ in range(6)]

        result = await history_service.list_merchant_transactions(merchant.id)

        assert [item.tx_signature for item in result.data] == signatures[::-1][:5]
