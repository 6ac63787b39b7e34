"""Integration tests for the expiry reaper."""

import pytest
from sqlalchemy.exc import OperationalError

from nearme.models import PaymentRequest
from nearme.repositories.payment_request_repository import PaymentRequestRepository
from nearme.services import ExpiryService, PaymentRequestService


@pytest.fixture
def request_service(session_maker, clock):
    return PaymentRequestService(session_maker, clock=clock)


@pytest.fixture
def reaper(session_maker, clock):
    return ExpiryService(session_maker, clock=clock)


async def open_requests(request_service, merchant, owner_identity, count):
    ids = []
    for _ in range(count):
        result = await request_service.create_payment_request(
            merchant.id, "0.5", "SOL", owner_identity
        )
        ids.append(result.data.request_id)
    return ids


async def statuses(session_maker, request_ids):
    async with session_maker() as session:
        return [
            (await session.get(PaymentRequest, request_id)).status
            for request_id in request_ids
        ]


class TestExpireStaleRequests:
    """Tests for ExpiryService.expire_stale_requests."""

    @pytest.mark.asyncio
    async def test_nothing_expires_before_deadline(
        self, reaper, request_service, session_maker, clock, merchant, owner_identity
    ):
        ids = await open_requests(request_service, merchant, owner_identity, 2)
        clock.advance(600)

        result = await reaper.expire_stale_requests()

        assert result.matched == 0
        assert await statuses(session_maker, ids) == ["pending", "pending"]

    @pytest.mark.asyncio
    async def test_expires_overdue_pending_requests(
        self, reaper, request_service, session_maker, clock, merchant, owner_identity
    ):
        old_ids = await open_requests(request_service, merchant, owner_identity, 2)
        clock.advance(300)
        fresh_ids = await open_requests(request_service, merchant, owner_identity, 1)
        clock.advance(301)

        result = await reaper.expire_stale_requests()

        assert result.matched == 2
        assert result.expired == 2
        assert result.skipped == 0
        assert await statuses(session_maker, old_ids) == ["expired", "expired"]
        assert await statuses(session_maker, fresh_ids) == ["pending"]

    @pytest.mark.asyncio
    async def test_batch_size_bounds_work_per_sweep(
        self, session_maker, request_service, clock, merchant, owner_identity
    ):
        ids = await open_requests(request_service, merchant, owner_identity, 3)
        clock.advance(601)
        reaper = ExpiryService(session_maker, clock=clock, batch_size=2)

        first = await reaper.expire_stale_requests()
        second = await reaper.expire_stale_requests()

        assert first.expired == 2
        assert second.expired == 1
        assert await statuses(session_maker, ids) == ["expired"] * 3

    @pytest.mark.asyncio
    async def test_request_settled_after_query_is_skipped(
        self, reaper, request_service, session_maker, clock, merchant,
        owner_identity, make_wallet, make_signature, monkeypatch,
    ):
        """Stale snapshot nominates a request that was paid meanwhile."""
        paid_id, stale_id = await open_requests(
            request_service, merchant, owner_identity, 2
        )
        clock.advance(601)

        async def stale_snapshot(self, now, limit):
            return [paid_id, stale_id]

        monkeypatch.setattr(
            PaymentRequestRepository, "find_expired_pending_ids", stale_snapshot
        )
        async with session_maker() as session:
            async with session.begin():
                assert await PaymentRequestRepository(session).mark_paid(
                    paid_id, make_signature(), make_wallet(), clock.now
                )

        result = await reaper.expire_stale_requests()

        assert result.matched == 2
        assert result.expired == 1
        assert result.skipped == 1
        assert await statuses(session_maker, [paid_id, stale_id]) == ["paid", "expired"]

    @pytest.mark.asyncio
    async def test_overlapping_sweeps_expire_once(
        self, reaper, request_service, session_maker, clock, merchant, owner_identity
    ):
        await open_requests(request_service, merchant, owner_identity, 3)
        clock.advance(601)

        first = await reaper.expire_stale_requests()
        second = await reaper.expire_stale_requests()

        assert first.expired == 3
        assert second.matched == 0

    @pytest.mark.asyncio
    async def test_query_failure_is_logged_not_raised(
        self, reaper, monkeypatch
    ):
        async def broken(self, now, limit):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(
            PaymentRequestRepository, "find_expired_pending_ids", broken
        )

        result = await reaper.expire_stale_requests()

        assert result.errors == 1
        assert result.expired == 0

    @pytest.mark.asyncio
    async def test_document_failure_does_not_stop_sweep(
        self, reaper, request_service, session_maker, clock, merchant,
        owner_identity, monkeypatch,
    ):
        failing_id, ok_id = await open_requests(
            request_service, merchant, owner_identity, 2
        )
        clock.advance(601)
        original = PaymentRequestRepository.expire_if_pending

        async def flaky(self, request_id, now):
            if request_id == failing_id:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return await original(self, request_id, now)

        monkeypatch.setattr(PaymentRequestRepository, "expire_if_pending", flaky)

        result = await reaper.expire_stale_requests()

        assert result.errors == 1
        assert result.expired == 1
        assert await statuses(session_maker, [failing_id, ok_id]) == ["pending", "expired"]
