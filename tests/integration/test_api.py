"""Integration tests for the HTTP API."""

from datetime import timedelta

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from nearme.api import create_app
from nearme.utils.datetime_utils import to_epoch_millis

IDENTITY_HEADER = "X-Caller-Identity"


@pytest_asyncio.fixture
async def client(session_maker, ledger, clock):
    app = create_app(session_maker, ledger, clock=clock, ledger_backoff_base=0)
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest.fixture
def auth(owner_identity):
    return {IDENTITY_HEADER: owner_identity}


async def create_request(client, auth, merchant, amount="0.5", currency="SOL"):
    response = await client.post(
        "/payment-requests",
        json={"merchantId": merchant.id, "amount": amount, "currency": currency},
        headers=auth,
    )
    assert response.status == 201
    return (await response.json())["requestId"]


class TestCreateEndpoint:
    """POST /payment-requests"""

    @pytest.mark.asyncio
    async def test_created_with_epoch_millis(self, client, auth, clock, merchant):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": merchant.id, "amount": "0.5", "currency": "SOL"},
            headers=auth,
        )

        assert response.status == 201
        body = await response.json()
        assert body["requestId"]
        assert body["expiresAtEpochMillis"] == to_epoch_millis(
            clock.now + timedelta(seconds=600)
        )

    @pytest.mark.asyncio
    async def test_numeric_amount_accepted(self, client, auth, merchant):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": merchant.id, "amount": 0.5, "currency": "SOL"},
            headers=auth,
        )

        assert response.status == 201

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers, payload, status, code",
        [
            ({}, {"amount": "1", "currency": "SOL"}, 401, "unauthenticated"),
            ({IDENTITY_HEADER: "intruder"}, {"amount": "1", "currency": "SOL"}, 403, "permission-denied"),
            ({IDENTITY_HEADER: "merchant-owner-uid"}, {"amount": "-1", "currency": "SOL"}, 400, "invalid-argument"),
        ],
    )
    async def test_error_mapping(self, client, merchant, headers, payload, status, code):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": merchant.id, **payload},
            headers=headers,
        )

        assert response.status == status
        body = await response.json()
        assert body["success"] is False
        assert body["error"]["code"] == code
        assert body["error"]["retryable"] is False

    @pytest.mark.asyncio
    async def test_numeric_merchant_id_is_400(self, client, auth, merchant):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": 123, "amount": "1", "currency": "SOL"},
            headers=auth,
        )

        assert response.status == 400
        error = (await response.json())["error"]
        assert error["code"] == "invalid-argument"
        assert error["retryable"] is False

    @pytest.mark.asyncio
    async def test_unknown_merchant_is_404(self, client, auth):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": "nobody", "amount": "1", "currency": "SOL"},
            headers=auth,
        )

        assert response.status == 404

    @pytest.mark.asyncio
    async def test_unaccepted_currency_is_409(self, client, auth, sol_only_merchant):
        response = await client.post(
            "/payment-requests",
            json={"merchantId": sol_only_merchant.id, "amount": "1", "currency": "USDC"},
            headers=auth,
        )

        assert response.status == 409
        assert (await response.json())["error"]["code"] == "failed-precondition"

    @pytest.mark.asyncio
    async def test_malformed_body_is_400(self, client, auth):
        response = await client.post(
            "/payment-requests",
            data="not json",
            headers={**auth, "Content-Type": "application/json"},
        )

        assert response.status == 400
        assert (await response.json())["error"]["code"] == "invalid-argument"


class TestFulfillEndpoint:
    """POST /payment-requests/{id}/fulfill"""

    @pytest.mark.asyncio
    async def test_fulfill_then_conflict(
        self, client, auth, ledger, clock, merchant, make_wallet, make_signature
    ):
        request_id = await create_request(client, auth, merchant)
        sender, signature = make_wallet(), make_signature()
        ledger.add_transfer(signature, sender, merchant.wallet_address, block_time=1792150123)
        clock.advance(30)
        payload = {"txSignature": signature, "senderWallet": sender}

        first = await client.post(
            f"/payment-requests/{request_id}/fulfill", json=payload, headers=auth
        )
        second = await client.post(
            f"/payment-requests/{request_id}/fulfill", json=payload, headers=auth
        )

        assert first.status == 200
        assert await first.json() == {
            "success": True,
            "txSignature": signature,
            "blockTime": 1792150123,
        }
        assert second.status == 409
        error = (await second.json())["error"]
        assert error["code"] == "failed-precondition"
        assert error["currentStatus"] == "paid"

    @pytest.mark.asyncio
    async def test_unverifiable_is_retryable(
        self, client, auth, merchant, make_wallet, make_signature
    ):
        request_id = await create_request(client, auth, merchant)

        response = await client.post(
            f"/payment-requests/{request_id}/fulfill",
            json={"txSignature": make_signature(), "senderWallet": make_wallet()},
            headers=auth,
        )

        assert response.status == 409
        error = (await response.json())["error"]
        assert error["kind"] == "external_verification"
        assert error["retryable"] is True

    @pytest.mark.asyncio
    async def test_expired_request(
        self, client, auth, ledger, clock, merchant, make_wallet, make_signature
    ):
        request_id = await create_request(client, auth, merchant)
        sender, signature = make_wallet(), make_signature()
        ledger.add_transfer(signature, sender, merchant.wallet_address)
        clock.advance(601)

        response = await client.post(
            f"/payment-requests/{request_id}/fulfill",
            json={"txSignature": signature, "senderWallet": sender},
            headers=auth,
        )

        assert response.status == 409
        error = (await response.json())["error"]
        assert error["kind"] == "expired"
        assert error["currentStatus"] == "expired"


class TestReadEndpoints:
    """GET endpoints."""

    @pytest.mark.asyncio
    async def test_get_payment_request(self, client, auth, merchant):
        request_id = await create_request(client, auth, merchant, amount="1.25", currency="USDC")

        response = await client.get(f"/payment-requests/{request_id}")

        assert response.status == 200
        body = await response.json()
        assert body["requestId"] == request_id
        assert body["amount"] == "1.25"
        assert body["currency"] == "USDC"
        assert body["status"] == "pending"
        assert body["txSignature"] is None

    @pytest.mark.asyncio
    async def test_get_unknown_request_is_404(self, client):
        response = await client.get("/payment-requests/missing")

        assert response.status == 404

    @pytest.mark.asyncio
    async def test_stats_and_history_after_settlement(
        self, client, auth, ledger, clock, merchant, make_wallet, make_signature
    ):
        request_id = await create_request(client, auth, merchant, amount="0.25")
        sender, signature = make_wallet(), make_signature()
        ledger.add_transfer(signature, sender, merchant.wallet_address)
        clock.advance(5)
        fulfilled = await client.post(
            f"/payment-requests/{request_id}/fulfill",
            json={"txSignature": signature, "senderWallet": sender},
            headers=auth,
        )
        assert fulfilled.status == 200

        stats = await (await client.get(f"/merchants/{merchant.id}/stats")).json()
        assert stats["totalPaymentsCount"] == 1
        assert stats["totalVolume"] == {"SOL": "0.25", "USDC": "0"}
        assert stats["lastUpdatedAt"] == clock.now.isoformat()

        recent = await (
            await client.get(f"/merchants/{merchant.id}/transactions", params={"limit": "5"})
        ).json()
        assert [tx["txSignature"] for tx in recent["transactions"]] == [signature]

        history = await (
            await client.get("/transactions", params={"senderWallet": sender})
        ).json()
        assert history["transactions"][0]["requestId"] == request_id
        assert history["transactions"][0]["amount"] == "0.25"
        assert history["nextBefore"] is None
        assert history["nextBeforeSignature"] is None

    @pytest.mark.asyncio
    async def test_bad_query_params_are_400(self, client, merchant):
        limit = await client.get(
            f"/merchants/{merchant.id}/transactions", params={"limit": "many"}
        )
        before = await client.get(
            "/transactions", params={"senderWallet": "x", "before": "yesterday"}
        )

        assert limit.status == 400
        assert before.status == 400

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status == 200
        assert (await response.json())["alive"] is True
