"""
HTTP handlers for the payment API.

Thin translation between JSON requests and service calls. Services return
PaymentResult values; failures are rendered with an HTTP status derived
from their caller-facing code.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from aiohttp import web

from nearme.services.base_service import (
    CODE_FAILED_PRECONDITION,
    CODE_INTERNAL,
    CODE_INVALID_ARGUMENT,
    CODE_NOT_FOUND,
    CODE_PERMISSION_DENIED,
    CODE_UNAUTHENTICATED,
    PaymentErrorKind,
    PaymentResult,
)
from nearme.services.merchant_stats_service import MerchantStatsService
from nearme.services.payment_request_service import (
    PaymentRequestService,
    PaymentRequestView,
)
from nearme.services.settlement_service import SettlementService
from nearme.services.transaction_history_service import (
    TransactionHistoryService,
    TransactionView,
)
from nearme.utils.datetime_utils import ensure_utc, to_epoch_millis

# Application keys
PAYMENT_REQUEST_SERVICE = web.AppKey("payment_request_service", PaymentRequestService)
SETTLEMENT_SERVICE = web.AppKey("settlement_service", SettlementService)
MERCHANT_STATS_SERVICE = web.AppKey("merchant_stats_service", MerchantStatsService)
TRANSACTION_HISTORY_SERVICE = web.AppKey(
    "transaction_history_service", TransactionHistoryService
)
CALLER_IDENTITY_HEADER = web.AppKey("caller_identity_header", str)

HTTP_STATUS_BY_CODE = {
    CODE_INVALID_ARGUMENT: 400,
    CODE_UNAUTHENTICATED: 401,
    CODE_PERMISSION_DENIED: 403,
    CODE_NOT_FOUND: 404,
    CODE_FAILED_PRECONDITION: 409,
    CODE_INTERNAL: 500,
}


def _decimal(value: Decimal) -> str:
    """Render amount without exponent or trailing zeros."""
    return format(value.normalize(), "f")


def _iso(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value is not None else None


def error_response(
    code: str,
    message: str,
    kind: PaymentErrorKind | None = None,
    retryable: bool = False,
    current_status: str | None = None,
) -> web.Response:
    """Build JSON error response."""
    error: dict[str, Any] = {
        "code": code,
        "kind": kind.value if kind else None,
        "message": message,
        "retryable": retryable,
    }
    if current_status is not None:
        error["currentStatus"] = current_status

    return web.json_response(
        {"success": False, "error": error},
        status=HTTP_STATUS_BY_CODE.get(code, 500),
    )


def result_error_response(result: PaymentResult) -> web.Response:
    """Render failed PaymentResult."""
    return error_response(
        code=result.error_code or CODE_INTERNAL,
        message=result.error or "Unknown error",
        kind=result.error_kind,
        retryable=result.retryable,
        current_status=result.details.get("current_status"),
    )


def invalid_argument(message: str) -> web.Response:
    return error_response(
        CODE_INVALID_ARGUMENT, message, kind=PaymentErrorKind.INPUT
    )


async def _json_body(request: web.Request) -> dict[str, Any] | None:
    """Parse JSON object body, None if malformed."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _caller_identity(request: web.Request) -> str | None:
    return request.headers.get(request.app[CALLER_IDENTITY_HEADER])


def _int_query(request: web.Request, name: str) -> tuple[bool, int | None]:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return True, None
    try:
        return True, int(raw)
    except ValueError:
        return False, None


def _payment_request_payload(view: PaymentRequestView) -> dict[str, Any]:
    return {
        "requestId": view.request_id,
        "merchantId": view.merchant_id,
        "merchantName": view.merchant_name,
        "merchantWallet": view.merchant_wallet,
        "amount": _decimal(view.amount),
        "currency": view.currency,
        "status": view.status,
        "createdAt": _iso(view.created_at),
        "expiresAt": _iso(view.expires_at),
        "expiresAtEpochMillis": to_epoch_millis(view.expires_at),
        "paidAt": _iso(view.paid_at),
        "txSignature": view.tx_signature,
        "senderWallet": view.sender_wallet,
    }


def _transaction_payload(view: TransactionView) -> dict[str, Any]:
    return {
        "txSignature": view.tx_signature,
        "requestId": view.request_id,
        "merchantId": view.merchant_id,
        "merchantName": view.merchant_name,
        "merchantWallet": view.merchant_wallet,
        "senderWallet": view.sender_wallet,
        "amount": _decimal(view.amount),
        "currency": view.currency,
        "blockTime": view.block_time,
        "createdAt": _iso(view.created_at),
    }


async def create_payment_request(request: web.Request) -> web.Response:
    """POST /payment-requests"""
    body = await _json_body(request)
    if body is None:
        return invalid_argument("Request body must be a JSON object")

    result = await request.app[PAYMENT_REQUEST_SERVICE].create_payment_request(
        merchant_id=body.get("merchantId"),
        amount=body.get("amount"),
        currency=body.get("currency"),
        caller_identity=_caller_identity(request),
    )
    if not result.success:
        return result_error_response(result)

    return web.json_response(
        {
            "requestId": result.data.request_id,
            "expiresAtEpochMillis": to_epoch_millis(result.data.expires_at),
        },
        status=201,
    )


async def fulfill_payment_request(request: web.Request) -> web.Response:
    """POST /payment-requests/{request_id}/fulfill"""
    body = await _json_body(request)
    if body is None:
        return invalid_argument("Request body must be a JSON object")

    result = await request.app[SETTLEMENT_SERVICE].fulfill_payment_request(
        request_id=request.match_info["request_id"],
        tx_signature=body.get("txSignature"),
        sender_wallet=body.get("senderWallet"),
        caller_identity=_caller_identity(request),
    )
    if not result.success:
        return result_error_response(result)

    return web.json_response(
        {
            "success": True,
            "txSignature": result.data.tx_signature,
            "blockTime": result.data.block_time,
        }
    )


async def get_payment_request(request: web.Request) -> web.Response:
    """GET /payment-requests/{request_id}"""
    result = await request.app[PAYMENT_REQUEST_SERVICE].get_payment_request(
        request.match_info["request_id"]
    )
    if not result.success:
        return result_error_response(result)

    return web.json_response(_payment_request_payload(result.data))


async def get_merchant_stats(request: web.Request) -> web.Response:
    """GET /merchants/{merchant_id}/stats"""
    result = await request.app[MERCHANT_STATS_SERVICE].get_merchant_stats(
        request.match_info["merchant_id"]
    )
    if not result.success:
        return result_error_response(result)

    stats = result.data
    return web.json_response(
        {
            "merchantId": stats.merchant_id,
            "totalPaymentsCount": stats.total_payments_count,
            "totalVolume": {
                currency: _decimal(volume)
                for currency, volume in stats.total_volume.items()
            },
            "lastUpdatedAt": _iso(stats.last_updated_at),
        }
    )


async def list_merchant_transactions(request: web.Request) -> web.Response:
    """GET /merchants/{merchant_id}/transactions?limit="""
    ok, limit = _int_query(request, "limit")
    if not ok:
        return invalid_argument("limit must be an integer")

    service = request.app[TRANSACTION_HISTORY_SERVICE]
    if limit is None:
        result = await service.list_merchant_transactions(
            request.match_info["merchant_id"]
        )
    else:
        result = await service.list_merchant_transactions(
            request.match_info["merchant_id"], limit=limit
        )
    if not result.success:
        return result_error_response(result)

    return web.json_response(
        {"transactions": [_transaction_payload(view) for view in result.data]}
    )


async def list_sender_transactions(request: web.Request) -> web.Response:
    """GET /transactions?senderWallet=&currency=&limit=&before=&beforeSignature="""
    ok, limit = _int_query(request, "limit")
    if not ok:
        return invalid_argument("limit must be an integer")

    before = None
    raw_before = request.query.get("before")
    if raw_before:
        try:
            before = ensure_utc(datetime.fromisoformat(raw_before))
        except ValueError:
            return invalid_argument("before must be an ISO 8601 timestamp")

    service = request.app[TRANSACTION_HISTORY_SERVICE]
    kwargs: dict[str, Any] = {
        "currency": request.query.get("currency") or None,
        "before": before,
        "before_signature": request.query.get("beforeSignature") or None,
    }
    if limit is not None:
        kwargs["limit"] = limit

    result = await service.list_sender_transactions(
        request.query.get("senderWallet"), **kwargs
    )
    if not result.success:
        return result_error_response(result)

    page = result.data
    return web.json_response(
        {
            "transactions": [_transaction_payload(view) for view in page.items],
            "nextBefore": _iso(page.next_before),
            "nextBeforeSignature": page.next_before_signature,
        }
    )


async def health(request: web.Request) -> web.Response:
    """GET /health"""
    return web.json_response({"status": "alive", "alive": True})
