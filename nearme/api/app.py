"""
API application factory.

Wires services around an injected store handle and ledger client.
"""

from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.api import handlers
from nearme.api.middlewares import error_middleware, logging_middleware
from nearme.config.business_constants import PAYMENT_REQUEST_TTL_SECONDS
from nearme.config.constants import (
    COMMIT_MAX_ATTEMPTS,
    LEDGER_MAX_RETRIES,
    LEDGER_RETRY_BACKOFF_BASE,
    LEDGER_TIMEOUT,
)
from nearme.services import (
    MerchantStatsService,
    PaymentRequestService,
    SettlementService,
    TransactionHistoryService,
)
from nearme.services.ledger import LedgerClient
from nearme.utils.datetime_utils import Clock, utc_now


def create_app(
    session_maker: async_sessionmaker[AsyncSession],
    ledger_client: LedgerClient,
    clock: Clock = utc_now,
    caller_identity_header: str = "X-Caller-Identity",
    ttl_seconds: int = PAYMENT_REQUEST_TTL_SECONDS,
    ledger_timeout: float = LEDGER_TIMEOUT,
    ledger_max_retries: int = LEDGER_MAX_RETRIES,
    ledger_backoff_base: float = LEDGER_RETRY_BACKOFF_BASE,
    commit_max_attempts: int = COMMIT_MAX_ATTEMPTS,
) -> web.Application:
    """
    Create payment API application.

    Args:
        session_maker: Async session factory (store handle)
        ledger_client: Ledger lookup client
        clock: Returns current aware UTC datetime
        caller_identity_header: Header carrying the authenticated caller
        ttl_seconds: Payment request lifetime
        ledger_timeout: Per-attempt ledger lookup timeout
        ledger_max_retries: Ledger lookup attempts
        ledger_backoff_base: Ledger retry backoff base (seconds)
        commit_max_attempts: Settlement commit attempts on store conflicts

    Returns:
        Configured aiohttp application
    """
    app = web.Application(middlewares=[logging_middleware, error_middleware])

    app[handlers.CALLER_IDENTITY_HEADER] = caller_identity_header
    app[handlers.PAYMENT_REQUEST_SERVICE] = PaymentRequestService(
        session_maker, clock=clock, ttl_seconds=ttl_seconds
    )
    app[handlers.SETTLEMENT_SERVICE] = SettlementService(
        session_maker,
        ledger_client,
        clock=clock,
        ledger_timeout=ledger_timeout,
        ledger_max_retries=ledger_max_retries,
        ledger_backoff_base=ledger_backoff_base,
        commit_max_attempts=commit_max_attempts,
    )
    app[handlers.MERCHANT_STATS_SERVICE] = MerchantStatsService(
        session_maker, clock=clock
    )
    app[handlers.TRANSACTION_HISTORY_SERVICE] = TransactionHistoryService(
        session_maker, clock=clock
    )

    app.router.add_post("/payment-requests", handlers.create_payment_request)
    app.router.add_post(
        "/payment-requests/{request_id}/fulfill", handlers.fulfill_payment_request
    )
    app.router.add_get("/payment-requests/{request_id}", handlers.get_payment_request)
    app.router.add_get("/merchants/{merchant_id}/stats", handlers.get_merchant_stats)
    app.router.add_get(
        "/merchants/{merchant_id}/transactions", handlers.list_merchant_transactions
    )
    app.router.add_get("/transactions", handlers.list_sender_transactions)
    app.router.add_get("/health", handlers.health)

    return app
