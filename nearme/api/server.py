"""
API server entry point.

Runs the payment API with the configured database and Solana RPC node.
"""

from aiohttp import web
from loguru import logger

from nearme.api.app import create_app
from nearme.config.database import create_engine, create_session_maker
from nearme.config.logging import setup_logging
from nearme.config.settings import settings
from nearme.services.ledger import SolanaLedgerClient


def build_app() -> web.Application:
    """Create application wired to settings, with resource cleanup."""
    engine = create_engine()
    session_maker = create_session_maker(engine)
    ledger_client = SolanaLedgerClient(
        settings.solana_rpc_url,
        commitment=settings.solana_commitment,
    )

    app = create_app(
        session_maker,
        ledger_client,
        caller_identity_header=settings.caller_identity_header,
        ttl_seconds=settings.payment_request_ttl_seconds,
        ledger_timeout=settings.ledger_timeout_seconds,
        ledger_max_retries=settings.ledger_max_retries,
        ledger_backoff_base=settings.ledger_retry_backoff_base,
        commit_max_attempts=settings.commit_max_attempts,
    )

    async def on_cleanup(_: web.Application) -> None:
        logger.info("Closing ledger client and database engine...")
        await ledger_client.close()
        await engine.dispose()

    app.on_cleanup.append(on_cleanup)
    return app


def main() -> None:
    """Run API server."""
    setup_logging("api")
    logger.info(f"Ledger RPC: {settings.solana_rpc_url} ({settings.solana_commitment})")
    web.run_app(
        build_app(),
        host=settings.api_host,
        port=settings.api_port,
        print=None,
    )


if __name__ == "__main__":
    main()
