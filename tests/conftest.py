"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for settings validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SOLANA_RPC_URL", "https://api.devnet.solana.com")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import UTC, datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from solders.keypair import Keypair  # noqa: E402

from nearme.config.database import create_engine, create_session_maker  # noqa: E402
from nearme.models import Base, Merchant  # noqa: E402
from nearme.services.ledger import LedgerTransaction  # noqa: E402

START_TIME = datetime(2026, 10, 16, 12, 0, 0, tzinfo=UTC)
OWNER_IDENTITY = "merchant-owner-uid"


def new_wallet() -> str:
    """Fresh base58 Solana public key."""
    return str(Keypair().pubkey())


def new_signature() -> str:
    """Fresh base58 Solana transaction signature."""
    return str(Keypair().sign_message(b"nearme-settlement"))


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeLedger:
    """In-memory ledger client."""

    def __init__(self) -> None:
        self.transactions: dict[str, LedgerTransaction] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    def add_transfer(
        self,
        signature: str,
        sender: str,
        recipient: str,
        succeeded: bool = True,
        block_time: int | None = 1792150000,
    ) -> LedgerTransaction:
        transaction = LedgerTransaction(
            signature=signature,
            succeeded=succeeded,
            initiator_account=sender,
            participant_accounts=(sender, recipient, "11111111111111111111111111111111"),
            block_time=block_time,
            slot=312_000_000,
            error=None if succeeded else {"InstructionError": [0, "Custom"]},
        )
        self.transactions[signature] = transaction
        return transaction

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        self.calls.append(signature)
        if self.error is not None:
            raise self.error
        return self.transactions.get(signature)


@pytest.fixture
def clock():
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def ledger():
    """Empty fake ledger."""
    return FakeLedger()


@pytest_asyncio.fixture
async def engine(tmp_path):
    """SQLite database file with all tables, one per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'nearme.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Store handle bound to the test database."""
    return create_session_maker(engine)


@pytest.fixture
def merchant_wallet():
    return new_wallet()


@pytest_asyncio.fixture
async def merchant(session_maker, merchant_wallet):
    """Merchant accepting SOL and USDC, owned by OWNER_IDENTITY."""
    async with session_maker() as session:
        async with session.begin():
            merchant = Merchant(
                id="merchant-1",
                name="Corner Coffee",
                category="cafe",
                wallet_address=merchant_wallet,
                owner_identity=OWNER_IDENTITY,
                accepts_sol=True,
                accepts_usdc=True,
                is_active=True,
                total_payments_count=0,
                total_volume_sol=Decimal("0"),
                total_volume_usdc=Decimal("0"),
            )
            session.add(merchant)
    return merchant


@pytest_asyncio.fixture
async def sol_only_merchant(session_maker):
    """Merchant that does not accept USDC."""
    async with session_maker() as session:
        async with session.begin():
            merchant = Merchant(
                id="merchant-sol-only",
                name="Street Tacos",
                wallet_address=new_wallet(),
                owner_identity=OWNER_IDENTITY,
                accepts_sol=True,
                accepts_usdc=False,
            )
            session.add(merchant)
    return merchant


@pytest.fixture
def make_wallet():
    """Factory of fresh wallet addresses."""
    return new_wallet


@pytest.fixture
def make_signature():
    """Factory of fresh transaction signatures."""
    return new_signature


@pytest.fixture
def owner_identity():
    return OWNER_IDENTITY
