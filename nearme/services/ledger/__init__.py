"""Ledger access: Solana client plus timeout/retry wrapper."""

from nearme.services.ledger.client import (
    LedgerClient,
    LedgerTransaction,
    SolanaLedgerClient,
    parse_transaction,
)
from nearme.services.ledger.rpc_wrapper import rpc_call_with_retry, with_timeout

__all__ = [
    "LedgerClient",
    "LedgerTransaction",
    "SolanaLedgerClient",
    "parse_transaction",
    "rpc_call_with_retry",
    "with_timeout",
]
