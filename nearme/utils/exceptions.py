"""
Exception handling utilities.

Defines ledger exception types and categorizes store exceptions for
retry decisions.
"""

from sqlalchemy.exc import DBAPIError, OperationalError


class LedgerError(Exception):
    """Base exception for ledger lookup errors."""
    pass


class LedgerTimeoutError(LedgerError):
    """Raised when a ledger RPC call times out."""
    pass


class LedgerRPCError(LedgerError):
    """Raised when the ledger node answers with a JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


# SQLSTATE codes a retried transaction can resolve:
# serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

# Ledger lookup failures - settlement may be retried by the caller
LEDGER_ERRORS = (
    LedgerError,
    TimeoutError,
)


def _sqlstate(exc: DBAPIError) -> str | None:
    """Extract SQLSTATE from driver exception if it exposes one."""
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return None


def is_transient_db_error(exc: BaseException) -> bool:
    """
    Check if a store error is a conflict that retrying the unit of work can fix.

    Args:
        exc: Exception raised by the store

    Returns:
        True for lock timeouts, serialization failures and deadlocks
    """
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        return _sqlstate(exc) in TRANSIENT_SQLSTATES
    return False
