"""
Application constants.

Operational constants: ledger RPC timeouts, retry budgets, job limits.
"""

# ========================================================================
# LEDGER (SOLANA RPC) CONSTANTS
# ========================================================================

DEVNET_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_COMMITMENT = "confirmed"

# Ledger operation timeouts (in seconds)
LEDGER_TIMEOUT = 10.0  # Per-attempt timeout for getTransaction
LEDGER_HTTP_TIMEOUT = 30  # aiohttp total timeout for a single RPC POST

# Ledger retry settings
LEDGER_MAX_RETRIES = 3  # Attempts per lookup before giving up
LEDGER_RETRY_BACKOFF_BASE = 1.0  # Seconds; delays are base * 2**attempt

# ========================================================================
# STORE CONSTANTS
# ========================================================================

# Settlement unit of work is retried on transient store conflicts
COMMIT_MAX_ATTEMPTS = 3
COMMIT_RETRY_BACKOFF_BASE = 0.05  # Seconds

# ========================================================================
# DRAMATIQ TASK TIME LIMITS (milliseconds)
# ========================================================================

DRAMATIQ_TIME_LIMIT_SHORT = 60_000
DRAMATIQ_TIME_LIMIT_STANDARD = 300_000
