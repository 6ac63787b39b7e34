"""
Business constants for NearMe payments.

Central location for payment request rules shared by services, validators
and the API layer.
"""

from decimal import Decimal

# Supported settlement currencies
CURRENCY_SOL = "SOL"
CURRENCY_USDC = "USDC"
SUPPORTED_CURRENCIES = (CURRENCY_SOL, CURRENCY_USDC)

# Ledger-native precision per currency (lamports / micro-USDC)
CURRENCY_DECIMALS = {
    CURRENCY_SOL: 9,
    CURRENCY_USDC: 6,
}

# Payment request amount bounds
MIN_PAYMENT_AMOUNT_EXCLUSIVE = Decimal("0")
MAX_PAYMENT_AMOUNT = Decimal("1000000")

# Payment request lifetime: 10 minutes from creation
PAYMENT_REQUEST_TTL_SECONDS = 600

# Expiry sweep cadence and per-tick work bound
EXPIRY_SWEEP_INTERVAL_SECONDS = 60
EXPIRY_BATCH_SIZE = 100

# Transaction history page sizes
SENDER_HISTORY_PAGE_SIZE = 20
MERCHANT_RECENT_TRANSACTIONS = 5
HISTORY_MAX_PAGE_SIZE = 100
