"""
Enumerations for payment models.
"""

import enum


class PaymentRequestStatus(str, enum.Enum):
    """
    Payment request lifecycle status.

    pending -> paid | expired; paid and expired are terminal.
    """

    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"


class Currency(str, enum.Enum):
    """Settlement currency."""

    SOL = "SOL"
    USDC = "USDC"
