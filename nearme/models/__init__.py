"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from nearme.models.base import Base
from nearme.models.enums import Currency, PaymentRequestStatus
from nearme.models.merchant import Merchant
from nearme.models.payment_request import PaymentRequest
from nearme.models.transaction_record import TransactionRecord

__all__ = [
    # Base
    "Base",
    # Enums
    "Currency",
    "PaymentRequestStatus",
    # Models
    "Merchant",
    "PaymentRequest",
    "TransactionRecord",
]
