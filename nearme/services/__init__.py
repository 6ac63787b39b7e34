"""
Services package.

Business logic of the payment request lifecycle.
"""

from nearme.services.base_service import (
    BaseService,
    PaymentErrorKind,
    PaymentResult,
)
from nearme.services.expiry_service import ExpiryService, ExpirySweepResult
from nearme.services.merchant_stats_service import MerchantStatsService
from nearme.services.payment_request_service import PaymentRequestService
from nearme.services.settlement_service import SettlementService
from nearme.services.transaction_history_service import (
    TransactionHistoryService,
)

__all__ = [
    "BaseService",
    "PaymentErrorKind",
    "PaymentResult",
    "ExpiryService",
    "ExpirySweepResult",
    "MerchantStatsService",
    "PaymentRequestService",
    "SettlementService",
    "TransactionHistoryService",
]
