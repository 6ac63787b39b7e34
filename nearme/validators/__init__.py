"""
Validators package.

Provides common validation functions for payment input.
"""

from nearme.validators.common import (
    validate_amount,
    validate_amount_precision,
    validate_currency,
    validate_identity,
    validate_record_id,
    validate_required,
    validate_tx_signature,
    validate_wallet_address,
)


__all__ = [
    "validate_identity",
    "validate_required",
    "validate_record_id",
    "validate_amount",
    "validate_currency",
    "validate_amount_precision",
    "validate_wallet_address",
    "validate_tx_signature",
]
