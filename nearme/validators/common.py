"""
Common validators for payment input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

from decimal import Decimal, InvalidOperation

from loguru import logger
from solders.pubkey import Pubkey
from solders.signature import Signature

from nearme.config.business_constants import (
    CURRENCY_DECIMALS,
    MAX_PAYMENT_AMOUNT,
    MIN_PAYMENT_AMOUNT_EXCLUSIVE,
    SUPPORTED_CURRENCIES,
)


def validate_identity(value: str | None) -> tuple[bool, str | None, str | None]:
    """
    Validate caller identity set by the auth gateway.

    Args:
        value: Caller identity

    Returns:
        Tuple of (is_valid, stripped_identity, error_message)
    """
    if not value or not isinstance(value, str) or not value.strip():
        return False, None, "Authentication required"
    return True, value.strip(), None


def validate_required(**fields: object) -> tuple[bool, None, str | None]:
    """
    Check that all named fields are present.

    Args:
        **fields: Field values by name

    Returns:
        Tuple of (is_valid, None, error_message)

    Examples:
        >>> validate_required(merchantId="m1", amount=None)
        (False, None, 'Missing required field: amount')
    """
    for name, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            return False, None, f"Missing required field: {name}"
    return True, None, None


def validate_record_id(
    value: object, field_name: str
) -> tuple[bool, str | None, str | None]:
    """
    Validate opaque record ID (merchant, payment request).

    IDs are strings; numbers and other JSON types are rejected here
    rather than reaching the store driver.

    Args:
        value: ID to validate
        field_name: Field name for the error message

    Returns:
        Tuple of (is_valid, id, error_message)

    Examples:
        >>> validate_record_id(123, "merchantId")
        (False, None, 'merchantId must be a string')
    """
    if not isinstance(value, str):
        return False, None, f"{field_name} must be a string"
    return True, value, None


def validate_amount(value: object) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate payment amount.

    Accepts Decimal, int or numeric strings. Floats are converted through
    their shortest repr, so 0.1 becomes Decimal("0.1").

    Args:
        value: Amount to validate

    Returns:
        Tuple of (is_valid, parsed_amount, error_message)

    Examples:
        >>> validate_amount("0.5")
        (True, Decimal('0.5'), None)
        >>> validate_amount("0")
        (False, None, 'Amount must be greater than 0')
        >>> validate_amount("1000000.01")
        (False, None, 'Amount must not exceed 1000000')
    """
    if isinstance(value, bool):
        return False, None, "Amount must be a valid number"

    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return False, None, "Amount must be a valid number"

    if not amount.is_finite():
        return False, None, "Amount must be a valid number"

    if amount <= MIN_PAYMENT_AMOUNT_EXCLUSIVE:
        return False, None, "Amount must be greater than 0"

    if amount > MAX_PAYMENT_AMOUNT:
        return False, None, f"Amount must not exceed {MAX_PAYMENT_AMOUNT}"

    return True, amount, None


def validate_currency(value: object) -> tuple[bool, str | None, str | None]:
    """
    Validate settlement currency.

    Args:
        value: Currency code

    Returns:
        Tuple of (is_valid, currency, error_message)
    """
    if not isinstance(value, str) or value not in SUPPORTED_CURRENCIES:
        supported = ", ".join(SUPPORTED_CURRENCIES)
        return False, None, f"Currency must be one of: {supported}"
    return True, value, None


def validate_amount_precision(
    amount: Decimal, currency: str
) -> tuple[bool, Decimal | None, str | None]:
    """
    Check amount fits the currency's ledger precision.

    Args:
        amount: Parsed amount
        currency: Validated currency

    Returns:
        Tuple of (is_valid, amount, error_message)

    Examples:
        >>> validate_amount_precision(Decimal("1.1234567"), "USDC")
        (False, None, 'USDC amounts support at most 6 decimal places')
    """
    decimals = CURRENCY_DECIMALS[currency]
    exponent = amount.normalize().as_tuple().exponent
    if isinstance(exponent, int) and -exponent > decimals:
        return False, None, f"{currency} amounts support at most {decimals} decimal places"
    return True, amount, None


def validate_wallet_address(value: object) -> tuple[bool, str | None, str | None]:
    """
    Validate Solana wallet address (base58 32-byte public key).

    Args:
        value: Address to validate

    Returns:
        Tuple of (is_valid, address, error_message)
    """
    if not isinstance(value, str) or not value.strip():
        return False, None, "Wallet address is empty"

    address = value.strip()
    try:
        pubkey = Pubkey.from_string(address)
    except ValueError as e:
        logger.debug(f"Wallet address validation failed: {e}")
        return False, None, "Invalid wallet address format"

    return True, str(pubkey), None


def validate_tx_signature(value: object) -> tuple[bool, str | None, str | None]:
    """
    Validate Solana transaction signature (base58 64-byte signature).

    Args:
        value: Signature to validate

    Returns:
        Tuple of (is_valid, signature, error_message)
    """
    if not isinstance(value, str) or not value.strip():
        return False, None, "Transaction signature is empty"

    raw = value.strip()
    try:
        signature = Signature.from_string(raw)
    except ValueError as e:
        logger.debug(f"Transaction signature validation failed: {e}")
        return False, None, "Invalid transaction signature format"

    return True, str(signature), None
