"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask wallet addresses, ledger signatures
and caller identities.
"""


def mask_address(address: str | None) -> str:
    """
    Mask wallet address for logging: 7xKXtg...gAsU

    Args:
        address: Wallet address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")
        '7xKXtg...gAsU'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_signature(signature: str | None) -> str:
    """
    Mask ledger transaction signature for logging.

    Args:
        signature: Base58 transaction signature

    Returns:
        Masked signature showing first 10 and last 6 characters
    """
    if not signature or len(signature) < 16:
        return "***"
    return f"{signature[:10]}...{signature[-6:]}"


def mask_sensitive(value: str | None, show_chars: int = 4) -> str:
    """
    Mask sensitive string (caller identities, tokens).

    Examples:
        >>> mask_sensitive("my_secret_key_1234567890", show_chars=4)
        'my_s...7890'
        >>> mask_sensitive("short")
        '***'
    """
    if not value or len(value) <= show_chars * 2:
        return "***"
    return f"{value[:show_chars]}...{value[-show_chars:]}"
