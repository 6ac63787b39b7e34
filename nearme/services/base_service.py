"""
Base service class.

Provides the typed result container returned by every payment operation
and common functionality for service classes (store handle, clock,
logging with bound service context).
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.utils.datetime_utils import Clock, utc_now


T = TypeVar("T")


class PaymentErrorKind(str, enum.Enum):
    """Failure kinds of payment operations."""

    INPUT = "input"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    EXTERNAL_VERIFICATION = "external_verification"
    INTERNAL = "internal"


# Caller-facing error codes
CODE_UNAUTHENTICATED = "unauthenticated"
CODE_INVALID_ARGUMENT = "invalid-argument"
CODE_NOT_FOUND = "not-found"
CODE_PERMISSION_DENIED = "permission-denied"
CODE_FAILED_PRECONDITION = "failed-precondition"
CODE_INTERNAL = "internal"

_DEFAULT_CODES = {
    PaymentErrorKind.INPUT: CODE_INVALID_ARGUMENT,
    PaymentErrorKind.AUTH: CODE_UNAUTHENTICATED,
    PaymentErrorKind.NOT_FOUND: CODE_NOT_FOUND,
    PaymentErrorKind.CONFLICT: CODE_FAILED_PRECONDITION,
    PaymentErrorKind.EXPIRED: CODE_FAILED_PRECONDITION,
    PaymentErrorKind.EXTERNAL_VERIFICATION: CODE_FAILED_PRECONDITION,
    PaymentErrorKind.INTERNAL: CODE_INTERNAL,
}

# Kinds where nothing was written and the same call may succeed later
_RETRYABLE_KINDS = frozenset(
    {PaymentErrorKind.EXTERNAL_VERIFICATION, PaymentErrorKind.INTERNAL}
)


@dataclass
class PaymentResult(Generic[T]):
    """
    Standard payment operation result.

    Either ``success`` with ``data``, or a failure with ``error_kind``,
    caller-facing ``error_code``, message and optional details (for
    example ``current_status`` on conflicts).
    """
    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: PaymentErrorKind | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T) -> "PaymentResult[T]":
        """Build successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: PaymentErrorKind,
        message: str,
        code: str | None = None,
        **details: Any,
    ) -> "PaymentResult[T]":
        """
        Build failed result.

        Args:
            kind: Failure kind
            message: Human readable message
            code: Caller-facing code (defaults by kind)
            **details: Extra failure details

        Returns:
            Failed result
        """
        return cls(
            success=False,
            error=message,
            error_kind=kind,
            error_code=code or _DEFAULT_CODES[kind],
            details=details,
        )

    @property
    def retryable(self) -> bool:
        """Check if the caller may safely retry the same call."""
        return self.error_kind in _RETRYABLE_KINDS


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Store handle (session maker) passed by injection
    - Injectable clock
    - Logging with bound service context
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ) -> None:
        """
        Initialize base service.

        Args:
            session_maker: Async session factory (store handle)
            clock: Returns current aware UTC datetime
        """
        self.session_maker = session_maker
        self.clock = clock
        self.logger = logger.bind(service=self.__class__.__name__)
