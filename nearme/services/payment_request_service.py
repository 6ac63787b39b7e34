"""
Payment request service.

Opens new payment requests for merchants and serves read-only request
views for payers.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.config.business_constants import PAYMENT_REQUEST_TTL_SECONDS
from nearme.models.enums import PaymentRequestStatus
from nearme.models.payment_request import PaymentRequest
from nearme.repositories.merchant_repository import MerchantRepository
from nearme.repositories.payment_request_repository import (
    PaymentRequestRepository,
)
from nearme.services.base_service import (
    CODE_FAILED_PRECONDITION,
    CODE_PERMISSION_DENIED,
    BaseService,
    PaymentErrorKind,
    PaymentResult,
)
from nearme.utils.datetime_utils import Clock, utc_now
from nearme.utils.security import mask_sensitive
from nearme.validators import (
    validate_amount,
    validate_amount_precision,
    validate_currency,
    validate_identity,
    validate_record_id,
    validate_required,
)


@dataclass(frozen=True)
class CreatedPaymentRequest:
    """Identity and deadline of a newly opened request."""

    request_id: str
    expires_at: datetime


@dataclass(frozen=True)
class PaymentRequestView:
    """Read-only snapshot of a payment request."""

    request_id: str
    merchant_id: str
    merchant_name: str
    merchant_wallet: str
    amount: Decimal
    currency: str
    status: str
    created_at: datetime
    expires_at: datetime
    paid_at: datetime | None
    tx_signature: str | None
    sender_wallet: str | None

    @classmethod
    def from_model(cls, request: PaymentRequest) -> "PaymentRequestView":
        return cls(
            request_id=request.id,
            merchant_id=request.merchant_id,
            merchant_name=request.merchant_name,
            merchant_wallet=request.merchant_wallet,
            amount=request.amount,
            currency=request.currency,
            status=request.status,
            created_at=request.created_at,
            expires_at=request.expires_at,
            paid_at=request.paid_at,
            tx_signature=request.tx_signature,
            sender_wallet=request.sender_wallet,
        )


class PaymentRequestService(BaseService):
    """
    Payment request creation.

    Validation runs in a fixed order and stops at the first failure, so
    callers always get the same error kind for the same bad input.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        ttl_seconds: int = PAYMENT_REQUEST_TTL_SECONDS,
    ) -> None:
        super().__init__(session_maker, clock)
        self.ttl_seconds = ttl_seconds

    async def create_payment_request(
        self,
        merchant_id: str | None,
        amount: object,
        currency: object,
        caller_identity: str | None,
    ) -> PaymentResult[CreatedPaymentRequest]:
        """
        Open a pending payment request.

        Args:
            merchant_id: Merchant billing the payer
            amount: Requested amount
            currency: SOL or USDC
            caller_identity: Authenticated caller

        Returns:
            PaymentResult with CreatedPaymentRequest
        """
        valid, caller, error = validate_identity(caller_identity)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.AUTH, error)

        valid, _, error = validate_required(
            merchantId=merchant_id, amount=amount, currency=currency
        )
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, merchant_id, error = validate_record_id(merchant_id, "merchantId")
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, parsed_amount, error = validate_amount(amount)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, parsed_currency, error = validate_currency(currency)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, _, error = validate_amount_precision(parsed_amount, parsed_currency)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        async with self.session_maker() as session:
            async with session.begin():
                merchant = await MerchantRepository(session).get_by_id(merchant_id)
                if merchant is None:
                    return PaymentResult.fail(
                        PaymentErrorKind.NOT_FOUND, "Merchant not found"
                    )

                if merchant.owner_identity != caller:
                    self.logger.warning(
                        f"Caller {mask_sensitive(caller)} tried to bill for merchant {merchant.id}"
                    )
                    return PaymentResult.fail(
                        PaymentErrorKind.AUTH,
                        "Not authorized for this merchant",
                        code=CODE_PERMISSION_DENIED,
                    )

                if not merchant.accepts(parsed_currency):
                    return PaymentResult.fail(
                        PaymentErrorKind.CONFLICT,
                        f"Merchant does not accept {parsed_currency}",
                        code=CODE_FAILED_PRECONDITION,
                    )

                created_at = self.clock()
                request = await PaymentRequestRepository(session).create(
                    merchant_id=merchant.id,
                    merchant_name=merchant.name,
                    merchant_wallet=merchant.wallet_address,
                    amount=parsed_amount,
                    currency=parsed_currency,
                    status=PaymentRequestStatus.PENDING.value,
                    created_at=created_at,
                    expires_at=PaymentRequest.calculate_expiry(
                        created_at, self.ttl_seconds
                    ),
                )
                result = CreatedPaymentRequest(
                    request_id=request.id, expires_at=request.expires_at
                )

        self.logger.info(
            f"Payment request {result.request_id} created: "
            f"merchant={merchant_id}, amount={parsed_amount} {parsed_currency}, "
            f"expires_at={result.expires_at.isoformat()}"
        )
        return PaymentResult.ok(result)

    async def get_payment_request(
        self, request_id: str | None
    ) -> PaymentResult[PaymentRequestView]:
        """
        Get payment request view.

        Args:
            request_id: Payment request ID

        Returns:
            PaymentResult with PaymentRequestView
        """
        if not request_id:
            return PaymentResult.fail(
                PaymentErrorKind.INPUT, "Missing required field: requestId"
            )

        async with self.session_maker() as session:
            request = await PaymentRequestRepository(session).get_by_id(request_id)

        if request is None:
            return PaymentResult.fail(
                PaymentErrorKind.NOT_FOUND, "Payment request not found"
            )

        return PaymentResult.ok(PaymentRequestView.from_model(request))
