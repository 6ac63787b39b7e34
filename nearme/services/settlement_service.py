"""
Settlement service.

Reconciles a ledger transaction claimed by the payer against a pending
payment request, then finalizes the request, the transaction record and
the merchant stats in one atomic commit.

Flow:
1. Validate caller and input
2. Load request, reject anything not pending
3. Past deadline: mark expired and stop
4. Reject signatures already recorded
5. Look the signature up on the ledger (timeout + retry), outside any
   database transaction
6. Check success, fee payer and recipient
7. Commit: request pending -> paid, insert record, increment stats
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.config.constants import (
    COMMIT_MAX_ATTEMPTS,
    LEDGER_MAX_RETRIES,
    LEDGER_RETRY_BACKOFF_BASE,
    LEDGER_TIMEOUT,
)
from nearme.models.enums import PaymentRequestStatus
from nearme.models.payment_request import PaymentRequest
from nearme.repositories.merchant_repository import MerchantRepository
from nearme.repositories.payment_request_repository import (
    PaymentRequestRepository,
)
from nearme.repositories.transaction_record_repository import (
    TransactionRecordRepository,
)
from nearme.services.base_service import (
    BaseService,
    PaymentErrorKind,
    PaymentResult,
)
from nearme.services.ledger import LedgerClient, LedgerTransaction, rpc_call_with_retry
from nearme.utils.datetime_utils import Clock, utc_now
from nearme.utils.db_decorators import run_in_transaction
from nearme.utils.exceptions import LEDGER_ERRORS
from nearme.utils.security import mask_address, mask_signature
from nearme.validators import (
    validate_identity,
    validate_record_id,
    validate_required,
    validate_tx_signature,
    validate_wallet_address,
)


@dataclass(frozen=True)
class SettlementReceipt:
    """Result of a successful settlement."""

    request_id: str
    tx_signature: str
    block_time: int | None


class SettlementAborted(Exception):
    """Raised inside the settlement commit to roll it back with a result."""

    def __init__(self, result: PaymentResult) -> None:
        super().__init__(result.error)
        self.result = result


class SettlementService(BaseService):
    """
    Settlement verifier.

    Every failure before the commit leaves the store untouched, except a
    request found past its deadline, which is marked expired. Failures of
    the ledger lookup are retryable by the caller.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        ledger_client: LedgerClient,
        clock: Clock = utc_now,
        ledger_timeout: float = LEDGER_TIMEOUT,
        ledger_max_retries: int = LEDGER_MAX_RETRIES,
        ledger_backoff_base: float = LEDGER_RETRY_BACKOFF_BASE,
        commit_max_attempts: int = COMMIT_MAX_ATTEMPTS,
    ) -> None:
        super().__init__(session_maker, clock)
        self.ledger_client = ledger_client
        self.ledger_timeout = ledger_timeout
        self.ledger_max_retries = ledger_max_retries
        self.ledger_backoff_base = ledger_backoff_base
        self.commit_max_attempts = commit_max_attempts

    async def fulfill_payment_request(
        self,
        request_id: str | None,
        tx_signature: str | None,
        sender_wallet: str | None,
        caller_identity: str | None,
    ) -> PaymentResult[SettlementReceipt]:
        """
        Verify a claimed ledger settlement and mark the request paid.

        Args:
            request_id: Payment request ID
            tx_signature: Ledger transaction signature claimed by payer
            sender_wallet: Wallet the payer claims to have paid from
            caller_identity: Authenticated caller

        Returns:
            PaymentResult with SettlementReceipt
        """
        valid, _, error = validate_identity(caller_identity)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.AUTH, error)

        valid, _, error = validate_required(
            requestId=request_id, txSignature=tx_signature, senderWallet=sender_wallet
        )
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, request_id, error = validate_record_id(request_id, "requestId")
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, signature, error = validate_tx_signature(tx_signature)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        valid, sender, error = validate_wallet_address(sender_wallet)
        if not valid:
            return PaymentResult.fail(PaymentErrorKind.INPUT, error)

        async with self.session_maker() as session:
            request = await PaymentRequestRepository(session).get_by_id(request_id)
            signature_used = await TransactionRecordRepository(
                session
            ).signature_exists(signature)

        if request is None:
            return PaymentResult.fail(
                PaymentErrorKind.NOT_FOUND, "Payment request not found"
            )

        if not request.is_pending:
            return self._status_conflict(request.status)

        now = self.clock()
        if request.is_past_deadline(now):
            return await self._expire_overdue(request)

        if signature_used:
            self.logger.warning(
                f"Signature {mask_signature(signature)} already recorded, "
                f"rejecting settlement of request {request.id}"
            )
            return PaymentResult.fail(
                PaymentErrorKind.CONFLICT,
                "Transaction signature already used for another payment",
            )

        verified = await self._verify_on_ledger(request, signature, sender)
        if not verified.success:
            return verified
        transaction: LedgerTransaction = verified.data

        return await self._commit_settlement(request, signature, transaction, sender)

    def _status_conflict(self, status: str | None) -> PaymentResult:
        return PaymentResult.fail(
            PaymentErrorKind.CONFLICT,
            f"Payment request already {status}",
            current_status=status,
        )

    async def _expire_overdue(self, request: PaymentRequest) -> PaymentResult:
        """Mark an overdue request expired; report the status it ended in."""

        async def expire(session: AsyncSession) -> str | None:
            repo = PaymentRequestRepository(session)
            if await repo.transition_status(
                request.id,
                PaymentRequestStatus.PENDING,
                PaymentRequestStatus.EXPIRED,
            ):
                return PaymentRequestStatus.EXPIRED.value
            return await repo.get_status(request.id)

        try:
            status = await run_in_transaction(
                self.session_maker,
                expire,
                max_attempts=self.commit_max_attempts,
                operation_name=f"Expiry of request {request.id}",
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to expire overdue request {request.id}: {e}")
            return PaymentResult.fail(
                PaymentErrorKind.INTERNAL, "Failed to update payment request"
            )

        if status != PaymentRequestStatus.EXPIRED:
            # Settled concurrently between our read and the expiry write
            return self._status_conflict(status)

        self.logger.info(
            f"Request {request.id} was past its deadline "
            f"({request.expires_at.isoformat()}), marked expired"
        )
        return PaymentResult.fail(
            PaymentErrorKind.EXPIRED,
            "Payment request expired",
            current_status=PaymentRequestStatus.EXPIRED.value,
        )

    async def _verify_on_ledger(
        self, request: PaymentRequest, signature: str, sender: str
    ) -> PaymentResult[LedgerTransaction]:
        """Look up the signature and check it pays the merchant from sender."""
        try:
            transaction = await rpc_call_with_retry(
                lambda: self.ledger_client.get_transaction(signature),
                max_retries=self.ledger_max_retries,
                timeout=self.ledger_timeout,
                operation_name=f"getTransaction({mask_signature(signature)})",
                backoff_base=self.ledger_backoff_base,
            )
        except LEDGER_ERRORS as e:
            self.logger.warning(
                f"Ledger lookup failed for request {request.id}: {e}"
            )
            return PaymentResult.fail(
                PaymentErrorKind.EXTERNAL_VERIFICATION,
                "Could not verify transaction on ledger, try again",
            )

        if transaction is None:
            return PaymentResult.fail(
                PaymentErrorKind.EXTERNAL_VERIFICATION,
                "Transaction not found on ledger",
            )

        if not transaction.succeeded:
            self.logger.warning(
                f"Transaction {mask_signature(signature)} failed on ledger: "
                f"{transaction.error}"
            )
            return PaymentResult.fail(
                PaymentErrorKind.EXTERNAL_VERIFICATION,
                "Settlement failed on ledger",
            )

        if transaction.initiator_account != sender:
            self.logger.warning(
                f"Sender mismatch for request {request.id}: claimed "
                f"{mask_address(sender)}, fee payer "
                f"{mask_address(transaction.initiator_account)}"
            )
            return PaymentResult.fail(
                PaymentErrorKind.EXTERNAL_VERIFICATION, "Sender mismatch"
            )

        if not transaction.involves(request.merchant_wallet):
            self.logger.warning(
                f"Recipient mismatch for request {request.id}: merchant wallet "
                f"{mask_address(request.merchant_wallet)} not in transaction"
            )
            return PaymentResult.fail(
                PaymentErrorKind.EXTERNAL_VERIFICATION, "Recipient mismatch"
            )

        return PaymentResult.ok(transaction)

    async def _commit_settlement(
        self,
        request: PaymentRequest,
        signature: str,
        transaction: LedgerTransaction,
        sender: str,
    ) -> PaymentResult[SettlementReceipt]:
        """Apply request update, record insert and stats increment as one unit."""

        async def commit(session: AsyncSession) -> SettlementReceipt:
            settled_at = self.clock()
            requests = PaymentRequestRepository(session)

            if not await requests.mark_paid(
                request.id,
                tx_signature=signature,
                sender_wallet=sender,
                paid_at=settled_at,
            ):
                current = await requests.get_status(request.id)
                raise SettlementAborted(self._status_conflict(current))

            await TransactionRecordRepository(session).create(
                tx_signature=signature,
                request_id=request.id,
                merchant_id=request.merchant_id,
                merchant_name=request.merchant_name,
                merchant_wallet=request.merchant_wallet,
                sender_wallet=sender,
                amount=request.amount,
                currency=request.currency,
                block_time=transaction.block_time,
                created_at=settled_at,
            )

            if not await MerchantRepository(session).increment_payment_stats(
                request.merchant_id,
                amount=request.amount,
                currency=request.currency,
                updated_at=settled_at,
            ):
                raise SettlementAborted(
                    PaymentResult.fail(
                        PaymentErrorKind.INTERNAL,
                        "Merchant record missing, settlement not recorded",
                    )
                )

            return SettlementReceipt(
                request_id=request.id,
                tx_signature=signature,
                block_time=transaction.block_time,
            )

        try:
            receipt = await run_in_transaction(
                self.session_maker,
                commit,
                max_attempts=self.commit_max_attempts,
                operation_name=f"Settlement of request {request.id}",
            )
        except SettlementAborted as aborted:
            self.logger.warning(
                f"Settlement of request {request.id} aborted: {aborted.result.error}"
            )
            return aborted.result
        except IntegrityError:
            self.logger.warning(
                f"Signature {mask_signature(signature)} already "
                f"recorded, settlement of request {request.id} rolled back"
            )
            return PaymentResult.fail(
                PaymentErrorKind.CONFLICT, "Settlement already recorded"
            )
        except SQLAlchemyError as e:
            self.logger.error(
                f"Settlement commit failed for request {request.id}: {e}"
            )
            return PaymentResult.fail(
                PaymentErrorKind.INTERNAL,
                "Failed to record settlement, try again",
            )

        self.logger.success(
            f"Request {request.id} settled: {request.amount} {request.currency} "
            f"from {mask_address(sender)} to merchant {request.merchant_id}, "
            f"tx {mask_signature(signature)}"
        )
        return PaymentResult.ok(receipt)
