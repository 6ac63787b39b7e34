"""
Expiry service.

Periodic sweep that finalizes pending payment requests whose deadline
has passed.
"""

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nearme.config.business_constants import EXPIRY_BATCH_SIZE
from nearme.repositories.payment_request_repository import (
    PaymentRequestRepository,
)
from nearme.services.base_service import BaseService
from nearme.utils.datetime_utils import Clock, utc_now


@dataclass
class ExpirySweepResult:
    """Counters of one sweep."""

    matched: int = 0
    expired: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "matched": self.matched,
            "expired": self.expired,
            "skipped": self.skipped,
            "errors": self.errors,
        }


class ExpiryService(BaseService):
    """
    Expiry reaper.

    The query only nominates candidates. Each candidate is expired by its
    own conditional write, committed on its own, which re-checks status and
    deadline, so a request settled after the query is skipped rather than
    overwritten. Overlapping sweeps are harmless for the same reason.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        batch_size: int = EXPIRY_BATCH_SIZE,
    ) -> None:
        super().__init__(session_maker, clock)
        self.batch_size = batch_size

    async def expire_stale_requests(self) -> ExpirySweepResult:
        """
        Expire pending requests past their deadline.

        Never raises for store errors; they are logged and counted, and
        the next sweep picks the same requests up again.

        Returns:
            ExpirySweepResult
        """
        result = ExpirySweepResult()
        now = self.clock()

        try:
            async with self.session_maker() as session:
                request_ids = await PaymentRequestRepository(
                    session
                ).find_expired_pending_ids(now, self.batch_size)
        except SQLAlchemyError as e:
            self.logger.error(f"Expiry sweep query failed: {e}")
            result.errors += 1
            return result

        result.matched = len(request_ids)
        if not request_ids:
            self.logger.debug("Expiry sweep: nothing to expire")
            return result

        for request_id in request_ids:
            try:
                async with self.session_maker() as session:
                    async with session.begin():
                        expired = await PaymentRequestRepository(
                            session
                        ).expire_if_pending(request_id, now)
            except SQLAlchemyError as e:
                self.logger.error(f"Failed to expire request {request_id}: {e}")
                result.errors += 1
                continue

            if expired:
                result.expired += 1
            else:
                result.skipped += 1
                self.logger.debug(
                    f"Request {request_id} left pending state before expiry, skipped"
                )

        self.logger.info(
            f"Expiry sweep complete: matched={result.matched}, "
            f"expired={result.expired}, skipped={result.skipped}, "
            f"errors={result.errors}"
        )
        return result
