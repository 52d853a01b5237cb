"""
PinRequest repository.

Data access layer for PinRequest model.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.enums import PinRequestStatus
from commission_engine.models.pin_request import PinRequest
from commission_engine.repositories.base import BaseRepository
from commission_engine.utils.datetime_utils import utc_now


class PinRequestRepository(BaseRepository[PinRequest]):
    """PinRequest repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize pin request repository."""
        super().__init__(PinRequest, session)

    async def get_pending_for_promoter(
        self, promoter_id: int
    ) -> PinRequest | None:
        """Open request of a promoter, if any."""
        return await self.get_by(
            promoter_id=promoter_id,
            status=PinRequestStatus.PENDING.value,
        )

    async def find_requests(
        self,
        promoter_id: int | None = None,
        status: PinRequestStatus | None = None,
        limit: int = 50,
    ) -> list[PinRequest]:
        """
        Requests matching the given filters, oldest first.

        Args:
            promoter_id: Requesting promoter (None = any)
            status: Request status (None = any)
            limit: Max number of requests

        Returns:
            Matching requests
        """
        filters: dict[str, object] = {}
        if promoter_id is not None:
            filters["promoter_id"] = promoter_id
        if status is not None:
            filters["status"] = status.value
        return await self.find_by(limit=limit, **filters)

    async def mark_reviewed(
        self,
        request_id: int,
        status: PinRequestStatus,
        reviewed_by: int,
        review_note: str | None = None,
    ) -> bool:
        """
        Move a pending request to a final status.

        Conditional on the request still being pending, so two reviewers
        can never both act on it.

        Returns:
            True if this call performed the transition
        """
        stmt = (
            update(PinRequest)
            .where(
                PinRequest.id == request_id,
                PinRequest.status == PinRequestStatus.PENDING.value,
            )
            .values(
                status=status.value,
                reviewed_by=reviewed_by,
                review_note=review_note,
                reviewed_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
