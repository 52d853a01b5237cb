"""
Pin request service.

Promoters ask for more pins; administrators approve (pins are allocated
through the quota gate) or reject.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.settings import Settings, settings
from commission_engine.models.enums import PinActionType, PinRequestStatus
from commission_engine.models.pin_request import PinRequest
from commission_engine.repositories.pin_request_repository import (
    PinRequestRepository,
)
from commission_engine.repositories.promoter_repository import (
    PromoterRepository,
)
from commission_engine.services.pins.quota_gate import (
    PinAdjustment,
    PinQuotaGate,
)
from commission_engine.utils.db_decorators import with_rollback_on_error
from commission_engine.utils.exceptions import PinRequestError, ValidationError
from commission_engine.validators import (
    require_entity_id,
    validate_pin_quantity,
)


class PinRequestService:
    """Pin request workflow."""

    def __init__(
        self, session: AsyncSession, config: Settings | None = None
    ) -> None:
        """Initialize pin request service."""
        self.session = session
        self.config = config or settings
        self.request_repo = PinRequestRepository(session)
        self.promoter_repo = PromoterRepository(session)
        self.quota_gate = PinQuotaGate(session)

    @with_rollback_on_error
    async def submit(
        self, promoter_id: int, quantity: int, reason: str | None = None
    ) -> PinRequest:
        """
        Create a pending request.

        Raises:
            ValidationError: bad quantity or unknown promoter
            PinRequestError: promoter already has a pending request
        """
        promoter_id = require_entity_id(promoter_id, "promoter_id")
        is_valid, quantity, error = validate_pin_quantity(
            quantity, self.config.pin_request_max_quantity
        )
        if not is_valid:
            raise ValidationError(error)

        if not await self.promoter_repo.exists(id=promoter_id):
            raise ValidationError(f"Promoter {promoter_id} not found")

        if await self.request_repo.get_pending_for_promoter(promoter_id):
            raise PinRequestError(
                f"Promoter {promoter_id} already has a pending pin request"
            )

        request = await self.request_repo.create(
            promoter_id=promoter_id,
            quantity=quantity,
            reason=reason.strip() if reason else None,
        )
        await self.session.commit()

        logger.info(
            "Pin request submitted",
            extra={
                "request_id": request.id,
                "promoter_id": promoter_id,
                "quantity": quantity,
            },
        )
        return request

    async def _require_admin(self, admin_id: int) -> int:
        admin_id = require_entity_id(admin_id, "admin_id")
        if not await self.promoter_repo.is_admin(admin_id):
            raise ValidationError(
                f"Promoter {admin_id} is not allowed to review pin requests"
            )
        return admin_id

    async def _review(
        self,
        request_id: int,
        admin_id: int,
        status: PinRequestStatus,
        review_note: str | None = None,
    ) -> PinRequest:
        request = await self.request_repo.get_by_id(request_id)
        if request is None:
            raise ValidationError(f"Pin request {request_id} not found")

        transitioned = await self.request_repo.mark_reviewed(
            request_id, status, admin_id, review_note
        )
        if not transitioned:
            await self.session.rollback()
            raise PinRequestError(
                f"Pin request {request_id} is no longer pending"
            )

        await self.session.refresh(request)
        return request

    @with_rollback_on_error
    async def approve(
        self, request_id: int, admin_id: int
    ) -> tuple[PinRequest, PinAdjustment]:
        """
        Approve a request and allocate its pins.

        The status transition is flushed before the allocation and both
        are committed together, so a request is never paid twice.

        Returns:
            Tuple of (request, pin adjustment)
        """
        request_id = require_entity_id(request_id, "request_id")
        admin_id = await self._require_admin(admin_id)
        request = await self._review(
            request_id, admin_id, PinRequestStatus.APPROVED
        )

        adjustment = await self.quota_gate.adjust_pins(
            request.promoter_id,
            request.quantity,
            created_by=admin_id,
            note=f"Pin request #{request.id} approved",
            action_type=PinActionType.ADMIN_ALLOCATION,
        )

        logger.info(
            "Pin request approved",
            extra={
                "request_id": request.id,
                "promoter_id": request.promoter_id,
                "quantity": request.quantity,
                "admin_id": admin_id,
                "new_balance": adjustment.new_balance,
            },
        )
        return request, adjustment

    @with_rollback_on_error
    async def reject(
        self, request_id: int, admin_id: int, reason: str | None = None
    ) -> PinRequest:
        """Reject a pending request."""
        request_id = require_entity_id(request_id, "request_id")
        admin_id = await self._require_admin(admin_id)
        request = await self._review(
            request_id, admin_id, PinRequestStatus.REJECTED, reason
        )
        await self.session.commit()

        logger.info(
            "Pin request rejected",
            extra={"request_id": request.id, "admin_id": admin_id},
        )
        return request

    async def list_requests(
        self,
        promoter_id: int | None = None,
        status: PinRequestStatus | str | None = None,
        limit: int = 50,
    ) -> list[PinRequest]:
        """
        Requests filtered by promoter and status, oldest first.

        Raises:
            ValidationError: bad id, unknown status or limit
        """
        if promoter_id is not None:
            promoter_id = require_entity_id(promoter_id, "promoter_id")
        if status is not None:
            try:
                status = PinRequestStatus(status)
            except ValueError as e:
                raise ValidationError(
                    f"Unknown pin request status: {status}"
                ) from e
        if limit <= 0:
            raise ValidationError("Invalid pagination")

        return await self.request_repo.find_requests(
            promoter_id=promoter_id, status=status, limit=limit
        )

    async def list_pending(self, limit: int = 50) -> list[PinRequest]:
        """Requests awaiting review, oldest first."""
        return await self.list_requests(
            status=PinRequestStatus.PENDING, limit=limit
        )
