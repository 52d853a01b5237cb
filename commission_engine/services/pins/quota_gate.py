"""
Pin quota gate.

Promoters spend one pin per onboarded customer. The ``promoters.pins``
column is authoritative and only ever changes through a single atomic
UPDATE; ``pin_transactions`` is the audit trail written right after it.
A failed audit insert leaves a gap for reconciliation but never rolls the
balance change back.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.enums import PinActionType
from commission_engine.models.pin_transaction import PinTransaction
from commission_engine.repositories.pin_transaction_repository import (
    PinTransactionRepository,
)
from commission_engine.repositories.promoter_repository import (
    PromoterRepository,
)
from commission_engine.utils.exceptions import QuotaExhausted, ValidationError
from commission_engine.validators import require_entity_id, require_pin_delta


@dataclass
class PinAdjustment:
    """Outcome of a quota change."""

    success: bool
    promoter_id: int
    delta: int
    new_balance: int
    audit_recorded: bool = True
    pin_transaction_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "new_balance": self.new_balance}


class PinQuotaGate:
    """Atomic pin deduction/allocation with audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize pin quota gate."""
        self.session = session
        self.promoter_repo = PromoterRepository(session)
        self.pin_tx_repo = PinTransactionRepository(session)

    async def consume(self, promoter_id: int, count: int = 1) -> int:
        """
        Take pins from a promoter and commit.

        Single compare-and-decrement (``pins >= count``); nothing is
        written when the promoter does not hold enough.

        Args:
            promoter_id: Promoter ID
            count: Number of pins to take

        Returns:
            New balance

        Raises:
            ValidationError: unknown promoter
            QuotaExhausted: not enough pins
        """
        new_balance = await self.promoter_repo.deduct_pins(promoter_id, count)

        if new_balance is None:
            await self.session.rollback()
            available = await self.promoter_repo.get_pin_balance(promoter_id)
            if available is None:
                raise ValidationError(f"Promoter {promoter_id} not found")
            logger.info(
                "Pin deduction rejected, quota exhausted",
                extra={
                    "promoter_id": promoter_id,
                    "available": available,
                    "required": count,
                },
            )
            raise QuotaExhausted(promoter_id, available, required=count)

        await self.session.commit()
        logger.info(
            "Pins deducted",
            extra={
                "promoter_id": promoter_id,
                "count": count,
                "new_balance": new_balance,
            },
        )
        return new_balance

    async def allocate(self, promoter_id: int, count: int) -> int:
        """
        Give pins to a promoter and commit.

        Raises:
            ValidationError: unknown promoter
        """
        new_balance = await self.promoter_repo.add_pins(promoter_id, count)
        if new_balance is None:
            await self.session.rollback()
            raise ValidationError(f"Promoter {promoter_id} not found")

        await self.session.commit()
        logger.info(
            "Pins allocated",
            extra={
                "promoter_id": promoter_id,
                "count": count,
                "new_balance": new_balance,
            },
        )
        return new_balance

    async def record_audit(
        self,
        promoter_id: int,
        delta: int,
        action_type: PinActionType,
        balance_after: int,
        customer_id: int | None = None,
        created_by: int | None = None,
        note: str | None = None,
    ) -> PinTransaction | None:
        """
        Append the audit row for a committed balance change.

        Returns:
            The PinTransaction, or None if the insert failed (logged as an
            audit gap; the balance is still correct)
        """
        try:
            transaction = await self.pin_tx_repo.record(
                promoter_id=promoter_id,
                delta=delta,
                action_type=action_type,
                balance_after=balance_after,
                customer_id=customer_id,
                created_by=created_by,
                note=note,
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Pin audit gap: balance changed but audit insert failed: {e}",
                extra={
                    "promoter_id": promoter_id,
                    "delta": delta,
                    "customer_id": customer_id,
                    "action_type": action_type.value,
                    "balance_after": balance_after,
                },
            )
            return None
        return transaction

    async def adjust_pins(
        self,
        promoter_id: int,
        delta: int,
        customer_id: int | None = None,
        created_by: int | None = None,
        note: str | None = None,
        action_type: PinActionType | None = None,
    ) -> PinAdjustment:
        """
        Change a promoter's pin quota by ``delta``.

        Negative deltas are deductions: -1 with a ``customer_id`` for an
        onboarding, any negative value without one for an administrative
        deduction. Positive deltas are allocations and always succeed.

        Args:
            promoter_id: Promoter ID
            delta: Signed, non-zero change
            customer_id: Customer the deduction pays for
            created_by: Administrator performing the change
            note: Free-text note stored on the audit row
            action_type: Overrides the derived action (e.g. REFUND)

        Returns:
            PinAdjustment with the new balance

        Raises:
            ValidationError: bad input or unknown promoter
            QuotaExhausted: deduction larger than the balance
        """
        promoter_id = require_entity_id(promoter_id, "promoter_id")
        delta = require_pin_delta(delta)
        if customer_id is not None:
            customer_id = require_entity_id(customer_id, "customer_id")
            if delta != -1:
                raise ValidationError(
                    "Customer onboarding consumes exactly one pin"
                )
        if created_by is not None:
            created_by = require_entity_id(created_by, "created_by")

        if delta < 0:
            new_balance = await self.consume(promoter_id, -delta)
            derived_action = (
                PinActionType.CUSTOMER_CREATION
                if customer_id is not None
                else PinActionType.ADMIN_DEDUCTION
            )
        else:
            new_balance = await self.allocate(promoter_id, delta)
            derived_action = PinActionType.ADMIN_ALLOCATION

        transaction = await self.record_audit(
            promoter_id=promoter_id,
            delta=delta,
            action_type=action_type or derived_action,
            balance_after=new_balance,
            customer_id=customer_id,
            created_by=created_by,
            note=note,
        )

        return PinAdjustment(
            success=True,
            promoter_id=promoter_id,
            delta=delta,
            new_balance=new_balance,
            audit_recorded=transaction is not None,
            pin_transaction_id=transaction.id if transaction else None,
        )

    async def pin_transaction_history(
        self,
        promoter_id: int | None = None,
        action_type: PinActionType | str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
    ) -> list[PinTransaction]:
        """
        Audit rows, newest first.

        Args:
            promoter_id: Restrict to one promoter (None = all promoters)
            action_type: Restrict to one action
            date_from: Inclusive lower bound
            date_to: Inclusive upper bound
            limit: Max number of rows

        Raises:
            ValidationError: bad id, unknown action or inverted range
        """
        if promoter_id is not None:
            promoter_id = require_entity_id(promoter_id, "promoter_id")
        if action_type is not None:
            try:
                action_type = PinActionType(action_type)
            except ValueError as e:
                raise ValidationError(
                    f"Unknown pin action type: {action_type}"
                ) from e
        if (
            date_from is not None
            and date_to is not None
            and date_from > date_to
        ):
            raise ValidationError("date_from must not be after date_to")
        if limit <= 0:
            raise ValidationError("Invalid pagination")

        return await self.pin_tx_repo.get_history(
            promoter_id=promoter_id,
            action_type=action_type.value if action_type else None,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
        )

    async def pin_statistics(
        self, promoter_id: int | None = None
    ) -> dict[str, int]:
        """
        Pin usage statistics.

        Args:
            promoter_id: Restrict to one promoter (None = platform-wide)

        Returns:
            Dict with customer_creations, allocations, admin_deductions,
            refunds, total_allocated and total_deducted
        """
        if promoter_id is not None:
            promoter_id = require_entity_id(promoter_id, "promoter_id")

        totals = await self.pin_tx_repo.get_action_totals(promoter_id)

        def _action(action: PinActionType) -> dict[str, int]:
            return totals.get(action.value, {"count": 0, "delta": 0})

        creations = _action(PinActionType.CUSTOMER_CREATION)
        allocations = _action(PinActionType.ADMIN_ALLOCATION)
        deductions = _action(PinActionType.ADMIN_DEDUCTION)
        refunds = _action(PinActionType.REFUND)

        return {
            "customer_creations": creations["count"],
            "allocations": allocations["count"],
            "admin_deductions": deductions["count"],
            "refunds": refunds["count"],
            "total_allocated": allocations["delta"] + refunds["delta"],
            "total_deducted": -(creations["delta"] + deductions["delta"]),
        }
