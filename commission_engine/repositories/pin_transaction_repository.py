"""
PinTransaction repository.

Data access layer for the pin audit trail.
"""

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.customer import Customer
from commission_engine.models.enums import PinActionType, PinTransactionType
from commission_engine.models.pin_transaction import PinTransaction
from commission_engine.repositories.base import BaseRepository


class PinTransactionRepository(BaseRepository[PinTransaction]):
    """PinTransaction repository (append-only)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize pin transaction repository."""
        super().__init__(PinTransaction, session)

    async def record(
        self,
        promoter_id: int,
        delta: int,
        action_type: PinActionType,
        balance_after: int | None = None,
        customer_id: int | None = None,
        created_by: int | None = None,
        note: str | None = None,
    ) -> PinTransaction:
        """
        Append one audit row.

        Transaction type is derived from the sign of ``delta``.
        """
        transaction_type = (
            PinTransactionType.ALLOCATION
            if delta > 0
            else PinTransactionType.DEDUCTION
        )
        return await self.create(
            promoter_id=promoter_id,
            customer_id=customer_id,
            delta=delta,
            transaction_type=transaction_type.value,
            action_type=action_type.value,
            balance_after=balance_after,
            created_by=created_by,
            note=note,
        )

    async def get_history(
        self,
        promoter_id: int | None = None,
        action_type: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
    ) -> list[PinTransaction]:
        """
        Filtered audit rows, newest first.

        Args:
            promoter_id: Promoter ID (None = all promoters)
            action_type: Action type value
            date_from: Inclusive lower bound on created_at
            date_to: Inclusive upper bound on created_at
            limit: Max number of rows

        Returns:
            List of pin transactions
        """
        stmt = select(PinTransaction)

        if promoter_id is not None:
            stmt = stmt.where(PinTransaction.promoter_id == promoter_id)
        if action_type is not None:
            stmt = stmt.where(PinTransaction.action_type == action_type)
        if date_from is not None:
            stmt = stmt.where(PinTransaction.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(PinTransaction.created_at <= date_to)

        stmt = (
            stmt.order_by(
                PinTransaction.created_at.desc(), PinTransaction.id.desc()
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_action_totals(
        self, promoter_id: int | None = None
    ) -> dict[str, dict[str, int]]:
        """
        Row count and summed delta per action type.

        Args:
            promoter_id: Restrict to one promoter (None = all)

        Returns:
            Dict of action_type -> {"count", "delta"}
        """
        stmt = select(
            PinTransaction.action_type,
            func.count(PinTransaction.id),
            func.coalesce(func.sum(PinTransaction.delta), 0),
        ).group_by(PinTransaction.action_type)

        if promoter_id is not None:
            stmt = stmt.where(PinTransaction.promoter_id == promoter_id)

        result = await self.session.execute(stmt)
        return {
            action: {"count": count, "delta": int(delta)}
            for action, count, delta in result.all()
        }

    async def find_customers_without_deduction(self) -> list[Customer]:
        """
        Customers whose initiator has no deduction row referencing them.

        These are pin audit gaps: the quota was consumed but the audit
        insert never landed.
        """
        stmt = (
            select(Customer)
            .outerjoin(
                PinTransaction,
                and_(
                    PinTransaction.customer_id == Customer.id,
                    PinTransaction.promoter_id == Customer.parent_promoter_id,
                    PinTransaction.transaction_type
                    == PinTransactionType.DEDUCTION.value,
                ),
            )
            .where(PinTransaction.id.is_(None))
            .order_by(Customer.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
