"""
Commission ledger repository.

Data access layer for CommissionRecord model. Every balance reported by the
engine is an aggregate over the rows this repository reads.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.enums import CommissionStatus, RecipientType
from commission_engine.repositories.base import BaseRepository
from commission_engine.utils.datetime_utils import ensure_aware


CREDITED = CommissionStatus.CREDITED.value


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class LedgerAggregate:
    """Count/sum over a set of credited ledger entries."""

    count: int
    total: Decimal
    last_event_at: datetime | None = None


@dataclass
class RecipientAggregate(LedgerAggregate):
    """Aggregate for one recipient (``recipient_id`` None is the admin)."""

    recipient_id: int | None = None


class CommissionRepository(BaseRepository[CommissionRecord]):
    """Commission ledger repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(CommissionRecord, session)

    async def create_entry(
        self,
        customer_id: int,
        initiator_promoter_id: int | None,
        recipient_id: int | None,
        recipient_type: str,
        level: int,
        amount: Decimal,
        transaction_id: str,
        note: str | None = None,
    ) -> CommissionRecord:
        """
        Append one credited ledger entry.

        Returns:
            Created entry (flushed, not committed)
        """
        return await self.create(
            customer_id=customer_id,
            initiator_promoter_id=initiator_promoter_id,
            recipient_id=recipient_id,
            recipient_type=recipient_type,
            level=level,
            amount=amount,
            status=CREDITED,
            transaction_id=transaction_id,
            note=note,
        )

    async def get_customer_credited_totals(
        self, customer_id: int
    ) -> LedgerAggregate:
        """
        Count and sum of credited entries for one onboarding event.

        Args:
            customer_id: Customer ID

        Returns:
            LedgerAggregate (count 0 when nothing was credited)
        """
        stmt = select(
            func.count(CommissionRecord.id),
            func.coalesce(func.sum(CommissionRecord.amount), 0),
        ).where(
            CommissionRecord.customer_id == customer_id,
            CommissionRecord.status == CREDITED,
        )
        result = await self.session.execute(stmt)
        count, total = result.one()
        return LedgerAggregate(count=count or 0, total=_decimal(total))

    def _recipient_filter(self, stmt: Select, recipient_id: int | None) -> Select:
        if recipient_id is None:
            return stmt.where(
                CommissionRecord.recipient_type == RecipientType.ADMIN.value
            )
        return stmt.where(CommissionRecord.recipient_id == recipient_id)

    async def get_recipient_totals(
        self, recipient_id: int | None
    ) -> LedgerAggregate:
        """
        Ledger-derived wallet figures for one recipient.

        Args:
            recipient_id: Promoter ID, or None for the admin account

        Returns:
            LedgerAggregate with count, total and last credit time
        """
        stmt = select(
            func.count(CommissionRecord.id),
            func.coalesce(func.sum(CommissionRecord.amount), 0),
            func.max(CommissionRecord.created_at),
        ).where(CommissionRecord.status == CREDITED)
        stmt = self._recipient_filter(stmt, recipient_id)

        result = await self.session.execute(stmt)
        count, total, last_event_at = result.one()
        return LedgerAggregate(
            count=count or 0,
            total=_decimal(total),
            last_event_at=ensure_aware(last_event_at),
        )

    async def get_recent_entries(
        self, recipient_id: int | None, limit: int = 10
    ) -> list[CommissionRecord]:
        """Newest credited entries of a recipient."""
        stmt = select(CommissionRecord).where(
            CommissionRecord.status == CREDITED
        )
        stmt = self._recipient_filter(stmt, recipient_id)
        stmt = stmt.order_by(
            CommissionRecord.created_at.desc(), CommissionRecord.id.desc()
        ).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_customer_entries(
        self, customer_id: int
    ) -> list[CommissionRecord]:
        """All entries of one onboarding event, by level then id."""
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.customer_id == customer_id)
            .order_by(CommissionRecord.level.asc(), CommissionRecord.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_history(
        self,
        promoter_id: int | None = None,
        level: int | None = None,
        status: str | None = None,
        recipient_type: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CommissionRecord]:
        """
        Filtered ledger history, newest first.

        Args:
            promoter_id: Match entries paid to or initiated by this promoter
            level: Hierarchy level (0 = admin remainder)
            status: Entry status
            recipient_type: promoter or admin
            date_from: Inclusive lower bound on created_at
            date_to: Inclusive upper bound on created_at
            limit: Page size
            offset: Page offset

        Returns:
            Matching entries
        """
        stmt = select(CommissionRecord)

        if promoter_id is not None:
            stmt = stmt.where(
                or_(
                    CommissionRecord.recipient_id == promoter_id,
                    CommissionRecord.initiator_promoter_id == promoter_id,
                )
            )
        if level is not None:
            stmt = stmt.where(CommissionRecord.level == level)
        if status is not None:
            stmt = stmt.where(CommissionRecord.status == status)
        if recipient_type is not None:
            stmt = stmt.where(CommissionRecord.recipient_type == recipient_type)
        if date_from is not None:
            stmt = stmt.where(CommissionRecord.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(CommissionRecord.created_at <= date_to)

        stmt = (
            stmt.order_by(
                CommissionRecord.created_at.desc(), CommissionRecord.id.desc()
            )
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_grouped_totals(self, column_name: str) -> dict:
        """
        Count and amount of all entries grouped by one column.

        Args:
            column_name: ``level``, ``status`` or ``recipient_type``

        Returns:
            Dict of column value -> {"count", "amount"}
        """
        column = getattr(CommissionRecord, column_name)
        stmt = (
            select(
                column,
                func.count(CommissionRecord.id),
                func.coalesce(func.sum(CommissionRecord.amount), 0),
            )
            .group_by(column)
            .order_by(column)
        )
        result = await self.session.execute(stmt)
        return {
            key: {"count": count, "amount": _decimal(amount)}
            for key, count, amount in result.all()
        }

    async def get_amounts_with_dates(self) -> list[tuple[datetime, Decimal]]:
        """(created_at, amount) for every credited entry."""
        stmt = select(
            CommissionRecord.created_at, CommissionRecord.amount
        ).where(CommissionRecord.status == CREDITED)
        result = await self.session.execute(stmt)
        return [
            (ensure_aware(created_at), _decimal(amount))
            for created_at, amount in result.all()
        ]

    async def get_totals_by_customer(self) -> dict[int, LedgerAggregate]:
        """Credited count/sum for every customer that has entries."""
        stmt = (
            select(
                CommissionRecord.customer_id,
                func.count(CommissionRecord.id),
                func.coalesce(func.sum(CommissionRecord.amount), 0),
            )
            .where(CommissionRecord.status == CREDITED)
            .group_by(CommissionRecord.customer_id)
        )
        result = await self.session.execute(stmt)
        return {
            customer_id: LedgerAggregate(count=count, total=_decimal(total))
            for customer_id, count, total in result.all()
        }

    async def get_totals_by_recipient(self) -> list[RecipientAggregate]:
        """
        Credited aggregates for every recipient, admin included.

        Used to rebuild and verify the wallet projection.
        """
        stmt = (
            select(
                CommissionRecord.recipient_id,
                func.count(CommissionRecord.id),
                func.coalesce(func.sum(CommissionRecord.amount), 0),
                func.max(CommissionRecord.created_at),
            )
            .where(CommissionRecord.status == CREDITED)
            .group_by(CommissionRecord.recipient_id)
        )
        result = await self.session.execute(stmt)
        return [
            RecipientAggregate(
                recipient_id=recipient_id,
                count=count,
                total=_decimal(total),
                last_event_at=ensure_aware(last_event_at),
            )
            for recipient_id, count, total, last_event_at in result.all()
        ]
