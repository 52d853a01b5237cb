"""
Commission statistics module.

History queries, platform-wide statistics and the admin account summary.
All figures are computed from the ledger.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.enums import CommissionStatus, RecipientType
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
)
from commission_engine.utils.datetime_utils import month_key
from commission_engine.utils.exceptions import ValidationError


@dataclass
class CommissionHistoryFilter:
    """Filters for ``commission_history``; None means "any"."""

    promoter_id: int | None = None
    level: int | None = None
    status: str | None = None
    recipient_type: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 50
    offset: int = 0

    def validate(self) -> None:
        if self.status is not None and self.status not in {
            s.value for s in CommissionStatus
        }:
            raise ValidationError(f"Unknown commission status: {self.status}")
        if self.recipient_type is not None and self.recipient_type not in {
            r.value for r in RecipientType
        }:
            raise ValidationError(
                f"Unknown recipient type: {self.recipient_type}"
            )
        if self.level is not None and self.level < 0:
            raise ValidationError("Level must be non-negative")
        if (
            self.date_from is not None
            and self.date_to is not None
            and self.date_from > self.date_to
        ):
            raise ValidationError("date_from must not be after date_to")
        if self.limit <= 0 or self.offset < 0:
            raise ValidationError("Invalid pagination")


class CommissionStatisticsService:
    """Read-only reporting over the commission ledger."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics service."""
        self.session = session
        self.commission_repo = CommissionRepository(session)

    async def commission_history(
        self, filters: CommissionHistoryFilter | None = None
    ) -> list[CommissionRecord]:
        """
        Ledger entries matching filters, newest first.

        Args:
            filters: History filters (None = everything, first page)

        Returns:
            List of commission records
        """
        filters = filters or CommissionHistoryFilter()
        filters.validate()
        return await self.commission_repo.get_history(
            promoter_id=filters.promoter_id,
            level=filters.level,
            status=filters.status,
            recipient_type=filters.recipient_type,
            date_from=filters.date_from,
            date_to=filters.date_to,
            limit=filters.limit,
            offset=filters.offset,
        )

    async def commission_statistics(self) -> dict[str, Any]:
        """
        Platform-wide commission statistics.

        Returns:
            Dict with total_count, total_amount, by_level, by_status,
            by_recipient_type and monthly_trend ({"YYYY-MM": {count, amount}})
        """
        by_level = await self.commission_repo.get_grouped_totals("level")
        by_status = await self.commission_repo.get_grouped_totals("status")
        by_recipient_type = await self.commission_repo.get_grouped_totals(
            "recipient_type"
        )

        monthly: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"count": 0, "amount": Decimal("0")}
        )
        for created_at, amount in (
            await self.commission_repo.get_amounts_with_dates()
        ):
            bucket = monthly[month_key(created_at)]
            bucket["count"] += 1
            bucket["amount"] += amount

        return {
            "total_count": sum(v["count"] for v in by_status.values()),
            "total_amount": sum(
                (v["amount"] for v in by_status.values()), Decimal("0")
            ),
            "by_level": by_level,
            "by_status": by_status,
            "by_recipient_type": by_recipient_type,
            "monthly_trend": dict(sorted(monthly.items())),
        }

    async def admin_commission_summary(
        self, recent_limit: int = 10
    ) -> dict[str, Any]:
        """Ledger-derived admin account balance and recent remainders."""
        totals = await self.commission_repo.get_recipient_totals(None)
        recent = await self.commission_repo.get_recent_entries(
            None, limit=recent_limit
        )
        return {
            "balance": totals.total,
            "commission_count": totals.count,
            "last_event_at": totals.last_event_at,
            "recent_entries": recent,
        }
