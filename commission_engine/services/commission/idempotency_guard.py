"""
Idempotency guard.

Detects onboarding events that already have credited ledger entries.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.enums import CommissionStatus
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
    LedgerAggregate,
)
from commission_engine.utils.exceptions import DuplicateDistribution


class IdempotencyGuard:
    """Pre-write duplicate check for the statement-by-statement path."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize idempotency guard."""
        self.session = session
        self.commission_repo = CommissionRepository(session)

    async def credited_totals(self, customer_id: int) -> LedgerAggregate:
        """Count and sum of credited entries for a customer."""
        return await self.commission_repo.get_customer_credited_totals(
            customer_id
        )

    async def check(self, customer_id: int) -> None:
        """
        Raise if the customer was already paid.

        Args:
            customer_id: Onboarding event

        Raises:
            DuplicateDistribution: carrying the prior totals
        """
        totals = await self.credited_totals(customer_id)
        if totals.count == 0:
            return

        entries = await self.commission_repo.get_customer_entries(customer_id)
        credited = [
            e for e in entries if e.status == CommissionStatus.CREDITED.value
        ]
        levels = sum(1 for e in credited if not e.is_admin_entry)
        admin_amount = sum(
            (e.amount for e in credited if e.is_admin_entry), Decimal("0")
        )

        logger.info(
            "Commission already distributed, skipping",
            extra={
                "customer_id": customer_id,
                "record_count": totals.count,
                "total_amount": str(totals.total),
            },
        )
        raise DuplicateDistribution(
            customer_id=customer_id,
            record_count=totals.count,
            total_amount=totals.total,
            levels_distributed=levels,
            admin_amount=admin_amount,
        )
