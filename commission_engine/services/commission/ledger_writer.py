"""
Ledger writer.

Turns planned ledger lines into CommissionRecord rows.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.commission_record import CommissionRecord
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
)
from commission_engine.services.commission.pool_accountant import LedgerLine
from commission_engine.utils.identifiers import generate_transaction_id


def describe_line(customer_id: int, line: LedgerLine) -> str:
    """Human-readable note stored with a ledger entry."""
    if line.is_admin:
        return f"Undistributed commission remainder for customer {customer_id}"
    return f"Level {line.level} commission for customer {customer_id}"


class LedgerWriter:
    """Writes ledger entries; the caller owns commit boundaries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger writer."""
        self.session = session
        self.commission_repo = CommissionRepository(session)

    async def write_line(
        self,
        customer_id: int,
        initiator_promoter_id: int | None,
        line: LedgerLine,
    ) -> CommissionRecord:
        """
        Insert one credited entry for a planned line.

        Args:
            customer_id: Onboarding event
            initiator_promoter_id: Promoter who onboarded the customer
            line: Planned entry

        Returns:
            Flushed CommissionRecord
        """
        record = await self.commission_repo.create_entry(
            customer_id=customer_id,
            initiator_promoter_id=initiator_promoter_id,
            recipient_id=line.recipient_id,
            recipient_type=line.recipient_type.value,
            level=line.level,
            amount=line.amount,
            transaction_id=generate_transaction_id(customer_id, line.level),
            note=describe_line(customer_id, line),
        )

        logger.debug(
            "Ledger entry written",
            extra={
                "customer_id": customer_id,
                "level": line.level,
                "recipient_id": line.recipient_id,
                "amount": str(line.amount),
                "transaction_id": record.transaction_id,
            },
        )
        return record
