"""
Pool accountant.

Pure allocation of the commission pool over resolved recipients. No I/O.
"""

from dataclasses import dataclass
from decimal import Decimal

from commission_engine.config.commission_schedule import (
    ADMIN_LEVEL,
    CommissionSchedule,
)
from commission_engine.models.enums import RecipientType
from commission_engine.services.commission.hierarchy_resolver import (
    ResolvedLevel,
)


@dataclass(frozen=True)
class LedgerLine:
    """One planned ledger entry."""

    level: int
    recipient_id: int | None
    amount: Decimal

    @property
    def is_admin(self) -> bool:
        return self.level == ADMIN_LEVEL

    @property
    def recipient_type(self) -> RecipientType:
        return RecipientType.ADMIN if self.is_admin else RecipientType.PROMOTER


@dataclass(frozen=True)
class AllocationPlan:
    """Ledger lines for one onboarding event; always sums to the pool."""

    lines: tuple[LedgerLine, ...]
    total_pool: Decimal

    @property
    def promoter_lines(self) -> list[LedgerLine]:
        return [line for line in self.lines if not line.is_admin]

    @property
    def admin_amount(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.is_admin),
            Decimal("0"),
        )

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))

    @property
    def levels_distributed(self) -> int:
        return len(self.promoter_lines)


def allocate(
    resolved: list[ResolvedLevel], schedule: CommissionSchedule
) -> AllocationPlan:
    """
    Split the pool across resolved recipients.

    Each resolved level gets its scheduled amount; whatever no recipient
    claimed goes to a single admin line at level 0.

    Args:
        resolved: Output of the hierarchy walk
        schedule: Commission schedule

    Returns:
        AllocationPlan whose total equals ``schedule.total_pool``
    """
    remaining = schedule.total_pool
    lines: list[LedgerLine] = []

    for entry in resolved:
        amount = schedule.amount_for(entry.level)
        if amount <= 0:
            continue
        lines.append(
            LedgerLine(
                level=entry.level,
                recipient_id=entry.recipient_id,
                amount=amount,
            )
        )
        remaining -= amount

    if remaining > 0:
        lines.append(
            LedgerLine(level=ADMIN_LEVEL, recipient_id=None, amount=remaining)
        )

    return AllocationPlan(lines=tuple(lines), total_pool=schedule.total_pool)
