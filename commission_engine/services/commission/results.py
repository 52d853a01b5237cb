"""
Distribution results.

Every distribution call returns one of three variants sharing the same
summary projection:

- ``PrimaryResult``: the atomic stored procedure did the work
- ``FallbackResult``: the statement-by-statement path did the work
- ``SkippedResult``: the customer was already paid; nothing was written
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from commission_engine.models.enums import DistributionMethod
from commission_engine.utils.datetime_utils import utc_now
from commission_engine.utils.exceptions import DuplicateDistribution


@dataclass(frozen=True)
class DistributionSummary:
    """Common projection of every distribution result."""

    success: bool
    total_distributed: Decimal
    levels_distributed: int
    admin_fallback_amount: Decimal
    timestamp: datetime
    method: DistributionMethod

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total_distributed": self.total_distributed,
            "levels_distributed": self.levels_distributed,
            "admin_fallback_amount": self.admin_fallback_amount,
            "timestamp": self.timestamp.isoformat(),
            "method": self.method.value,
        }


@dataclass
class DistributionResult:
    """Fields shared by all result variants."""

    method: ClassVar[DistributionMethod]

    customer_id: int
    total_distributed: Decimal
    levels_distributed: int
    admin_fallback_amount: Decimal
    # Recipients whose balances changed (None = admin account)
    recipient_ids: list[int | None] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def success(self) -> bool:
        return True

    @property
    def summary(self) -> DistributionSummary:
        return DistributionSummary(
            success=self.success,
            total_distributed=self.total_distributed,
            levels_distributed=self.levels_distributed,
            admin_fallback_amount=self.admin_fallback_amount,
            timestamp=self.timestamp,
            method=self.method,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.summary.to_dict()


@dataclass
class PrimaryResult(DistributionResult):
    """Distribution completed atomically by the stored procedure."""

    method: ClassVar[DistributionMethod] = DistributionMethod.PRIMARY

    transaction_ids: list[str] = field(default_factory=list)


@dataclass
class FallbackResult(DistributionResult):
    """
    Distribution completed by independent statements.

    ``duplicate_detected`` is set when the post-write check found more
    credited for the customer than one pool, i.e. a concurrent pass also
    wrote entries.
    """

    method: ClassVar[DistributionMethod] = DistributionMethod.FALLBACK

    transaction_ids: list[str] = field(default_factory=list)
    duplicate_detected: bool = False
    excess_amount: Decimal = Decimal("0")
    wallet_refresh_failed: bool = False


@dataclass
class SkippedResult(DistributionResult):
    """Customer already had credited entries; totals are the prior ones."""

    method: ClassVar[DistributionMethod] = DistributionMethod.SKIPPED

    record_count: int = 0
    reason: str = "already_distributed"

    @classmethod
    def from_duplicate(cls, error: DuplicateDistribution) -> "SkippedResult":
        return cls(
            customer_id=error.customer_id,
            total_distributed=error.total_amount,
            levels_distributed=error.levels_distributed,
            admin_fallback_amount=error.admin_amount,
            record_count=error.record_count,
        )
