"""
Reconciliation service.

Finds the inconsistencies the engine accepts as operational risk:

- customers whose credited total is not exactly one pool (partial
  fallback writes, or duplicate fallback passes);
- customers whose pin deduction has no audit row;
- wallet projections that disagree with the ledger.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.config.settings import Settings, settings
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
)
from commission_engine.repositories.customer_repository import (
    CustomerRepository,
)
from commission_engine.repositories.pin_transaction_repository import (
    PinTransactionRepository,
)
from commission_engine.services.wallet.wallet_aggregator import (
    WalletAggregator,
    WalletDrift,
)


@dataclass
class IncompleteDistribution:
    """Customer whose credited total differs from the pool."""

    customer_id: int
    initiator_promoter_id: int | None
    credited_total: Decimal
    record_count: int
    expected_total: Decimal

    @property
    def difference(self) -> Decimal:
        return self.credited_total - self.expected_total

    @property
    def kind(self) -> str:
        if self.record_count == 0:
            return "missing"
        return "overpaid" if self.difference > 0 else "underpaid"


@dataclass
class PinAuditGap:
    """Customer without a matching pin deduction row."""

    customer_id: int
    promoter_id: int


@dataclass
class ReconciliationReport:
    """Everything ``run`` found."""

    incomplete_distributions: list[IncompleteDistribution] = field(
        default_factory=list
    )
    pin_audit_gaps: list[PinAuditGap] = field(default_factory=list)
    wallet_drift: list[WalletDrift] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (
            self.incomplete_distributions
            or self.pin_audit_gaps
            or self.wallet_drift
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "incomplete_distributions": [
                {
                    "customer_id": d.customer_id,
                    "initiator_promoter_id": d.initiator_promoter_id,
                    "kind": d.kind,
                    "credited_total": str(d.credited_total),
                    "record_count": d.record_count,
                    "difference": str(d.difference),
                }
                for d in self.incomplete_distributions
            ],
            "pin_audit_gaps": [
                {"customer_id": g.customer_id, "promoter_id": g.promoter_id}
                for g in self.pin_audit_gaps
            ],
            "wallet_drift": [
                {
                    "wallet_key": d.wallet_key,
                    "ledger_total": str(d.ledger_total),
                    "projected_total": (
                        str(d.projected_total)
                        if d.projected_total is not None
                        else None
                    ),
                    "difference": str(d.difference),
                }
                for d in self.wallet_drift
            ],
        }


class ReconciliationService:
    """Ledger-first consistency checks and repairs."""

    def __init__(
        self,
        session: AsyncSession,
        redis_client: Any | None = None,
        schedule: CommissionSchedule | None = None,
        config: Settings | None = None,
    ) -> None:
        """Initialize reconciliation service."""
        config = config or settings
        self.session = session
        self.schedule = schedule or CommissionSchedule.from_settings(config)
        self.commission_repo = CommissionRepository(session)
        self.customer_repo = CustomerRepository(session)
        self.pin_tx_repo = PinTransactionRepository(session)
        self.wallet_aggregator = WalletAggregator(
            session, redis_client=redis_client, config=config
        )

    async def find_incomplete_distributions(
        self, include_missing: bool = False
    ) -> list[IncompleteDistribution]:
        """
        Customers whose credited total is not exactly one pool.

        Args:
            include_missing: Also report customers with no entries at all
                (distribution never ran or failed before the first write)

        Returns:
            List of incomplete distributions ordered by customer id
        """
        pool = self.schedule.total_pool
        totals = await self.commission_repo.get_totals_by_customer()
        initiators = await self.customer_repo.get_initiator_map()

        found: list[IncompleteDistribution] = []
        for customer_id in sorted(set(totals) | set(initiators)):
            agg = totals.get(customer_id)
            if agg is None and not include_missing:
                continue
            credited = agg.total if agg else Decimal("0")
            if agg is not None and credited == pool:
                continue

            found.append(
                IncompleteDistribution(
                    customer_id=customer_id,
                    initiator_promoter_id=initiators.get(customer_id),
                    credited_total=credited,
                    record_count=agg.count if agg else 0,
                    expected_total=pool,
                )
            )

        if found:
            logger.warning(
                f"Found {len(found)} customers with incomplete or duplicated "
                f"commission distribution",
                extra={"customer_ids": [d.customer_id for d in found]},
            )
        return found

    async def find_pin_audit_gaps(self) -> list[PinAuditGap]:
        """Customers whose initiator's deduction has no audit row."""
        customers = await self.pin_tx_repo.find_customers_without_deduction()
        gaps = [
            PinAuditGap(customer_id=c.id, promoter_id=c.parent_promoter_id)
            for c in customers
        ]
        if gaps:
            logger.warning(
                f"Found {len(gaps)} pin audit gaps",
                extra={"customer_ids": [g.customer_id for g in gaps]},
            )
        return gaps

    async def find_wallet_drift(self) -> list[WalletDrift]:
        """Projections that disagree with the ledger."""
        return await self.wallet_aggregator.find_drift()

    async def rebuild_wallets(self) -> int:
        """Overwrite every projection with ledger-derived values."""
        return await self.wallet_aggregator.rebuild()

    async def run(self, include_missing: bool = False) -> ReconciliationReport:
        """Run every check and return the combined report."""
        report = ReconciliationReport(
            incomplete_distributions=await self.find_incomplete_distributions(
                include_missing=include_missing
            ),
            pin_audit_gaps=await self.find_pin_audit_gaps(),
            wallet_drift=await self.find_wallet_drift(),
        )
        logger.info(
            "Reconciliation finished",
            extra={
                "incomplete_distributions": len(
                    report.incomplete_distributions
                ),
                "pin_audit_gaps": len(report.pin_audit_gaps),
                "wallet_drift": len(report.wallet_drift),
            },
        )
        return report
