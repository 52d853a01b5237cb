"""
Fallback distribution path.

Re-runs the duplicate check, the hierarchy walk and the ledger writes as
independent statements from this process, used when the stored procedure
is unavailable.

Guarantees are weaker than on the primary path:

- every ledger entry is committed on its own, so a failure midway leaves
  the distribution partially written (``PartialDistributionFailure``);
- the duplicate check and the writes are separate round trips, so two
  concurrent passes for the same customer can both write. Each pass
  re-reads the credited total afterwards and reports any excess.
"""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.services.commission.hierarchy_resolver import (
    HierarchyResolver,
)
from commission_engine.services.commission.idempotency_guard import (
    IdempotencyGuard,
)
from commission_engine.services.commission.ledger_writer import LedgerWriter
from commission_engine.services.commission.pool_accountant import (
    AllocationPlan,
    allocate,
)
from commission_engine.services.commission.results import FallbackResult
from commission_engine.services.wallet.wallet_aggregator import (
    WalletAggregator,
)
from commission_engine.utils.exceptions import (
    DistributionError,
    PartialDistributionFailure,
)


class FallbackDistributor:
    """Statement-by-statement distribution."""

    def __init__(
        self,
        session: AsyncSession,
        schedule: CommissionSchedule,
        wallet_aggregator: WalletAggregator,
    ) -> None:
        """
        Initialize fallback distributor.

        Args:
            session: Async database session
            schedule: Commission schedule
            wallet_aggregator: Used to refresh projections after writes
        """
        self.session = session
        self.schedule = schedule
        self.guard = IdempotencyGuard(session)
        self.resolver = HierarchyResolver(session, schedule.max_levels)
        self.writer = LedgerWriter(session)
        self.wallet_aggregator = wallet_aggregator

    async def distribute(
        self, customer_id: int, initiator_promoter_id: int
    ) -> FallbackResult:
        """
        Distribute the pool without a cross-statement transaction.

        Args:
            customer_id: Onboarding event
            initiator_promoter_id: Promoter who onboarded the customer

        Returns:
            FallbackResult

        Raises:
            DuplicateDistribution: customer already paid (nothing written)
            PartialDistributionFailure: some entries written, then a write failed
            DistributionError: the first write failed (nothing written)
        """
        await self.guard.check(customer_id)

        resolved = await self.resolver.resolve(initiator_promoter_id)
        plan = allocate(resolved, self.schedule)

        records = await self._write_plan(
            customer_id, initiator_promoter_id, plan
        )

        result = FallbackResult(
            customer_id=customer_id,
            total_distributed=plan.total,
            levels_distributed=plan.levels_distributed,
            admin_fallback_amount=plan.admin_amount,
            recipient_ids=[r.recipient_id for r in records],
            transaction_ids=[r.transaction_id for r in records],
        )

        await self._detect_duplicates(result)

        refreshed = await self.wallet_aggregator.record_credits(records)
        result.wallet_refresh_failed = not refreshed

        return result

    async def _write_plan(
        self,
        customer_id: int,
        initiator_promoter_id: int,
        plan: AllocationPlan,
    ) -> list[CommissionRecord]:
        records: list[CommissionRecord] = []
        lines = list(plan.lines)

        for index, line in enumerate(lines):
            try:
                record = await self.writer.write_line(
                    customer_id, initiator_promoter_id, line
                )
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                written = lines[:index]
                unwritten = lines[index:]

                if not written:
                    raise DistributionError(
                        f"Fallback distribution failed before any entry "
                        f"was written: {e}",
                        customer_id=customer_id,
                    ) from e

                failure = PartialDistributionFailure(
                    customer_id=customer_id,
                    written=written,
                    unwritten=unwritten,
                    cause=e,
                )
                logger.error(
                    str(failure),
                    extra={
                        "customer_id": customer_id,
                        "written_levels": [line.level for line in written],
                        "unwritten_levels": [line.level for line in unwritten],
                        "written_amount": str(failure.written_amount),
                        "unwritten_amount": str(failure.unwritten_amount),
                    },
                )
                # Entries already committed still move balances
                await self.wallet_aggregator.record_credits(records)
                await self.wallet_aggregator.invalidate(
                    [r.recipient_id for r in records]
                )
                raise failure from e

            # Keep committed entries readable after a later rollback
            self.session.expunge(record)
            records.append(record)

        return records

    async def _detect_duplicates(self, result: FallbackResult) -> None:
        totals = await self.guard.credited_totals(result.customer_id)
        pool = self.schedule.total_pool

        if totals.total <= pool:
            return

        result.duplicate_detected = True
        result.excess_amount = totals.total - pool
        logger.warning(
            "Duplicate commission distribution detected",
            extra={
                "customer_id": result.customer_id,
                "credited_total": str(totals.total),
                "record_count": totals.count,
                "pool": str(pool),
                "excess": str(result.excess_amount),
            },
        )
