"""
Integration tests for commission distribution.

Runs against SQLite, where the stored procedure is missing, so every
distribution exercises the statement-by-statement path end to end.

Tests cover:
- Allocation for every hierarchy shape (full, short, unknown, capped, cyclic)
- Idempotent re-runs
- Partial write failures
- Concurrent passes detected after the fact
"""

from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from commission_engine.models import Promoter
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
)
from commission_engine.services.commission import (
    DistributionOrchestrator,
    FallbackResult,
    SkippedResult,
)
from commission_engine.services.reconciliation_service import (
    ReconciliationService,
)
from commission_engine.utils.exceptions import (
    DistributionError,
    PartialDistributionFailure,
)


async def ledger_of(session, customer_id: int) -> list[tuple]:
    entries = await CommissionRepository(session).get_customer_entries(
        customer_id
    )
    return [
        (e.level, e.recipient_id, e.recipient_type, e.amount) for e in entries
    ]


def total_of(ledger: list[tuple]) -> Decimal:
    return sum((row[3] for row in ledger), Decimal("0"))


@pytest.fixture
def orchestrator(db_session, test_settings):
    return DistributionOrchestrator(db_session, config=test_settings)


class TestAllocationScenarios:
    """Ledger contents for different hierarchy shapes."""

    @pytest.mark.asyncio
    async def test_full_chain(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(4)
        customer_id = await customer_factory(chain[0])

        result = await orchestrator.distribute(customer_id, chain[0])

        assert isinstance(result, FallbackResult)
        assert result.total_distributed == Decimal("800")
        assert result.levels_distributed == 4
        assert result.admin_fallback_amount == Decimal("0")
        assert await ledger_of(db_session, customer_id) == [
            (1, chain[0], "promoter", Decimal("500")),
            (2, chain[1], "promoter", Decimal("100")),
            (3, chain[2], "promoter", Decimal("100")),
            (4, chain[3], "promoter", Decimal("100")),
        ]

    @pytest.mark.asyncio
    async def test_initiator_without_parent(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(1)
        customer_id = await customer_factory(chain[0])

        result = await orchestrator.distribute(customer_id, chain[0])

        assert result.levels_distributed == 1
        assert result.admin_fallback_amount == Decimal("300")
        assert await ledger_of(db_session, customer_id) == [
            (0, None, "admin", Decimal("300")),
            (1, chain[0], "promoter", Decimal("500")),
        ]

    @pytest.mark.asyncio
    async def test_unknown_initiator_pays_admin(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(1)
        customer_id = await customer_factory(chain[0])

        result = await orchestrator.distribute(customer_id, 9999)

        assert result.levels_distributed == 0
        assert result.admin_fallback_amount == Decimal("800")
        assert await ledger_of(db_session, customer_id) == [
            (0, None, "admin", Decimal("800")),
        ]

    @pytest.mark.asyncio
    async def test_deep_chain_capped(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(6)
        customer_id = await customer_factory(chain[0])

        result = await orchestrator.distribute(customer_id, chain[0])

        ledger = await ledger_of(db_session, customer_id)
        assert result.levels_distributed == 4
        assert [row[1] for row in ledger] == chain[:4]
        assert total_of(ledger) == Decimal("800")

    @pytest.mark.asyncio
    async def test_cycle_pays_each_promoter_once(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        first, second = await chain_factory(2)
        await db_session.execute(
            update(Promoter)
            .where(Promoter.id == second)
            .values(parent_promoter_id=first)
        )
        await db_session.commit()
        customer_id = await customer_factory(first)

        result = await orchestrator.distribute(customer_id, first)

        assert await ledger_of(db_session, customer_id) == [
            (0, None, "admin", Decimal("200")),
            (1, first, "promoter", Decimal("500")),
            (2, second, "promoter", Decimal("100")),
        ]
        assert result.total_distributed == Decimal("800")


class TestIdempotency:
    """Repeated distribution for the same customer."""

    @pytest.mark.asyncio
    async def test_second_call_is_skipped(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(4)
        customer_id = await customer_factory(chain[0])

        first = await orchestrator.distribute(customer_id, chain[0])
        second = await orchestrator.distribute(customer_id, chain[0])

        assert isinstance(second, SkippedResult)
        assert second.total_distributed == first.total_distributed
        assert second.levels_distributed == first.levels_distributed
        assert second.record_count == 4
        assert len(await ledger_of(db_session, customer_id)) == 4

    @pytest.mark.asyncio
    async def test_skip_reports_prior_admin_amount(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(2)
        customer_id = await customer_factory(chain[0])

        await orchestrator.distribute(customer_id, chain[0])
        second = await orchestrator.distribute(customer_id, chain[0])

        assert second.levels_distributed == 2
        assert second.admin_fallback_amount == Decimal("200")


class TestPartialFailure:
    """A write failing midway through the fallback path."""

    @pytest.mark.asyncio
    async def test_partial_write_is_reported_and_reconcilable(
        self,
        db_session,
        orchestrator,
        chain_factory,
        customer_factory,
        test_settings,
    ):
        chain = await chain_factory(4)
        customer_id = await customer_factory(chain[0])

        write_line = orchestrator.fallback.writer.write_line
        calls = 0

        async def flaky_write_line(*args, **kwargs):
            nonlocal calls
            calls += 1
            if calls == 3:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return await write_line(*args, **kwargs)

        orchestrator.fallback.writer.write_line = flaky_write_line

        with pytest.raises(PartialDistributionFailure) as exc_info:
            await orchestrator.distribute(customer_id, chain[0])

        failure = exc_info.value
        assert failure.written_amount == Decimal("600")
        assert failure.unwritten_amount == Decimal("200")
        assert [line.level for line in failure.unwritten] == [3, 4]

        ledger = await ledger_of(db_session, customer_id)
        assert len(ledger) == 2
        assert total_of(ledger) == Decimal("600")

        reconciliation = ReconciliationService(
            db_session, config=test_settings
        )
        incomplete = await reconciliation.find_incomplete_distributions()
        assert len(incomplete) == 1
        assert incomplete[0].customer_id == customer_id
        assert incomplete[0].kind == "underpaid"
        assert incomplete[0].difference == Decimal("-200")
        # Entries that did land still reached the projection
        assert await reconciliation.find_wallet_drift() == []

    @pytest.mark.asyncio
    async def test_first_write_failure_leaves_nothing(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(4)
        customer_id = await customer_factory(chain[0])

        async def broken_write_line(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        orchestrator.fallback.writer.write_line = broken_write_line

        with pytest.raises(DistributionError) as exc_info:
            await orchestrator.distribute(customer_id, chain[0])

        assert not isinstance(exc_info.value, PartialDistributionFailure)
        assert await ledger_of(db_session, customer_id) == []


class TestConcurrentPasses:
    """Two fallback passes that both passed the duplicate check."""

    @pytest.mark.asyncio
    async def test_excess_is_detected(
        self, db_session, orchestrator, chain_factory, customer_factory
    ):
        chain = await chain_factory(4)
        customer_id = await customer_factory(chain[0])

        await orchestrator.distribute(customer_id, chain[0])

        # Second pass whose duplicate check ran before the first committed
        async def stale_check(customer_id):
            return None

        orchestrator.fallback.guard.check = stale_check
        second = await orchestrator.fallback.distribute(customer_id, chain[0])

        assert second.duplicate_detected is True
        assert second.excess_amount == Decimal("800")
        assert total_of(await ledger_of(db_session, customer_id)) == Decimal(
            "1600"
        )
