"""
Unit tests for the stored procedure path.

Tests cover:
- Procedure payload mapped to PrimaryResult / SkippedResult
- Reported failures, missing procedure and transient errors
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from commission_engine.services.commission.primary_distributor import (
    PrimaryDistributor,
)
from commission_engine.services.commission.results import (
    PrimaryResult,
    SkippedResult,
)
from commission_engine.utils.exceptions import (
    DistributionError,
    ProcedureUnavailable,
    TransientStoreError,
)


PROCEDURE = "distribute_affiliate_commission"


@pytest.fixture
def distributor(mock_session, schedule):
    return PrimaryDistributor(mock_session, schedule, PROCEDURE)


class TestPrimaryDistributor:
    """Test PrimaryDistributor.distribute()."""

    @pytest.mark.asyncio
    async def test_success_payload(
        self, distributor, mock_session, procedure_result
    ):
        mock_session.execute.return_value = procedure_result(
            {
                "success": True,
                "skipped": False,
                "total_distributed": 800,
                "levels_distributed": 1,
                "admin_fallback_amount": 300,
                "record_count": 2,
                "transaction_ids": ["a", "b"],
                "recipient_ids": [7, None],
            }
        )

        result = await distributor.distribute(10, 7)

        assert isinstance(result, PrimaryResult)
        assert result.total_distributed == Decimal("800")
        assert result.levels_distributed == 1
        assert result.admin_fallback_amount == Decimal("300")
        assert result.recipient_ids == [7, None]
        assert result.transaction_ids == ["a", "b"]
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_schedule_passed_as_text(
        self, distributor, mock_session, procedure_result
    ):
        mock_session.execute.return_value = procedure_result(
            {"success": True, "total_distributed": 800}
        )

        await distributor.distribute(10, 7)

        statement, params = mock_session.execute.await_args.args
        assert PROCEDURE in str(statement)
        assert params == {
            "customer_id": 10,
            "initiator_promoter_id": 7,
            "level_amounts": "500,100,100,100",
        }

    @pytest.mark.asyncio
    async def test_skipped_payload(
        self, distributor, mock_session, procedure_result
    ):
        mock_session.execute.return_value = procedure_result(
            {
                "success": True,
                "skipped": True,
                "total_distributed": "800.00",
                "levels_distributed": 4,
                "admin_fallback_amount": "0",
                "record_count": 4,
            }
        )

        result = await distributor.distribute(10, 7)

        assert isinstance(result, SkippedResult)
        assert result.record_count == 4
        assert result.total_distributed == Decimal("800.00")

    @pytest.mark.asyncio
    async def test_reported_failure_raises(
        self, distributor, mock_session, procedure_result
    ):
        mock_session.execute.return_value = procedure_result(
            {"success": False, "error": "deadlock detected"}
        )

        with pytest.raises(DistributionError, match="deadlock detected"):
            await distributor.distribute(10, 7)

        mock_session.commit.assert_not_awaited()
        mock_session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_missing_procedure(self, distributor, mock_session):
        mock_session.execute.side_effect = OperationalError(
            "SELECT", {}, Exception(f"no such function: {PROCEDURE}")
        )

        with pytest.raises(ProcedureUnavailable):
            await distributor.distribute(10, 7)

    @pytest.mark.asyncio
    async def test_transient_error(self, distributor, mock_session):
        mock_session.execute.side_effect = InterfaceError(
            "SELECT", {}, Exception("connection is closed")
        )

        with pytest.raises(TransientStoreError):
            await distributor.distribute(10, 7)

    @pytest.mark.asyncio
    async def test_other_database_error(self, distributor, mock_session):
        mock_session.execute.side_effect = IntegrityError(
            "SELECT", {}, Exception("violates foreign key constraint")
        )

        with pytest.raises(DistributionError):
            await distributor.distribute(10, 7)

    def test_rejects_unsafe_procedure_name(self, mock_session, schedule):
        with pytest.raises(ValueError):
            PrimaryDistributor(mock_session, schedule, "x; DROP TABLE y")
