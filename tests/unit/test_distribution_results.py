"""
Unit tests for distribution result variants.

Tests cover:
- Shared summary projection for Primary / Fallback / Skipped
- Skipped result built from a duplicate-distribution signal
"""

from decimal import Decimal

from commission_engine.models.enums import DistributionMethod
from commission_engine.services.commission.results import (
    FallbackResult,
    PrimaryResult,
    SkippedResult,
)
from commission_engine.utils.exceptions import DuplicateDistribution


SUMMARY_KEYS = {
    "success",
    "total_distributed",
    "levels_distributed",
    "admin_fallback_amount",
    "timestamp",
    "method",
}


class TestResultVariants:
    """Test the unified result shape."""

    def test_primary_summary(self):
        result = PrimaryResult(
            customer_id=1,
            total_distributed=Decimal("800"),
            levels_distributed=4,
            admin_fallback_amount=Decimal("0"),
        )
        data = result.to_dict()

        assert set(data) == SUMMARY_KEYS
        assert data["method"] == "primary"
        assert data["success"] is True
        assert data["total_distributed"] == Decimal("800")

    def test_fallback_summary(self):
        result = FallbackResult(
            customer_id=1,
            total_distributed=Decimal("800"),
            levels_distributed=1,
            admin_fallback_amount=Decimal("300"),
            duplicate_detected=True,
            excess_amount=Decimal("800"),
        )
        summary = result.summary

        assert summary.method == DistributionMethod.FALLBACK
        assert summary.admin_fallback_amount == Decimal("300")
        assert set(result.to_dict()) == SUMMARY_KEYS

    def test_skipped_from_duplicate(self):
        error = DuplicateDistribution(
            customer_id=5,
            record_count=2,
            total_amount=Decimal("800"),
            levels_distributed=1,
            admin_amount=Decimal("300"),
        )
        result = SkippedResult.from_duplicate(error)

        assert result.method == DistributionMethod.SKIPPED
        assert result.success is True
        assert result.record_count == 2
        assert result.total_distributed == Decimal("800")
        assert result.admin_fallback_amount == Decimal("300")
        assert result.to_dict()["method"] == "skipped"
