"""
Unit tests for the commission schedule and its settings.

Tests cover:
- Default 500/100/100/100 schedule and 800 pool
- Rejection of schedules that do not exhaust the pool
- Settings validation of level amounts and level count
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from commission_engine.config.commission_schedule import (
    ADMIN_LEVEL,
    CommissionSchedule,
)
from commission_engine.config.settings import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "environment": "test",
        "log_file": "",
    }
    values.update(overrides)
    return Settings(**values)


class TestCommissionSchedule:
    """Test the schedule value object."""

    def test_default_schedule(self, schedule):
        """Default schedule pays 500 then 100 three times."""
        assert schedule.amounts() == [
            Decimal("500"),
            Decimal("100"),
            Decimal("100"),
            Decimal("100"),
        ]
        assert schedule.total_pool == Decimal("800")
        assert schedule.max_levels == 4

    def test_amount_for_unknown_level_is_zero(self, schedule):
        """Levels outside the schedule pay nothing."""
        assert schedule.amount_for(5) == Decimal("0")
        assert schedule.amount_for(ADMIN_LEVEL) == Decimal("0")

    def test_levels_keyed_from_one(self, schedule):
        """Level 1 is the initiator; each config knows its own level."""
        assert sorted(schedule.levels) == [1, 2, 3, 4]
        assert all(
            config.level == level for level, config in schedule.levels.items()
        )

    def test_sum_must_equal_pool(self):
        """A schedule that leaves part of the pool unassigned is rejected."""
        with pytest.raises(ValueError, match="sum"):
            CommissionSchedule(
                [Decimal("500"), Decimal("100")], Decimal("800")
            )

    def test_amounts_must_be_positive(self):
        """Zero or negative level amounts are rejected."""
        with pytest.raises(ValueError, match="positive"):
            CommissionSchedule(
                [Decimal("800"), Decimal("0")], Decimal("800")
            )

    def test_empty_schedule_rejected(self):
        """At least one level is required."""
        with pytest.raises(ValueError):
            CommissionSchedule([], Decimal("800"))

    def test_custom_schedule_from_settings(self):
        """A campaign schedule is read from settings."""
        config = make_settings(
            commission_total_pool=Decimal("1000"),
            commission_level_amounts="600,250,150",
            commission_max_levels=3,
        )
        schedule = CommissionSchedule.from_settings(config)
        assert schedule.max_levels == 3
        assert schedule.amount_for(2) == Decimal("250")
        assert schedule.total_pool == Decimal("1000")


class TestCommissionSettings:
    """Test schedule validation in Settings."""

    def test_defaults(self):
        """Defaults describe the 800 pool over four levels."""
        config = make_settings()
        assert config.get_level_amounts() == [
            Decimal("500"),
            Decimal("100"),
            Decimal("100"),
            Decimal("100"),
        ]
        assert config.commission_fallback_enabled is True
        assert config.redis_enabled is False

    def test_level_count_must_match_max_levels(self):
        """Three amounts with a four level cap are rejected."""
        with pytest.raises(PydanticValidationError):
            make_settings(
                commission_level_amounts="600,100,100",
                commission_max_levels=4,
            )

    def test_sum_must_match_pool(self):
        """Amounts summing to 900 cannot fund an 800 pool."""
        with pytest.raises(PydanticValidationError):
            make_settings(commission_level_amounts="600,100,100,100")

    def test_non_numeric_amount_rejected(self):
        """Garbage in the schedule is rejected."""
        with pytest.raises(PydanticValidationError):
            make_settings(commission_level_amounts="500,abc,100,100")

    def test_negative_amount_rejected(self):
        """Negative amounts are rejected."""
        with pytest.raises(PydanticValidationError):
            make_settings(
                commission_total_pool=Decimal("400"),
                commission_level_amounts="500,-100",
                commission_max_levels=2,
            )

    def test_postgres_url_normalized(self):
        """Plain postgresql:// URLs get the asyncpg driver."""
        config = make_settings(database_url="postgresql://u:p@db/app")
        assert config.database_url == "postgresql+asyncpg://u:p@db/app"

    def test_unsupported_database_rejected(self):
        """Only PostgreSQL and SQLite (tests) are accepted."""
        with pytest.raises(PydanticValidationError):
            make_settings(database_url="mysql://u:p@db/app")

    def test_production_rejects_sqlite(self):
        """SQLite cannot host the procedure in production."""
        with pytest.raises(PydanticValidationError):
            make_settings(environment="production")

    def test_redis_enabled_with_host(self):
        """Caching turns on when a Redis host is configured."""
        assert make_settings(redis_host="localhost").redis_enabled is True
        assert (
            make_settings(
                redis_host="localhost", wallet_cache_ttl_seconds=0
            ).redis_enabled
            is False
        )
