"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings(); must run before any package import
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("COMMISSION_TOTAL_POOL", "800")
os.environ.setdefault("COMMISSION_LEVEL_AMOUNTS", "500,100,100,100")
os.environ.setdefault("COMMISSION_MAX_LEVELS", "4")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.config.settings import Settings


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.delete = MagicMock()
    session.expunge = MagicMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for caching tests."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock()
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def test_settings():
    """Settings for tests (fallback enabled, no Redis)."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        environment="test",
        log_file="",
        redis_host=None,
    )


@pytest.fixture
def schedule():
    """Default 500/100/100/100 schedule with an 800 pool."""
    return CommissionSchedule.from_settings()


@pytest.fixture
def procedure_result():
    """Build a result object whose scalar() returns procedure JSON text."""

    def _build(payload: dict) -> MagicMock:
        result = MagicMock()
        result.scalar = MagicMock(return_value=json.dumps(payload))
        return result

    return _build
