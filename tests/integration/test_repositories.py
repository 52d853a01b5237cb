"""
Integration tests for repositories.

Tests cover:
- Generic BaseRepository helpers
- Atomic pin updates and conditional request review
- Wallet projection upsert
"""

from decimal import Decimal

import pytest

from commission_engine.models.enums import PinRequestStatus
from commission_engine.repositories.pin_request_repository import (
    PinRequestRepository,
)
from commission_engine.repositories.promoter_repository import (
    PromoterRepository,
)
from commission_engine.repositories.wallet_repository import WalletRepository


class TestBaseRepository:
    """Generic helpers through PromoterRepository."""

    @pytest.mark.asyncio
    async def test_lookup_helpers(self, db_session, chain_factory):
        chain = await chain_factory(3, admin=True)
        repo = PromoterRepository(db_session)

        assert (await repo.get_by_id(chain[0])).id == chain[0]
        assert await repo.get_by_id(9999) is None
        assert (await repo.get_by(is_admin=True)).id == chain[2]
        assert await repo.count() == 3
        assert await repo.count(is_admin=False) == 2
        assert await repo.exists(id=chain[1]) is True
        assert await repo.exists(id=9999) is False

        page = await repo.find_by(limit=2, offset=1, is_admin=False)
        assert len(page) == 1


class TestPromoterRepository:
    """Hierarchy and quota statements."""

    @pytest.mark.asyncio
    async def test_parent_lookup(self, db_session, chain_factory):
        chain = await chain_factory(2)
        repo = PromoterRepository(db_session)

        assert await repo.get_parent_id(chain[0]) == (True, chain[1])
        assert await repo.get_parent_id(chain[1]) == (True, None)
        assert await repo.get_parent_id(9999) == (False, None)

    @pytest.mark.asyncio
    async def test_guarded_deduction(self, db_session, chain_factory):
        (promoter_id,) = await chain_factory(1, pins=2)
        repo = PromoterRepository(db_session)

        assert await repo.deduct_pins(promoter_id, 3) is None
        assert await repo.deduct_pins(promoter_id, 2) == 0
        assert await repo.add_pins(promoter_id, 4) == 4
        assert await repo.add_pins(9999, 4) is None
        await db_session.commit()

        assert await repo.get_pin_balance(promoter_id) == 4
        assert await repo.get_pin_balance(9999) is None


class TestPinRequestRepository:
    """Conditional review transition."""

    @pytest.mark.asyncio
    async def test_mark_reviewed_once(self, db_session, chain_factory):
        promoter_id, admin_id = await chain_factory(2, admin=True)
        repo = PinRequestRepository(db_session)
        request = await repo.create(promoter_id=promoter_id, quantity=5)
        await db_session.commit()

        assert await repo.get_pending_for_promoter(promoter_id) is not None
        assert await repo.mark_reviewed(
            request.id, PinRequestStatus.APPROVED, admin_id
        ) is True
        assert await repo.mark_reviewed(
            request.id, PinRequestStatus.REJECTED, admin_id
        ) is False
        await db_session.commit()

        assert await repo.get_pending_for_promoter(promoter_id) is None
        assert await repo.find_requests(status=PinRequestStatus.PENDING) == []
        approved = await repo.find_requests(
            promoter_id=promoter_id, status=PinRequestStatus.APPROVED
        )
        assert [r.id for r in approved] == [request.id]


class TestWalletRepository:
    """Projection upsert."""

    @pytest.mark.asyncio
    async def test_apply_credit_creates_then_increments(
        self, db_session, chain_factory
    ):
        (promoter_id,) = await chain_factory(1)
        repo = WalletRepository(db_session)

        await repo.apply_credit(promoter_id, Decimal("500"))
        await repo.apply_credit(promoter_id, Decimal("100"))
        await repo.apply_credit(None, Decimal("300"))
        await db_session.commit()

        promoter = await repo.get_for_recipient(promoter_id)
        await db_session.refresh(promoter)
        admin = await repo.get_for_recipient(None)

        assert promoter.wallet_key == f"promoter:{promoter_id}"
        assert promoter.total_earned == Decimal("600")
        assert promoter.commission_count == 2
        assert admin.wallet_key == "admin"
        assert admin.balance == Decimal("300")
