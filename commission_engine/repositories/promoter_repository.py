"""
Promoter repository.

Data access layer for Promoter model, including the atomic pin
compare-and-update statements.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.promoter import Promoter
from commission_engine.repositories.base import BaseRepository


class PromoterRepository(BaseRepository[Promoter]):
    """Promoter repository with hierarchy and quota queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize promoter repository."""
        super().__init__(Promoter, session)

    async def get_parent_id(self, promoter_id: int) -> tuple[bool, int | None]:
        """
        Read a promoter's parent reference.

        Args:
            promoter_id: Promoter ID

        Returns:
            Tuple of (promoter_exists, parent_promoter_id)
        """
        stmt = select(Promoter.id, Promoter.parent_promoter_id).where(
            Promoter.id == promoter_id
        )
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return False, None
        return True, row.parent_promoter_id

    async def get_pin_balance(self, promoter_id: int) -> int | None:
        """
        Current pin balance straight from the database.

        Returns:
            Pin count, or None if the promoter does not exist
        """
        stmt = select(Promoter.pins).where(Promoter.id == promoter_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def deduct_pins(self, promoter_id: int, amount: int) -> int | None:
        """
        Atomically decrement pins if enough are held.

        Single ``UPDATE ... WHERE pins >= amount`` so concurrent deductions
        can never drive the balance negative.

        Args:
            promoter_id: Promoter ID
            amount: Positive number of pins to remove

        Returns:
            New balance, or None when the guard rejected the update
        """
        stmt = (
            update(Promoter)
            .where(Promoter.id == promoter_id, Promoter.pins >= amount)
            .values(pins=Promoter.pins - amount)
            .returning(Promoter.pins)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_pins(self, promoter_id: int, amount: int) -> int | None:
        """
        Atomically increment pins.

        Returns:
            New balance, or None if the promoter does not exist
        """
        stmt = (
            update(Promoter)
            .where(Promoter.id == promoter_id)
            .values(pins=Promoter.pins + amount)
            .returning(Promoter.pins)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_admin(self, promoter_id: int) -> bool:
        """Check whether a promoter holds administrative rights."""
        stmt = select(Promoter.is_admin).where(Promoter.id == promoter_id)
        result = await self.session.execute(stmt)
        return bool(result.scalar_one_or_none())
