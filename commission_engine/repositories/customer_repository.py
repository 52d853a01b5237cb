"""
Customer repository.

Data access layer for Customer model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.customer import Customer
from commission_engine.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Customer repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize customer repository."""
        super().__init__(Customer, session)

    async def create_customer(
        self,
        name: str,
        parent_promoter_id: int,
        mobile: str | None = None,
    ) -> Customer:
        """
        Insert a customer onboarded by a promoter.

        Args:
            name: Customer display name
            parent_promoter_id: Initiating promoter
            mobile: Optional phone number

        Returns:
            Created customer
        """
        return await self.create(
            name=name,
            parent_promoter_id=parent_promoter_id,
            mobile=mobile,
        )

    async def get_initiator_map(self) -> dict[int, int]:
        """Map of customer id to initiating promoter id."""
        stmt = select(Customer.id, Customer.parent_promoter_id).order_by(
            Customer.id
        )
        result = await self.session.execute(stmt)
        return {row.id: row.parent_promoter_id for row in result.all()}
