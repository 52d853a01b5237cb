"""
Wallet projection repository.

Maintains the cached per-recipient totals. Nothing here is authoritative;
the ledger is.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models.wallet import WalletProjection, wallet_key
from commission_engine.repositories.base import BaseRepository
from commission_engine.utils.datetime_utils import utc_now


class WalletRepository(BaseRepository[WalletProjection]):
    """Wallet projection repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize wallet repository."""
        super().__init__(WalletProjection, session)

    async def get_for_recipient(
        self, recipient_id: int | None
    ) -> WalletProjection | None:
        """Projection row of a recipient (None = admin account)."""
        return await self.get_by(wallet_key=wallet_key(recipient_id))

    async def apply_credit(
        self,
        recipient_id: int | None,
        amount: Decimal,
        event_at: datetime | None = None,
    ) -> None:
        """
        Add one credited entry to a recipient's projection.

        Increments in place with a single UPDATE; inserts the row the first
        time a recipient is paid.

        Args:
            recipient_id: Promoter ID, or None for the admin account
            amount: Credited amount
            event_at: Ledger entry timestamp
        """
        key = wallet_key(recipient_id)
        event_at = event_at or utc_now()

        stmt = (
            update(WalletProjection)
            .where(WalletProjection.wallet_key == key)
            .values(
                balance=WalletProjection.balance + amount,
                total_earned=WalletProjection.total_earned + amount,
                commission_count=WalletProjection.commission_count + 1,
                last_event_at=event_at,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            await self.create(
                wallet_key=key,
                recipient_id=recipient_id,
                balance=amount,
                total_earned=amount,
                commission_count=1,
                last_event_at=event_at,
            )

    async def replace_all(self, rows: list[dict]) -> int:
        """
        Replace every projection with freshly computed rows.

        Args:
            rows: Dicts with recipient_id, balance, total_earned,
                commission_count and last_event_at

        Returns:
            Number of projections written
        """
        await self.session.execute(delete(WalletProjection))
        for row in rows:
            self.session.add(
                WalletProjection(
                    wallet_key=wallet_key(row["recipient_id"]),
                    recipient_id=row["recipient_id"],
                    balance=row["balance"],
                    total_earned=row["total_earned"],
                    commission_count=row["commission_count"],
                    last_event_at=row["last_event_at"],
                )
            )
        await self.session.flush()
        return len(rows)

    async def get_all(self) -> list[WalletProjection]:
        """Every projection row."""
        result = await self.session.execute(
            select(WalletProjection).order_by(WalletProjection.wallet_key)
        )
        return list(result.scalars().all())
