"""
Wallet projection model.

Cached per-recipient totals, refreshed opportunistically whenever a
ledger entry is written. Never authoritative: reports recompute from
``commission_records`` and the projection can be rebuilt at any time.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.models.types import MoneyType
from commission_engine.utils.datetime_utils import utc_now


ADMIN_WALLET_KEY = "admin"


def wallet_key(recipient_id: int | None) -> str:
    """Projection key for a recipient (``None`` is the admin account)."""
    if recipient_id is None:
        return ADMIN_WALLET_KEY
    return f"promoter:{recipient_id}"


class WalletProjection(Base):
    """Cached balance/total/count for one recipient."""

    __tablename__ = "wallet_projections"
    __table_args__ = (
        UniqueConstraint("wallet_key", name="uq_wallet_projection_key"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    wallet_key: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    commission_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_event_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now,
        nullable=False,
    )
