"""
PinTransaction model.

Append-only audit trail of pin quota changes. The promoter's ``pins``
column stays authoritative; a missing audit row is a reconciliation gap,
not a quota error.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.utils.datetime_utils import utc_now


class PinTransaction(Base):
    """PinTransaction entity - one row per quota change."""

    __tablename__ = "pin_transactions"
    __table_args__ = (
        Index("idx_pin_tx_promoter_created", "promoter_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    promoter_id: Mapped[int] = mapped_column(
        ForeignKey("promoters.id", ondelete="CASCADE"),
        nullable=False,
    )
    # NULL for administrative allocations/deductions
    customer_id: Mapped[int | None] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    action_type: Mapped[str] = mapped_column(String(32), nullable=False)
    balance_after: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
