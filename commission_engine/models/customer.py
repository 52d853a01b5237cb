"""
Customer model.

A customer is onboarded by exactly one promoter; onboarding consumes one
pin and triggers one commission distribution.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.models.enums import EntityStatus
from commission_engine.utils.datetime_utils import utc_now


class Customer(Base):
    """Customer model - onboarded by a promoter."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Initiating promoter
    parent_promoter_id: Mapped[int] = mapped_column(
        ForeignKey("promoters.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20), default=EntityStatus.ACTIVE.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
