"""
PinRequest model.

A promoter's request for additional pins, reviewed by an administrator.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.models.enums import PinRequestStatus
from commission_engine.utils.datetime_utils import utc_now


class PinRequest(Base):
    """PinRequest entity."""

    __tablename__ = "pin_requests"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_pin_request_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    promoter_id: Mapped[int] = mapped_column(
        ForeignKey("promoters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PinRequestStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    reviewed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
