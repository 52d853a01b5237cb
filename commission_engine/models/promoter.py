"""
Promoter model.

Represents a member of the promoter network. Promoters form a tree via
``parent_promoter_id`` and hold a consumable pin quota.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.models.enums import EntityStatus
from commission_engine.utils.datetime_utils import utc_now


class Promoter(Base):
    """Promoter model - members of the commission hierarchy."""

    __tablename__ = "promoters"
    __table_args__ = (
        CheckConstraint("pins >= 0", name="check_promoter_pins_non_negative"),
        CheckConstraint(
            "parent_promoter_id IS NULL OR parent_promoter_id <> id",
            name="check_promoter_not_own_parent",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Hierarchy
    parent_promoter_id: Mapped[int | None] = mapped_column(
        ForeignKey("promoters.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Pin quota
    pins: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=EntityStatus.ACTIVE.value, nullable=False
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
