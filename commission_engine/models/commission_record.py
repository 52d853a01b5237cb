"""
CommissionRecord model.

One immutable ledger entry per commission payment. The ledger is the
source of truth for every balance in the system.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base
from commission_engine.models.enums import CommissionStatus, RecipientType
from commission_engine.models.types import MoneyType
from commission_engine.utils.datetime_utils import utc_now


class CommissionRecord(Base):
    """
    CommissionRecord entity.

    Attributes:
        id: Primary key
        customer_id: Onboarding event the payment belongs to
        initiator_promoter_id: Promoter who onboarded the customer
        recipient_id: Paid promoter (NULL only for the admin entry)
        recipient_type: promoter or admin
        level: Hierarchy level 1..N, 0 for the admin remainder
        amount: Positive amount paid
        status: pending, credited or failed (set once)
        transaction_id: Globally unique payment reference
        note: Human-readable description
        created_at: Creation timestamp
    """

    __tablename__ = "commission_records"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_commission_amount_positive"),
        CheckConstraint("level >= 0", name="check_commission_level_non_negative"),
        CheckConstraint(
            "(recipient_type = 'admin' AND recipient_id IS NULL AND level = 0) "
            "OR (recipient_type = 'promoter' AND recipient_id IS NOT NULL AND level > 0)",
            name="check_commission_recipient_shape",
        ),
        Index("idx_commission_customer_status", "customer_id", "status"),
        Index("idx_commission_recipient_status", "recipient_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    initiator_promoter_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    recipient_id: Mapped[int | None] = mapped_column(
        ForeignKey("promoters.id", ondelete="RESTRICT"),
        nullable=True,
    )
    recipient_type: Mapped[str] = mapped_column(
        String(20), default=RecipientType.PROMOTER.value, nullable=False
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=CommissionStatus.CREDITED.value, nullable=False
    )

    transaction_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )

    @property
    def is_admin_entry(self) -> bool:
        return self.recipient_type == RecipientType.ADMIN.value
