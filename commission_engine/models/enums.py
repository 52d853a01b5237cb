"""
Enumerations shared by models and services.
"""

from enum import StrEnum


class RecipientType(StrEnum):
    """Who receives a commission entry."""

    PROMOTER = "promoter"
    ADMIN = "admin"


class CommissionStatus(StrEnum):
    """Ledger entry status (set once, at creation)."""

    PENDING = "pending"
    CREDITED = "credited"
    FAILED = "failed"


class PinTransactionType(StrEnum):
    """Direction of a pin quota change."""

    ALLOCATION = "allocation"
    DEDUCTION = "deduction"


class PinActionType(StrEnum):
    """Business reason behind a pin transaction."""

    CUSTOMER_CREATION = "customer_creation"
    ADMIN_ALLOCATION = "admin_allocation"
    ADMIN_DEDUCTION = "admin_deduction"
    REFUND = "refund"


class PinRequestStatus(StrEnum):
    """Lifecycle of a promoter's request for more pins."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EntityStatus(StrEnum):
    """Status of promoters and customers."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class DistributionMethod(StrEnum):
    """Path that produced a distribution result."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    SKIPPED = "skipped"
