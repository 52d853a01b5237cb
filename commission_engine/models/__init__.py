"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from commission_engine.models.base import Base
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.customer import Customer
from commission_engine.models.enums import (
    CommissionStatus,
    DistributionMethod,
    EntityStatus,
    PinActionType,
    PinRequestStatus,
    PinTransactionType,
    RecipientType,
)
from commission_engine.models.pin_request import PinRequest
from commission_engine.models.pin_transaction import PinTransaction
from commission_engine.models.promoter import Promoter
from commission_engine.models.wallet import WalletProjection, wallet_key


__all__ = [
    "Base",
    # Network
    "Promoter",
    "Customer",
    # Ledger
    "CommissionRecord",
    "WalletProjection",
    "wallet_key",
    # Pins
    "PinTransaction",
    "PinRequest",
    # Enums
    "CommissionStatus",
    "DistributionMethod",
    "EntityStatus",
    "PinActionType",
    "PinRequestStatus",
    "PinTransactionType",
    "RecipientType",
]
