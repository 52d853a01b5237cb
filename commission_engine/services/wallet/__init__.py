"""
Wallet read model.
"""

from commission_engine.services.wallet.wallet_aggregator import (
    CommissionSummary,
    WalletAggregator,
    WalletDrift,
)
from commission_engine.services.wallet.wallet_cache import WalletCache


__all__ = [
    "CommissionSummary",
    "WalletAggregator",
    "WalletCache",
    "WalletDrift",
]
