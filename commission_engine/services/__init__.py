"""
Services.

Business logic layer.
"""

# Commission distribution
from commission_engine.services.commission import (
    CommissionHistoryFilter,
    CommissionStatisticsService,
    DistributionOrchestrator,
    DistributionResult,
    FallbackResult,
    PrimaryResult,
    SkippedResult,
)

# Onboarding & reconciliation
from commission_engine.services.onboarding_service import (
    OnboardingOutcome,
    OnboardingService,
)

# Pins
from commission_engine.services.pins import (
    PinAdjustment,
    PinQuotaGate,
    PinRequestService,
)
from commission_engine.services.reconciliation_service import (
    ReconciliationReport,
    ReconciliationService,
)

# Wallet
from commission_engine.services.wallet import (
    CommissionSummary,
    WalletAggregator,
)


__all__ = [
    "CommissionHistoryFilter",
    "CommissionStatisticsService",
    "CommissionSummary",
    "DistributionOrchestrator",
    "DistributionResult",
    "FallbackResult",
    "OnboardingOutcome",
    "OnboardingService",
    "PinAdjustment",
    "PinQuotaGate",
    "PinRequestService",
    "PrimaryResult",
    "ReconciliationReport",
    "ReconciliationService",
    "SkippedResult",
    "WalletAggregator",
]
