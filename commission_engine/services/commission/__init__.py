"""
Commission distribution services.
"""

from commission_engine.services.commission.hierarchy_resolver import (
    HierarchyResolver,
    ResolvedLevel,
)
from commission_engine.services.commission.orchestrator import (
    DistributionOrchestrator,
)
from commission_engine.services.commission.pool_accountant import (
    AllocationPlan,
    LedgerLine,
    allocate,
)
from commission_engine.services.commission.results import (
    DistributionResult,
    DistributionSummary,
    FallbackResult,
    PrimaryResult,
    SkippedResult,
)
from commission_engine.services.commission.statistics import (
    CommissionHistoryFilter,
    CommissionStatisticsService,
)


__all__ = [
    "AllocationPlan",
    "CommissionHistoryFilter",
    "CommissionStatisticsService",
    "DistributionOrchestrator",
    "DistributionResult",
    "DistributionSummary",
    "FallbackResult",
    "HierarchyResolver",
    "LedgerLine",
    "PrimaryResult",
    "ResolvedLevel",
    "SkippedResult",
    "allocate",
]
