"""
Pin quota services.
"""

from commission_engine.services.pins.pin_request_service import (
    PinRequestService,
)
from commission_engine.services.pins.quota_gate import (
    PinAdjustment,
    PinQuotaGate,
)


__all__ = [
    "PinAdjustment",
    "PinQuotaGate",
    "PinRequestService",
]
