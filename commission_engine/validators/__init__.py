"""
Input validators.
"""

from commission_engine.validators.common import (
    require_entity_id,
    require_name,
    require_pin_delta,
    validate_entity_id,
    validate_name,
    validate_pin_delta,
    validate_pin_quantity,
)


__all__ = [
    "require_entity_id",
    "require_name",
    "require_pin_delta",
    "validate_entity_id",
    "validate_name",
    "validate_pin_delta",
    "validate_pin_quantity",
]
