"""
Common validators for caller input.

Each ``validate_*`` function returns a tuple of
(is_valid, parsed_value, error_message); the ``require_*`` wrappers raise
ValidationError instead, for use at service boundaries.
"""

from commission_engine.utils.exceptions import ValidationError


# Id columns are 32-bit INTEGER
MAX_ENTITY_ID = 2**31 - 1


def validate_entity_id(
    value: object, field_name: str = "id"
) -> tuple[bool, int | None, str | None]:
    """
    Validate a database identifier.

    Args:
        value: Integer or decimal string
        field_name: Name used in the error message

    Returns:
        Tuple of (is_valid, parsed_id, error_message)

    Examples:
        >>> validate_entity_id(7)
        (True, 7, None)
        >>> validate_entity_id("12")
        (True, 12, None)
        >>> validate_entity_id(None, "customer_id")
        (False, None, 'customer_id is required')
        >>> validate_entity_id(-3)
        (False, None, 'id must be a positive integer')
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return False, None, f"{field_name} is required"

    # bool is an int subclass; True must not become id 1
    if isinstance(value, bool):
        return False, None, f"{field_name} must be a positive integer"

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdecimal():
            return False, None, f"{field_name} must be a positive integer"
        parsed = int(stripped)
    else:
        return False, None, f"{field_name} must be a positive integer"

    if parsed <= 0:
        return False, None, f"{field_name} must be a positive integer"
    if parsed > MAX_ENTITY_ID:
        return False, None, f"{field_name} is too large"

    return True, parsed, None


def validate_pin_delta(value: object) -> tuple[bool, int | None, str | None]:
    """
    Validate a signed pin quota change.

    Examples:
        >>> validate_pin_delta(-1)
        (True, -1, None)
        >>> validate_pin_delta(0)
        (False, None, 'Pin delta must be a non-zero integer')
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, None, "Pin delta must be a non-zero integer"
    if value == 0:
        return False, None, "Pin delta must be a non-zero integer"
    return True, value, None


def validate_pin_quantity(
    value: object, max_quantity: int
) -> tuple[bool, int | None, str | None]:
    """
    Validate a requested pin quantity (1..max_quantity).

    Examples:
        >>> validate_pin_quantity(5, 1000)
        (True, 5, None)
        >>> validate_pin_quantity(1001, 1000)
        (False, None, 'Requested pins must be between 1 and 1000')
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, None, f"Requested pins must be between 1 and {max_quantity}"
    if value < 1 or value > max_quantity:
        return False, None, f"Requested pins must be between 1 and {max_quantity}"
    return True, value, None


def validate_name(value: object, field_name: str = "name") -> tuple[bool, str | None, str | None]:
    """Validate a non-empty display name (max 255 chars)."""
    if not isinstance(value, str) or not value.strip():
        return False, None, f"{field_name} is required"
    cleaned = " ".join(value.split())
    if len(cleaned) > 255:
        return False, None, f"{field_name} is too long"
    return True, cleaned, None


def require_entity_id(value: object, field_name: str = "id") -> int:
    """Parse an identifier or raise ValidationError."""
    is_valid, parsed, error = validate_entity_id(value, field_name)
    if not is_valid:
        raise ValidationError(error)
    return parsed


def require_pin_delta(value: object) -> int:
    """Parse a pin delta or raise ValidationError."""
    is_valid, parsed, error = validate_pin_delta(value)
    if not is_valid:
        raise ValidationError(error)
    return parsed


def require_name(value: object, field_name: str = "name") -> str:
    """Parse a display name or raise ValidationError."""
    is_valid, parsed, error = validate_name(value, field_name)
    if not is_valid:
        raise ValidationError(error)
    return parsed
