"""
Ledger reference generation.
"""

import uuid

from commission_engine.config.commission_schedule import ADMIN_LEVEL


COMMISSION_PREFIX = "COMM"
ADMIN_PREFIX = "COMM-ADMIN"


def generate_transaction_id(customer_id: int, level: int) -> str:
    """
    Build a globally unique ledger reference.

    The customer and level make references readable in reports; the random
    suffix guarantees uniqueness even for repeated passes over one customer.

    Examples:
        >>> generate_transaction_id(42, 1)[:10]
        'COMM-42-L1'
        >>> generate_transaction_id(42, 0).startswith("COMM-ADMIN-42-")
        True
    """
    suffix = uuid.uuid4().hex[:16]
    if level == ADMIN_LEVEL:
        return f"{ADMIN_PREFIX}-{customer_id}-{suffix}"
    return f"{COMMISSION_PREFIX}-{customer_id}-L{level}-{suffix}"
