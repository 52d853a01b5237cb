"""
Exception handling utilities.

Defines the error taxonomy of the engine and classifies raw database
errors into the categories the orchestrator acts on.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class CommissionEngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(CommissionEngineError):
    """Malformed or missing input; raised before any store access."""


class QuotaExhausted(CommissionEngineError):
    """Promoter does not hold enough pins; no side effects were made."""

    def __init__(self, promoter_id: int, available: int | None, required: int = 1):
        self.promoter_id = promoter_id
        self.available = available
        self.required = required
        super().__init__(
            f"Promoter {promoter_id} has {available if available is not None else 'no'} "
            f"pins, {required} required"
        )


class DuplicateDistribution(CommissionEngineError):
    """
    Customer already has credited commission entries.

    A no-op success carrying the prior totals, not a failure. The
    orchestrator converts it into a skipped result.
    """

    def __init__(
        self,
        customer_id: int,
        record_count: int,
        total_amount: Decimal,
        levels_distributed: int = 0,
        admin_amount: Decimal = Decimal("0"),
    ):
        self.customer_id = customer_id
        self.record_count = record_count
        self.total_amount = total_amount
        self.levels_distributed = levels_distributed
        self.admin_amount = admin_amount
        super().__init__(
            f"Commission already distributed for customer {customer_id} "
            f"({total_amount} across {record_count} records)"
        )


class DistributionError(CommissionEngineError):
    """A distribution pass did not complete."""

    def __init__(self, message: str, customer_id: int | None = None):
        self.customer_id = customer_id
        super().__init__(message)


class PartialDistributionFailure(DistributionError):
    """
    Fallback path wrote some but not all ledger entries.

    Not retried automatically; needs manual reconciliation.
    """

    def __init__(
        self,
        customer_id: int,
        written: list[Any],
        unwritten: list[Any],
        cause: BaseException | None = None,
    ):
        self.written = written
        self.unwritten = unwritten
        self.cause = cause
        self.written_amount = sum(
            (line.amount for line in written), Decimal("0")
        )
        self.unwritten_amount = sum(
            (line.amount for line in unwritten), Decimal("0")
        )
        super().__init__(
            f"Partial distribution for customer {customer_id}: "
            f"{len(written)} entries ({self.written_amount}) written, "
            f"{len(unwritten)} entries ({self.unwritten_amount}) missing",
            customer_id=customer_id,
        )


class TransientStoreError(CommissionEngineError):
    """Network/timeout failure; the outcome of the call is unknown."""


class ProcedureUnavailable(CommissionEngineError):
    """The atomic stored procedure cannot be reached (missing function)."""


class CustomerCreationError(CommissionEngineError):
    """Customer record could not be created after quota was reserved."""


class PinRequestError(CommissionEngineError):
    """Pin request workflow rule violated."""


# Error codes / messages that mean "the procedure does not exist"
MISSING_PROCEDURE_CODES = frozenset({"42883", "PGRST202"})
MISSING_PROCEDURE_MARKERS = (
    "does not exist",
    "no such function",
    "could not find the function",
    "undefinedfunction",
)

# Must retry with care - the outcome of the statement is unknown
TRANSIENT_ERRORS = (
    DisconnectionError,
    InterfaceError,
    PoolTimeoutError,
    TimeoutError,
    ConnectionError,
)


def _error_code(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_procedure_missing(exc: BaseException) -> bool:
    """
    Check if an error means the stored procedure is not installed.

    Args:
        exc: Exception raised by the procedure call

    Returns:
        True for "function not found" class failures
    """
    if isinstance(exc, ProcedureUnavailable):
        return True
    if not isinstance(exc, (ProgrammingError, OperationalError, DBAPIError)):
        return False
    if _error_code(exc) in MISSING_PROCEDURE_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in MISSING_PROCEDURE_MARKERS)


def is_transient(exc: BaseException) -> bool:
    """
    Check if an error is a network/timeout failure.

    Args:
        exc: Exception to check

    Returns:
        True if the call may be retried (after re-running the idempotency check)
    """
    if isinstance(exc, (TransientStoreError, *TRANSIENT_ERRORS)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError) and not is_procedure_missing(exc):
        return True
    return False
