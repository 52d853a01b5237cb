"""
Unit tests for error classification.

Tests cover:
- Missing stored procedure detection (PostgreSQL code, messages)
- Transient error detection
- Partial failure amount bookkeeping
"""

from decimal import Decimal

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
)

from commission_engine.services.commission.pool_accountant import LedgerLine
from commission_engine.utils.exceptions import (
    DistributionError,
    PartialDistributionFailure,
    ProcedureUnavailable,
    QuotaExhausted,
    TransientStoreError,
    is_procedure_missing,
    is_transient,
)


class UndefinedFunctionError(Exception):
    """Stand-in for the driver error carrying a SQLSTATE."""

    sqlstate = "42883"


class TestProcedureMissing:
    """Test is_procedure_missing()."""

    def test_postgres_sqlstate(self):
        exc = ProgrammingError(
            "SELECT distribute_affiliate_commission($1, $2, $3)",
            {},
            UndefinedFunctionError("function is undefined"),
        )
        assert is_procedure_missing(exc) is True

    def test_postgres_message(self):
        exc = ProgrammingError(
            "SELECT 1",
            {},
            Exception(
                "function distribute_affiliate_commission(integer, integer, "
                "unknown) does not exist"
            ),
        )
        assert is_procedure_missing(exc) is True

    def test_sqlite_message(self):
        exc = OperationalError(
            "SELECT 1",
            {},
            Exception("no such function: distribute_affiliate_commission"),
        )
        assert is_procedure_missing(exc) is True

    def test_explicit_signal(self):
        assert is_procedure_missing(ProcedureUnavailable("gone")) is True

    def test_other_errors_are_not_missing_procedure(self):
        exc = IntegrityError("INSERT", {}, Exception("duplicate key"))
        assert is_procedure_missing(exc) is False
        assert is_procedure_missing(ValueError("does not exist")) is False


class TestTransient:
    """Test is_transient()."""

    def test_interface_error(self):
        exc = InterfaceError("SELECT 1", {}, Exception("connection closed"))
        assert is_transient(exc) is True

    def test_timeouts(self):
        assert is_transient(TimeoutError()) is True
        assert is_transient(TransientStoreError("timeout")) is True

    def test_operational_error_not_missing_function(self):
        exc = OperationalError("SELECT 1", {}, Exception("server closed"))
        assert is_transient(exc) is True

    def test_missing_function_is_not_transient(self):
        exc = OperationalError(
            "SELECT 1", {}, Exception("no such function: x")
        )
        assert is_transient(exc) is False

    def test_integrity_error_not_transient(self):
        exc = IntegrityError("INSERT", {}, Exception("duplicate key"))
        assert is_transient(exc) is False


class TestErrorTypes:
    """Test exception payloads."""

    def test_partial_failure_amounts(self):
        written = [
            LedgerLine(level=1, recipient_id=1, amount=Decimal("500")),
            LedgerLine(level=2, recipient_id=2, amount=Decimal("100")),
        ]
        unwritten = [
            LedgerLine(level=0, recipient_id=None, amount=Decimal("200")),
        ]
        error = PartialDistributionFailure(9, written, unwritten)

        assert isinstance(error, DistributionError)
        assert error.customer_id == 9
        assert error.written_amount == Decimal("600")
        assert error.unwritten_amount == Decimal("200")
        assert "2 entries" in str(error)

    def test_quota_exhausted_message(self):
        error = QuotaExhausted(promoter_id=3, available=0)
        assert error.required == 1
        assert "Promoter 3 has 0 pins" in str(error)
