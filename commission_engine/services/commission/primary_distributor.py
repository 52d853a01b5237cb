"""
Primary distribution path.

One call to the ``distribute_affiliate_commission`` stored procedure does
the duplicate check, the hierarchy walk and every ledger write inside a
single database transaction, serialized per customer by an advisory lock.
"""

import json
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.services.commission.results import (
    PrimaryResult,
    SkippedResult,
)
from commission_engine.utils.exceptions import (
    DistributionError,
    ProcedureUnavailable,
    TransientStoreError,
    is_procedure_missing,
    is_transient,
)


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _parse_payload(raw: Any) -> dict[str, Any]:
    # asyncpg returns json columns as text
    if isinstance(raw, (str, bytes)):
        return json.loads(raw)
    if isinstance(raw, dict):
        return raw
    raise DistributionError(
        f"Unexpected commission procedure result: {type(raw).__name__}"
    )


class PrimaryDistributor:
    """Invokes the atomic stored procedure."""

    def __init__(
        self,
        session: AsyncSession,
        schedule: CommissionSchedule,
        procedure_name: str,
    ) -> None:
        """
        Initialize primary distributor.

        Args:
            session: Async database session
            schedule: Commission schedule passed to the procedure
            procedure_name: Name of the stored procedure
        """
        if not procedure_name.isidentifier():
            raise ValueError(f"Invalid procedure name: {procedure_name!r}")
        self.session = session
        self.schedule = schedule
        self.procedure_name = procedure_name

    def _statement(self):
        return text(
            f"SELECT {self.procedure_name}"
            "(:customer_id, :initiator_promoter_id, :level_amounts)"
        )

    def _level_amounts_arg(self) -> str:
        return ",".join(str(amount) for amount in self.schedule.amounts())

    async def distribute(
        self, customer_id: int, initiator_promoter_id: int
    ) -> PrimaryResult | SkippedResult:
        """
        Run the whole distribution atomically.

        Args:
            customer_id: Onboarding event
            initiator_promoter_id: Promoter who onboarded the customer

        Returns:
            PrimaryResult, or SkippedResult if the procedure found prior
            credited entries

        Raises:
            ProcedureUnavailable: procedure missing; caller may fall back
            TransientStoreError: outcome unknown; retry re-runs the check
            DistributionError: procedure ran and reported a failure
        """
        params = {
            "customer_id": customer_id,
            "initiator_promoter_id": initiator_promoter_id,
            "level_amounts": self._level_amounts_arg(),
        }

        try:
            result = await self.session.execute(self._statement(), params)
            payload = _parse_payload(result.scalar())
            if payload.get("success"):
                await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            if is_procedure_missing(e):
                raise ProcedureUnavailable(
                    f"Stored procedure {self.procedure_name} is not available"
                ) from e
            if is_transient(e):
                raise TransientStoreError(
                    f"Commission procedure call failed, outcome unknown: {e}"
                ) from e
            raise DistributionError(
                f"Commission procedure call failed: {e}",
                customer_id=customer_id,
            ) from e

        if not payload.get("success"):
            await self.session.rollback()
            error = payload.get("error") or "unknown error"
            logger.error(
                f"Commission procedure reported failure: {error}",
                extra={"customer_id": customer_id},
            )
            raise DistributionError(
                f"Commission procedure failed: {error}",
                customer_id=customer_id,
            )

        recipient_ids = payload.get("recipient_ids") or []

        if payload.get("skipped"):
            return SkippedResult(
                customer_id=customer_id,
                total_distributed=_decimal(payload.get("total_distributed")),
                levels_distributed=int(payload.get("levels_distributed") or 0),
                admin_fallback_amount=_decimal(
                    payload.get("admin_fallback_amount")
                ),
                record_count=int(payload.get("record_count") or 0),
            )

        return PrimaryResult(
            customer_id=customer_id,
            total_distributed=_decimal(payload.get("total_distributed")),
            levels_distributed=int(payload.get("levels_distributed") or 0),
            admin_fallback_amount=_decimal(payload.get("admin_fallback_amount")),
            recipient_ids=list(recipient_ids),
            transaction_ids=list(payload.get("transaction_ids") or []),
        )
