"""
Distribution orchestrator.

Entry point for commission distribution. Tries the atomic stored procedure
first and switches to the statement-by-statement fallback path only when
the procedure is missing and the fallback mode is enabled in settings.
"""

from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.config.settings import Settings, settings
from commission_engine.repositories.promoter_repository import (
    PromoterRepository,
)
from commission_engine.services.commission.fallback_distributor import (
    FallbackDistributor,
)
from commission_engine.services.commission.primary_distributor import (
    PrimaryDistributor,
)
from commission_engine.services.commission.results import (
    DistributionResult,
    FallbackResult,
    SkippedResult,
)
from commission_engine.services.wallet.wallet_aggregator import (
    WalletAggregator,
)
from commission_engine.utils.exceptions import (
    DistributionError,
    DuplicateDistribution,
    ProcedureUnavailable,
    ValidationError,
)
from commission_engine.validators import require_entity_id


class DistributionOrchestrator:
    """
    Sequences duplicate check, hierarchy walk and ledger writes.

    Outcomes:
        - PrimaryResult / FallbackResult on a fresh distribution
        - SkippedResult when the customer was already paid
        - DistributionError (or PartialDistributionFailure) on failure
        - TransientStoreError when the outcome is unknown; calling
          ``distribute`` again is safe because the duplicate check re-runs
    """

    def __init__(
        self,
        session: AsyncSession,
        redis_client: Any | None = None,
        schedule: CommissionSchedule | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Initialize distribution orchestrator.

        Args:
            session: Async database session
            redis_client: Optional Redis client for summary invalidation
            schedule: Commission schedule (defaults to settings)
            config: Settings override (defaults to process settings)
        """
        self.config = config or settings
        self.session = session
        self.schedule = schedule or CommissionSchedule.from_settings(
            self.config
        )
        self.promoter_repo = PromoterRepository(session)
        self.wallet_aggregator = WalletAggregator(
            session, redis_client=redis_client, config=self.config
        )
        self.primary = PrimaryDistributor(
            session,
            self.schedule,
            self.config.commission_procedure_name,
        )
        self.fallback = FallbackDistributor(
            session, self.schedule, self.wallet_aggregator
        )

    async def distribute(
        self, customer_id: int, initiator_promoter_id: int
    ) -> DistributionResult:
        """
        Distribute the commission pool for one onboarding event.

        Args:
            customer_id: Newly created customer
            initiator_promoter_id: Promoter who onboarded the customer

        Returns:
            PrimaryResult, FallbackResult or SkippedResult

        Raises:
            ValidationError: malformed ids (nothing touched)
            DistributionError: distribution did not complete
            TransientStoreError: outcome unknown
        """
        customer_id = require_entity_id(customer_id, "customer_id")
        initiator_promoter_id = require_entity_id(
            initiator_promoter_id, "initiator_promoter_id"
        )

        logger.info(
            "Commission distribution started",
            extra={
                "customer_id": customer_id,
                "initiator_promoter_id": initiator_promoter_id,
                "schedule": repr(self.schedule),
            },
        )

        try:
            result = await self.primary.distribute(
                customer_id, initiator_promoter_id
            )
        except ProcedureUnavailable as e:
            result = await self._run_fallback(
                customer_id, initiator_promoter_id, e
            )

        if isinstance(result, SkippedResult):
            logger.info(
                "Commission distribution skipped, customer already paid",
                extra={
                    "customer_id": customer_id,
                    "record_count": result.record_count,
                    "total_distributed": str(result.total_distributed),
                },
            )
            return result

        await self.wallet_aggregator.invalidate(result.recipient_ids)

        logger.info(
            f"Commission distributed via {result.method.value} path",
            extra={
                "customer_id": customer_id,
                "initiator_promoter_id": initiator_promoter_id,
                "total_distributed": str(result.total_distributed),
                "levels_distributed": result.levels_distributed,
                "admin_fallback_amount": str(result.admin_fallback_amount),
            },
        )
        return result

    async def _run_fallback(
        self,
        customer_id: int,
        initiator_promoter_id: int,
        cause: ProcedureUnavailable,
    ) -> FallbackResult | SkippedResult:
        if not self.config.commission_fallback_enabled:
            logger.error(
                "Commission procedure unavailable and fallback disabled",
                extra={"customer_id": customer_id},
            )
            raise DistributionError(
                "Commission procedure unavailable and fallback mode is "
                "disabled",
                customer_id=customer_id,
            ) from cause

        logger.warning(
            "Commission procedure unavailable, using fallback path "
            "(no cross-statement atomicity)",
            extra={
                "customer_id": customer_id,
                "initiator_promoter_id": initiator_promoter_id,
                "procedure": self.config.commission_procedure_name,
                "cause": str(cause.__cause__ or cause),
            },
        )

        try:
            return await self.fallback.distribute(
                customer_id, initiator_promoter_id
            )
        except DuplicateDistribution as dup:
            return SkippedResult.from_duplicate(dup)

    async def manual_distribute(
        self,
        customer_id: int,
        initiator_promoter_id: int,
        admin_promoter_id: int,
    ) -> DistributionResult:
        """
        Administrative (re)distribution for a customer.

        Used when the automatic trigger failed. The duplicate check still
        applies, so an already paid customer yields a SkippedResult.

        Args:
            customer_id: Customer to distribute for
            initiator_promoter_id: Promoter who onboarded the customer
            admin_promoter_id: Promoter invoking the action (must be admin)

        Raises:
            ValidationError: invoker is not an administrator
        """
        admin_promoter_id = require_entity_id(
            admin_promoter_id, "admin_promoter_id"
        )
        if not await self.promoter_repo.is_admin(admin_promoter_id):
            raise ValidationError(
                f"Promoter {admin_promoter_id} is not allowed to distribute "
                f"commissions manually"
            )

        logger.info(
            "Manual commission distribution requested",
            extra={
                "customer_id": customer_id,
                "initiator_promoter_id": initiator_promoter_id,
                "admin_promoter_id": admin_promoter_id,
            },
        )
        return await self.distribute(customer_id, initiator_promoter_id)
