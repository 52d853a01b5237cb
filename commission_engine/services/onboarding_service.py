"""
Customer onboarding workflow.

Quota gate -> customer creation -> commission distribution, in that order.
Pin deduction completes (committed, definite outcome) before anything else
is attempted, so a customer can never be created without being paid for.
Distribution failures do not undo onboarding; they are reported next to
the created customer for retry or reconciliation.
"""

from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.commission_schedule import CommissionSchedule
from commission_engine.config.settings import Settings
from commission_engine.models.customer import Customer
from commission_engine.models.enums import PinActionType
from commission_engine.repositories.customer_repository import (
    CustomerRepository,
)
from commission_engine.services.commission.orchestrator import (
    DistributionOrchestrator,
)
from commission_engine.services.commission.results import DistributionResult
from commission_engine.services.pins.quota_gate import PinQuotaGate
from commission_engine.utils.exceptions import (
    CommissionEngineError,
    CustomerCreationError,
)
from commission_engine.validators import require_entity_id, require_name


@dataclass
class OnboardingOutcome:
    """
    Result of onboarding one customer.

    Onboarding and distribution are separate outcomes: ``customer`` is
    always set, while exactly one of ``distribution`` and
    ``distribution_error`` is.
    """

    customer: Customer
    pin_balance: int
    pin_audit_recorded: bool
    distribution: DistributionResult | None = None
    distribution_error: CommissionEngineError | None = None

    @property
    def distribution_succeeded(self) -> bool:
        return self.distribution is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "customer_id": self.customer.id,
            "pin_balance": self.pin_balance,
            "pin_audit_recorded": self.pin_audit_recorded,
            "distribution": (
                self.distribution.to_dict() if self.distribution else None
            ),
            "distribution_error": (
                str(self.distribution_error)
                if self.distribution_error
                else None
            ),
        }


class OnboardingService:
    """Sequences quota, customer creation and distribution."""

    def __init__(
        self,
        session: AsyncSession,
        redis_client: Any | None = None,
        schedule: CommissionSchedule | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Initialize onboarding service.

        Args:
            session: Async database session
            redis_client: Optional Redis client for summary invalidation
            schedule: Commission schedule override
            config: Settings override
        """
        self.session = session
        self.customer_repo = CustomerRepository(session)
        self.quota_gate = PinQuotaGate(session)
        self.orchestrator = DistributionOrchestrator(
            session,
            redis_client=redis_client,
            schedule=schedule,
            config=config,
        )

    async def onboard_customer(
        self,
        initiator_promoter_id: int,
        name: str,
        mobile: str | None = None,
    ) -> OnboardingOutcome:
        """
        Onboard a customer for a promoter.

        Args:
            initiator_promoter_id: Promoter spending the pin
            name: Customer name
            mobile: Optional phone number

        Returns:
            OnboardingOutcome

        Raises:
            ValidationError: bad input (no side effects)
            QuotaExhausted: no pin available (no side effects)
            CustomerCreationError: customer insert failed; the pin was
                returned to the promoter
        """
        initiator_promoter_id = require_entity_id(
            initiator_promoter_id, "initiator_promoter_id"
        )
        name = require_name(name)

        # 1. Pin first: QuotaExhausted stops everything here
        pin_balance = await self.quota_gate.consume(initiator_promoter_id)

        # 2. Customer
        customer = await self._create_customer(
            initiator_promoter_id, name, mobile, pin_balance
        )

        # 3. Audit row referencing the customer
        audit = await self.quota_gate.record_audit(
            promoter_id=initiator_promoter_id,
            delta=-1,
            action_type=PinActionType.CUSTOMER_CREATION,
            balance_after=pin_balance,
            customer_id=customer.id,
            note=f"Customer #{customer.id} onboarded",
        )

        outcome = OnboardingOutcome(
            customer=customer,
            pin_balance=pin_balance,
            pin_audit_recorded=audit is not None,
        )

        # 4. Distribution, reported separately
        try:
            outcome.distribution = await self.orchestrator.distribute(
                customer.id, initiator_promoter_id
            )
        except CommissionEngineError as e:
            logger.error(
                f"Customer onboarded but commission distribution failed: {e}",
                extra={
                    "customer_id": customer.id,
                    "initiator_promoter_id": initiator_promoter_id,
                    "error_type": type(e).__name__,
                },
            )
            outcome.distribution_error = e

        logger.info(
            "Customer onboarded",
            extra={
                "customer_id": customer.id,
                "initiator_promoter_id": initiator_promoter_id,
                "distributed": outcome.distribution_succeeded,
            },
        )
        return outcome

    async def _create_customer(
        self,
        initiator_promoter_id: int,
        name: str,
        mobile: str | None,
        pin_balance: int,
    ) -> Customer:
        try:
            customer = await self.customer_repo.create_customer(
                name=name,
                parent_promoter_id=initiator_promoter_id,
                mobile=mobile,
            )
            await self.session.commit()
            # Detached so later rollbacks in this session do not expire it
            self.session.expunge(customer)
            return customer
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Customer creation failed after pin deduction, refunding: {e}",
                extra={"initiator_promoter_id": initiator_promoter_id},
            )
            # The deduction is audited before its refund
            await self.quota_gate.record_audit(
                promoter_id=initiator_promoter_id,
                delta=-1,
                action_type=PinActionType.CUSTOMER_CREATION,
                balance_after=pin_balance,
                note="customer creation failed",
            )
            await self.quota_gate.adjust_pins(
                initiator_promoter_id,
                1,
                note="refund: customer creation failed",
                action_type=PinActionType.REFUND,
            )
            raise CustomerCreationError(
                f"Could not create customer for promoter "
                f"{initiator_promoter_id}: {e}"
            ) from e
