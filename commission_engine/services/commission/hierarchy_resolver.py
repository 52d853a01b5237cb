"""
Hierarchy resolver.

Walks parent references upward from the initiating promoter to find the
commission recipients of one onboarding event.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.repositories.promoter_repository import (
    PromoterRepository,
)


@dataclass(frozen=True)
class ResolvedLevel:
    """One recipient found by the walk."""

    level: int
    recipient_id: int


class HierarchyResolver:
    """Resolves up to ``max_levels`` recipients for an initiator."""

    def __init__(self, session: AsyncSession, max_levels: int) -> None:
        """
        Initialize hierarchy resolver.

        Args:
            session: Async database session
            max_levels: Hard cap on the number of hops
        """
        self.session = session
        self.max_levels = max_levels
        self.promoter_repo = PromoterRepository(session)

    async def resolve(
        self, initiator_promoter_id: int | None
    ) -> list[ResolvedLevel]:
        """
        Walk the promoter chain.

        Level 1 is the initiator itself, level n+1 is level n's parent. The
        walk stops at the first missing or null reference, after
        ``max_levels`` hops, or when a promoter is seen twice.

        Args:
            initiator_promoter_id: Promoter who onboarded the customer

        Returns:
            Ordered list of resolved levels (empty if the initiator itself
            does not exist)
        """
        resolved: list[ResolvedLevel] = []
        seen: set[int] = set()
        current_id = initiator_promoter_id

        for level in range(1, self.max_levels + 1):
            if current_id is None:
                break

            # Paid at most once per customer; skipped levels fall to admin
            if current_id in seen:
                logger.warning(
                    "Cycle in promoter hierarchy, walk stopped",
                    extra={
                        "initiator_promoter_id": initiator_promoter_id,
                        "promoter_id": current_id,
                        "level": level,
                    },
                )
                break

            exists, parent_id = await self.promoter_repo.get_parent_id(
                current_id
            )
            if not exists:
                break

            seen.add(current_id)
            resolved.append(ResolvedLevel(level=level, recipient_id=current_id))
            current_id = parent_id

        logger.debug(
            "Promoter hierarchy resolved",
            extra={
                "initiator_promoter_id": initiator_promoter_id,
                "depth": len(resolved),
            },
        )
        return resolved
