"""
Wallet aggregator.

Balances are a pure function of the ledger: the sum and count of credited
entries per recipient. The ``wallet_projections`` table and the Redis
summary cache are conveniences that can be dropped and rebuilt at any time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config.settings import Settings, settings
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.wallet import wallet_key
from commission_engine.repositories.commission_repository import (
    CommissionRepository,
)
from commission_engine.repositories.wallet_repository import WalletRepository
from commission_engine.services.wallet.wallet_cache import WalletCache
from commission_engine.utils.datetime_utils import ensure_aware
from commission_engine.validators import require_entity_id


def _entry_view(record: CommissionRecord) -> dict[str, Any]:
    return {
        "transaction_id": record.transaction_id,
        "customer_id": record.customer_id,
        "level": record.level,
        "amount": record.amount,
        "created_at": ensure_aware(record.created_at),
    }


@dataclass
class CommissionSummary:
    """Ledger-derived wallet figures for one recipient."""

    recipient_id: int | None
    balance: Decimal
    total_earned: Decimal
    commission_count: int
    last_event_at: datetime | None = None
    recent_entries: list[dict[str, Any]] = field(default_factory=list)
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "balance": str(self.balance),
            "total_earned": str(self.total_earned),
            "commission_count": self.commission_count,
            "last_event_at": (
                self.last_event_at.isoformat() if self.last_event_at else None
            ),
            "recent_entries": [
                {
                    **entry,
                    "amount": str(entry["amount"]),
                    "created_at": entry["created_at"].isoformat(),
                }
                for entry in self.recent_entries
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommissionSummary":
        last_event_at = data.get("last_event_at")
        return cls(
            recipient_id=data["recipient_id"],
            balance=Decimal(data["balance"]),
            total_earned=Decimal(data["total_earned"]),
            commission_count=data["commission_count"],
            last_event_at=(
                datetime.fromisoformat(last_event_at) if last_event_at else None
            ),
            recent_entries=[
                {
                    **entry,
                    "amount": Decimal(entry["amount"]),
                    "created_at": datetime.fromisoformat(entry["created_at"]),
                }
                for entry in data.get("recent_entries", [])
            ],
            from_cache=True,
        )


@dataclass
class WalletDrift:
    """Disagreement between the projection and the ledger."""

    wallet_key: str
    recipient_id: int | None
    ledger_total: Decimal
    ledger_count: int
    projected_total: Decimal | None
    projected_count: int | None

    @property
    def difference(self) -> Decimal:
        return self.ledger_total - (self.projected_total or Decimal("0"))


class WalletAggregator:
    """Read model over the commission ledger."""

    def __init__(
        self,
        session: AsyncSession,
        redis_client: Any | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Initialize wallet aggregator.

        Args:
            session: Async database session
            redis_client: Optional Redis client for the summary cache
            config: Settings override (defaults to process settings)
        """
        config = config or settings
        self.session = session
        self.commission_repo = CommissionRepository(session)
        self.wallet_repo = WalletRepository(session)
        self.cache = WalletCache(redis_client, config.wallet_cache_ttl_seconds)

    async def commission_summary(
        self, recipient_id: int | None, recent_limit: int = 10
    ) -> CommissionSummary:
        """
        Balance, total earned, count and recent entries of a recipient.

        Args:
            recipient_id: Promoter ID, or None for the admin account
            recent_limit: Number of recent entries to include

        Returns:
            CommissionSummary computed from credited ledger entries
        """
        if recipient_id is not None:
            recipient_id = require_entity_id(recipient_id, "recipient_id")

        cached = await self.cache.get(recipient_id)
        if cached is not None:
            return CommissionSummary.from_dict(cached)

        totals = await self.commission_repo.get_recipient_totals(recipient_id)
        recent = await self.commission_repo.get_recent_entries(
            recipient_id, limit=recent_limit
        )

        summary = CommissionSummary(
            recipient_id=recipient_id,
            balance=totals.total,
            total_earned=totals.total,
            commission_count=totals.count,
            last_event_at=totals.last_event_at,
            recent_entries=[_entry_view(r) for r in recent],
        )

        await self._warn_on_drift(summary)
        await self.cache.set(recipient_id, summary.to_dict())
        return summary

    async def _warn_on_drift(self, summary: CommissionSummary) -> None:
        projection = await self.wallet_repo.get_for_recipient(
            summary.recipient_id
        )
        if projection is None:
            return
        if (
            projection.total_earned != summary.total_earned
            or projection.commission_count != summary.commission_count
        ):
            logger.warning(
                "Wallet projection disagrees with ledger, ledger wins",
                extra={
                    "wallet_key": projection.wallet_key,
                    "ledger_total": str(summary.total_earned),
                    "projected_total": str(projection.total_earned),
                    "ledger_count": summary.commission_count,
                    "projected_count": projection.commission_count,
                },
            )

    async def record_credits(self, records: list[CommissionRecord]) -> bool:
        """
        Refresh the projection after ledger writes.

        Best effort: a failure leaves the projection stale (caught by
        drift detection) and never affects the ledger.

        Args:
            records: Ledger entries that were just committed

        Returns:
            True if the projection was updated
        """
        if not records:
            return True

        try:
            for record in records:
                await self.wallet_repo.apply_credit(
                    record.recipient_id,
                    record.amount,
                    ensure_aware(record.created_at),
                )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(
                f"Wallet projection refresh failed: {type(e).__name__}: {e}",
                extra={"entries": len(records)},
            )
            return False
        return True

    async def invalidate(self, recipient_ids: list[int | None]) -> int:
        """Drop cached summaries of recipients touched by a distribution."""
        return await self.cache.invalidate(recipient_ids)

    async def find_drift(self) -> list[WalletDrift]:
        """
        Compare every projection with the ledger.

        Returns:
            One entry per recipient whose projection is missing or differs
        """
        ledger = {
            wallet_key(agg.recipient_id): agg
            for agg in await self.commission_repo.get_totals_by_recipient()
        }
        projections = {p.wallet_key: p for p in await self.wallet_repo.get_all()}

        drift: list[WalletDrift] = []
        for key in sorted(set(ledger) | set(projections)):
            agg = ledger.get(key)
            projection = projections.get(key)

            ledger_total = agg.total if agg else Decimal("0")
            ledger_count = agg.count if agg else 0
            if (
                projection is not None
                and projection.total_earned == ledger_total
                and projection.commission_count == ledger_count
            ):
                continue

            drift.append(
                WalletDrift(
                    wallet_key=key,
                    recipient_id=(
                        agg.recipient_id if agg else projection.recipient_id
                    ),
                    ledger_total=ledger_total,
                    ledger_count=ledger_count,
                    projected_total=(
                        projection.total_earned if projection else None
                    ),
                    projected_count=(
                        projection.commission_count if projection else None
                    ),
                )
            )

        if drift:
            logger.warning(
                f"Wallet drift detected for {len(drift)} recipients",
                extra={"wallet_keys": [d.wallet_key for d in drift]},
            )
        return drift

    async def rebuild(self) -> int:
        """
        Recompute every projection from the ledger and commit.

        Returns:
            Number of projections written
        """
        aggregates = await self.commission_repo.get_totals_by_recipient()
        rows = [
            {
                "recipient_id": agg.recipient_id,
                "balance": agg.total,
                "total_earned": agg.total,
                "commission_count": agg.count,
                "last_event_at": agg.last_event_at,
            }
            for agg in aggregates
        ]
        written = await self.wallet_repo.replace_all(rows)
        await self.session.commit()

        await self.invalidate([agg.recipient_id for agg in aggregates])
        logger.info(f"Wallet projections rebuilt: {written}")
        return written
