"""
Single source of truth for the commission schedule.

Every component that needs a level amount, the pool size or the hop cap
reads it from a CommissionSchedule; nothing re-encodes the numbers.
"""

from decimal import Decimal
from typing import NamedTuple

from commission_engine.config.settings import Settings, settings


# Level number reserved for the administrative remainder entry
ADMIN_LEVEL = 0


class CommissionLevelConfig(NamedTuple):
    """Configuration of one hierarchy level."""

    level: int  # 1 = initiator, 2 = initiator's parent, ...
    amount: Decimal


class CommissionSchedule:
    """
    Fixed commission schedule.

    Levels are 1-based; level 1 pays the initiating promoter and level n+1
    pays level n's parent. Amounts for levels nobody occupies fall through
    to the administrative remainder.
    """

    def __init__(
        self, level_amounts: list[Decimal], total_pool: Decimal
    ) -> None:
        if not level_amounts:
            raise ValueError("Commission schedule needs at least one level")
        if any(amount <= 0 for amount in level_amounts):
            raise ValueError("Commission level amounts must be positive")
        if sum(level_amounts, Decimal("0")) != total_pool:
            raise ValueError(
                f"Level amounts sum to {sum(level_amounts)}, "
                f"expected pool of {total_pool}"
            )

        self.total_pool = Decimal(total_pool)
        self.levels: dict[int, CommissionLevelConfig] = {
            idx: CommissionLevelConfig(level=idx, amount=Decimal(amount))
            for idx, amount in enumerate(level_amounts, start=1)
        }

    @property
    def max_levels(self) -> int:
        return len(self.levels)

    def amount_for(self, level: int) -> Decimal:
        """Scheduled amount for a level (0 for unknown levels)."""
        config = self.levels.get(level)
        return config.amount if config else Decimal("0")

    def amounts(self) -> list[Decimal]:
        """Amounts ordered from level 1 upwards."""
        return [self.levels[i].amount for i in sorted(self.levels)]

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "CommissionSchedule":
        config = config or settings
        return cls(config.get_level_amounts(), config.commission_total_pool)

    def __repr__(self) -> str:
        amounts = "/".join(str(a) for a in self.amounts())
        return f"CommissionSchedule({amounts}, pool={self.total_pool})"


def get_default_schedule() -> CommissionSchedule:
    """Schedule built from the process settings."""
    return CommissionSchedule.from_settings(settings)
