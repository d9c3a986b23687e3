"""Automation bonus tier table and the pure tier calculation."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class AutomationBonusTier:
    id: str
    name: str
    min_burn: int
    max_burn: int | None  # None: no upper bound
    bonus: int

    def contains(self, monthly_burn: int) -> bool:
        if monthly_burn < self.min_burn:
            return False
        return self.max_burn is None or monthly_burn <= self.max_burn


AUTOMATION_BONUS_TIERS: tuple[AutomationBonusTier, ...] = (
    AutomationBonusTier(
        id="low", name="Low Volume", min_burn=100_000, max_burn=299_999, bonus=10_000
    ),
    AutomationBonusTier(
        id="medium",
        name="Medium Volume",
        min_burn=300_000,
        max_burn=599_999,
        bonus=40_000,
    ),
    AutomationBonusTier(
        id="high",
        name="High Volume",
        min_burn=600_000,
        max_burn=1_399_999,
        bonus=100_000,
    ),
    AutomationBonusTier(
        id="enterprise",
        name="Enterprise",
        min_burn=1_400_000,
        max_burn=None,
        bonus=400_000,
    ),
)


@dataclass(frozen=True)
class TierProgress:
    monthly_burn: int
    window_days: int
    daily_rate: float
    current_tier: AutomationBonusTier | None
    next_tier: AutomationBonusTier | None
    progress: int
    credits_to_next_tier: int
    days_to_next_tier: int | None
    projected_bonus_change: int


def find_tier(
    monthly_burn: int, tiers: tuple[AutomationBonusTier, ...] = AUTOMATION_BONUS_TIERS
) -> AutomationBonusTier | None:
    for tier in tiers:
        if tier.contains(monthly_burn):
            return tier
    return None


def calculate_tier_progress(
    monthly_burn: int,
    window_days: int = 30,
    tiers: tuple[AutomationBonusTier, ...] = AUTOMATION_BONUS_TIERS,
) -> TierProgress:
    """Locate the tier for a burn figure and measure progress to the next one.

    Progress is linear between the current tier's floor (0 below the first
    tier) and the next tier's floor, floored to a whole percent, so it only
    reaches 100 once the top tier is reached.
    """
    if window_days <= 0:
        raise ValueError("window_days must be positive")
    monthly_burn = max(monthly_burn, 0)

    current_tier = find_tier(monthly_burn, tiers)
    if current_tier is None:
        next_tier = tiers[0] if monthly_burn < tiers[0].min_burn else None
    else:
        index = tiers.index(current_tier)
        next_tier = tiers[index + 1] if index + 1 < len(tiers) else None

    if next_tier is None:
        progress = 100
        credits_to_next_tier = 0
    else:
        floor = current_tier.min_burn if current_tier else 0
        span = next_tier.min_burn - floor
        progress = max((monthly_burn - floor) * 100 // span, 0)
        credits_to_next_tier = next_tier.min_burn - monthly_burn

    daily_rate = monthly_burn / window_days
    if next_tier is not None and daily_rate > 0:
        days_to_next_tier: int | None = math.ceil(credits_to_next_tier / daily_rate)
    else:
        days_to_next_tier = None

    current_bonus = current_tier.bonus if current_tier else 0
    projected_bonus_change = next_tier.bonus - current_bonus if next_tier else 0

    return TierProgress(
        monthly_burn=monthly_burn,
        window_days=window_days,
        daily_rate=daily_rate,
        current_tier=current_tier,
        next_tier=next_tier,
        progress=progress,
        credits_to_next_tier=credits_to_next_tier,
        days_to_next_tier=days_to_next_tier,
        projected_bonus_change=projected_bonus_change,
    )
