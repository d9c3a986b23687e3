"""Cost calculator: prompt length classification and credit pricing."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal

from src.modules.pricing.registry import (
    CREDITS_PER_DOLLAR,
    ModelProvider,
    PromptLength,
    get_model,
)
from src.utils.settings.credits import CreditSettings

MAX_CREATOR_FEE_PERCENT = 100

# Inclusive upper bounds (short, medium) per provider
LENGTH_THRESHOLDS: dict[str, tuple[int, int]] = {
    ModelProvider.OPENAI.value: (1_000, 4_000),
    ModelProvider.SONAR.value: (800, 3_000),
}
DEFAULT_LENGTH_THRESHOLDS: tuple[int, int] = (1_000, 3_500)


@dataclass(frozen=True)
class CostBreakdown:
    model_id: str
    prompt_length: PromptLength
    base_cost: int
    creator_fee: int
    total_cost: int

    @property
    def usd_cost(self) -> Decimal:
        return Decimal(self.total_cost) / CREDITS_PER_DOLLAR

    @property
    def runs_per_dollar(self) -> int:
        return CREDITS_PER_DOLLAR // self.total_cost if self.total_cost else 0


def classify_length(char_count: int, provider: ModelProvider | str) -> PromptLength:
    if char_count < 0:
        raise ValueError("char_count must be non-negative")
    provider_key = provider.value if isinstance(provider, ModelProvider) else provider
    short_max, medium_max = LENGTH_THRESHOLDS.get(
        provider_key, DEFAULT_LENGTH_THRESHOLDS
    )
    if char_count <= short_max:
        return PromptLength.SHORT
    if char_count <= medium_max:
        return PromptLength.MEDIUM
    return PromptLength.LONG


def compute_creator_fee(
    base_cost: int, creator_fee_percent: int | float | Decimal | None
) -> int:
    """Creator fee in whole credits, truncated toward zero."""
    if creator_fee_percent is None or creator_fee_percent == 0:
        return 0
    percent = Decimal(str(creator_fee_percent))
    if percent < 0 or percent > MAX_CREATOR_FEE_PERCENT:
        raise ValueError(
            f"creator_fee_percent must be between 0 and {MAX_CREATOR_FEE_PERCENT}"
        )
    fee = (Decimal(base_cost) * percent / 100).to_integral_value(rounding=ROUND_FLOOR)
    return int(fee)


def compute_cost(
    model_id: str,
    length: PromptLength | str,
    creator_fee_percent: int | float | Decimal = 0,
) -> int:
    return cost_breakdown(model_id, length, creator_fee_percent).total_cost


def cost_breakdown(
    model_id: str,
    length: PromptLength | str,
    creator_fee_percent: int | float | Decimal = 0,
) -> CostBreakdown:
    model = get_model(model_id)
    prompt_length = PromptLength(length)
    base_cost = model.cost.for_length(prompt_length)
    creator_fee = compute_creator_fee(base_cost, creator_fee_percent)
    return CostBreakdown(
        model_id=model.id,
        prompt_length=prompt_length,
        base_cost=base_cost,
        creator_fee=creator_fee,
        total_cost=base_cost + creator_fee,
    )


def compute_cost_for_text(
    model_id: str,
    text: str,
    system_prompt: str | None = None,
    creator_fee_percent: int | float | Decimal = 0,
) -> CostBreakdown:
    """Price a prompt from its raw text, classified by the model's provider."""
    model = get_model(model_id)
    char_count = len(text) + len(system_prompt or "")
    length = classify_length(char_count, model.provider)
    return cost_breakdown(model_id, length, creator_fee_percent)


def split_creator_fee(
    creator_fee: int, platform_fee_percent: int | None = None
) -> tuple[int, int]:
    """Split a creator fee into (creator share, platform share).

    The platform share is truncated so both parts always add up to the fee.
    """
    if creator_fee <= 0:
        return 0, 0
    if platform_fee_percent is None:
        platform_fee_percent = CreditSettings().PLATFORM_FEE_PERCENT
    platform_share = creator_fee * platform_fee_percent // 100
    return creator_fee - platform_share, platform_share
