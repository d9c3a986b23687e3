from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

from src.core.exceptions import InsufficientCredits
from src.database.models import CreditBucket, TransactionType
from src.modules.pricing.registry import PromptLength

_NEVER = datetime.max.replace(tzinfo=timezone.utc)


class ItemType(str, Enum):
    PROMPT = "prompt"
    FLOW = "flow"

    @property
    def transaction_type(self) -> TransactionType:
        if self is ItemType.FLOW:
            return TransactionType.FLOW_RUN
        return TransactionType.PROMPT_RUN


@dataclass(frozen=True)
class BurnMetadata:
    """What a burn paid for. Stored on the debit transaction."""

    model_id: str
    item_type: ItemType
    item_id: str
    source: str = "web"
    creator_id: UUID | None = None
    creator_fee_percent: int | float | Decimal | None = None
    prompt_length: PromptLength | None = None

    def __post_init__(self):
        # The creator fee is priced from the prompt length
        if (
            self.creator_id is not None
            and self.creator_fee_percent
            and self.prompt_length is None
        ):
            raise ValueError("prompt_length is required to pay a creator fee")


@dataclass(frozen=True)
class ItemEarnings:
    item_type: str | None
    item_id: str | None
    runs: int
    earnings: int
    percentage_of_total: int


@dataclass(frozen=True)
class CreatorEarnings:
    """Creator payments received, bucketed by calendar period (UTC)."""

    today: int
    this_week: int
    this_month: int
    all_time: int
    pending_payout: int
    total_users: int
    by_item: list[ItemEarnings] = field(default_factory=list)


def burn_order_key(bucket: CreditBucket) -> tuple:
    """Soonest-expiring first; buckets without expiry last; then oldest first."""
    return (
        bucket.expires_at is None,
        bucket.expires_at or _NEVER,
        bucket.created_at,
        str(bucket.id),
    )


def plan_burn(
    buckets: list[CreditBucket], amount: int
) -> list[tuple[CreditBucket, int]]:
    """Decide how much to draw from each bucket. Nothing is mutated."""
    available = sum(bucket.remaining for bucket in buckets)
    if available < amount:
        raise InsufficientCredits(required=amount, available=available)

    draws: list[tuple[CreditBucket, int]] = []
    outstanding = amount
    for bucket in sorted(buckets, key=burn_order_key):
        if outstanding == 0:
            break
        draw = min(bucket.remaining, outstanding)
        if draw > 0:
            draws.append((bucket, draw))
            outstanding -= draw
    return draws
