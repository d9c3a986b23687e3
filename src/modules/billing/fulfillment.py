"""Turns a settled payment into credit buckets."""

from dataclasses import dataclass
from uuid import UUID

from src.database.models import BucketSource, TransactionType
from src.modules.billing.constants import CreditBundleConfig
from src.modules.ledger.service import CreditLedgerService


@dataclass(frozen=True)
class FulfilledPurchase:
    base_bucket_id: UUID
    bonus_bucket_id: UUID | None
    total_credits: int


async def fulfill_bundle_purchase(
    ledger: CreditLedgerService,
    user_id: UUID,
    bundle: CreditBundleConfig,
    payment_reference: str,
) -> FulfilledPurchase:
    """Grant a bundle's credits once per Stripe payment reference.

    Base credits land in a purchased bucket; the bundle bonus gets its own
    shorter-lived bonus bucket. Replayed webhooks return the same buckets.
    """
    settings = ledger.settings
    base_bucket_id = await ledger.add_credits(
        user_id=user_id,
        amount=bundle.base_credits,
        source=BucketSource.PURCHASED,
        provenance=f"stripe_payment:{payment_reference}",
        expiry_days=settings.PURCHASED_CREDIT_EXPIRY_DAYS,
        transaction_type=TransactionType.PURCHASE,
        tag="stripe",
        description=f"{bundle.name} credit bundle",
    )

    bonus_bucket_id = None
    if bundle.bonus_credits > 0:
        bonus_bucket_id = await ledger.add_credits(
            user_id=user_id,
            amount=bundle.bonus_credits,
            source=BucketSource.BONUS,
            provenance=f"stripe_bonus:{payment_reference}",
            expiry_days=settings.PURCHASE_BONUS_EXPIRY_DAYS,
            transaction_type=TransactionType.BONUS,
            tag="stripe",
            description=f"{bundle.name} bundle bonus",
        )

    return FulfilledPurchase(
        base_bucket_id=base_bucket_id,
        bonus_bucket_id=bonus_bucket_id,
        total_credits=bundle.total_credits,
    )
