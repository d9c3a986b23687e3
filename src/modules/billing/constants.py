"""Credit bundle catalogue and Stripe constants."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from src.core.exceptions import BundleNotFound


class CreditBundleId(str, Enum):
    STARTER = "starter"
    BASIC = "basic"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


class PaymentPurpose(str, Enum):
    """Value of the ``purpose`` metadata key on Stripe objects we create."""

    CREDIT_PURCHASE = "credit_purchase"
    AUTO_RENEWAL = "auto_renewal"


@dataclass(frozen=True)
class CreditBundleConfig:
    """Configuration for a purchasable credit bundle."""

    id: CreditBundleId
    name: str
    price: Decimal  # USD
    base_credits: int
    bonus_credits: int = 0
    requires_monthly_burn: int | None = None

    @property
    def total_credits(self) -> int:
        return self.base_credits + self.bonus_credits

    @property
    def price_cents(self) -> int:
        return int(self.price * 100)

    @property
    def price_per_million(self) -> Decimal:
        return (self.price * 1_000_000 / self.total_credits).quantize(Decimal("0.01"))

    @property
    def description(self) -> str:
        return (
            f"{self.total_credits:,} credits "
            f"({self.base_credits:,} base + {self.bonus_credits:,} bonus)"
        )


CREDIT_BUNDLES: dict[CreditBundleId, CreditBundleConfig] = {
    CreditBundleId.STARTER: CreditBundleConfig(
        id=CreditBundleId.STARTER,
        name="Starter",
        price=Decimal("10.00"),
        base_credits=10_000_000,
    ),
    CreditBundleId.BASIC: CreditBundleConfig(
        id=CreditBundleId.BASIC,
        name="Basic",
        price=Decimal("25.00"),
        base_credits=25_000_000,
        bonus_credits=2_500_000,
    ),
    CreditBundleId.PRO: CreditBundleConfig(
        id=CreditBundleId.PRO,
        name="Pro",
        price=Decimal("50.00"),
        base_credits=50_000_000,
        bonus_credits=7_500_000,
    ),
    CreditBundleId.BUSINESS: CreditBundleConfig(
        id=CreditBundleId.BUSINESS,
        name="Business",
        price=Decimal("100.00"),
        base_credits=100_000_000,
        bonus_credits=20_000_000,
    ),
    CreditBundleId.ENTERPRISE: CreditBundleConfig(
        id=CreditBundleId.ENTERPRISE,
        name="Enterprise",
        price=Decimal("100.00"),
        base_credits=100_000_000,
        bonus_credits=40_000_000,
        requires_monthly_burn=1_400_000,
    ),
}


def get_bundle(bundle_id: str) -> CreditBundleConfig:
    try:
        return CREDIT_BUNDLES[CreditBundleId(bundle_id)]
    except ValueError:
        raise BundleNotFound(bundle_id) from None
