from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse
from src.database.models import AutoRenewalStatus
from src.modules.billing.constants import CreditBundleId


class CreditBundleModel(BaseModel):
    id: CreditBundleId
    name: str
    price: Decimal
    base_credits: int
    bonus_credits: int
    total_credits: int
    price_per_million: Decimal
    description: str
    requires_monthly_burn: int | None = None

    model_config = {"from_attributes": True}


class CheckoutSessionRequest(BaseModel):
    bundle_id: CreditBundleId
    success_url: str
    cancel_url: str


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str | None


class AutoRenewalAttemptModel(BaseModel):
    id: UUID
    bundle_id: str
    amount: int
    status: AutoRenewalStatus
    payment_intent_id: str | None
    error_message: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AutoRenewalSettingsModel(BaseModel):
    enabled: bool
    threshold: int | None
    effective_threshold: int
    bundle_id: str | None
    attempts: int
    last_attempt_at: datetime | None
    recent_attempts: list[AutoRenewalAttemptModel] = []


class AutoRenewalUpdateModel(BaseModel):
    enabled: bool
    threshold: int | None = Field(default=None, gt=0)
    bundle_id: CreditBundleId | None = None


class AutoRenewalCheckModel(BaseModel):
    triggered: bool


BundleListResponse = APIResponse[list[CreditBundleModel]]
AutoRenewalSettingsResponse = APIResponse[AutoRenewalSettingsModel]
AutoRenewalCheckResponse = APIResponse[AutoRenewalCheckModel]
