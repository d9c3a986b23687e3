"""Credits API schemas (combined models/requests)."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse, Paginated
from src.database.models import BucketSource
from src.modules.ledger.types import ItemType
from src.modules.pricing.calculator import MAX_CREATOR_FEE_PERCENT
from src.modules.pricing.registry import PromptLength


class ModelCostModel(BaseModel):
    short: int
    medium: int
    long: int


class ModelInfoModel(BaseModel):
    id: str
    provider: str
    name: str
    display_name: str
    input_type: str
    output_type: str
    description: str
    cost: ModelCostModel

    model_config = {"from_attributes": True}


class CalculateCostRequest(BaseModel):
    model_id: str
    prompt_length: PromptLength | None = None
    text: str | None = None
    system_prompt: str | None = None
    creator_fee_percent: Decimal = Field(
        default=Decimal(0), ge=0, le=MAX_CREATOR_FEE_PERCENT
    )


class CostBreakdownModel(BaseModel):
    model_id: str
    prompt_length: PromptLength
    base_cost: int
    creator_fee: int
    total_cost: int
    usd_cost: Decimal
    runs_per_dollar: int

    model_config = {"from_attributes": True}


class CreditBalanceModel(BaseModel):
    user_id: UUID
    balance: int
    purchased: int = 0
    bonus: int = 0
    referral: int = 0


class BalanceCheckRequest(BaseModel):
    amount: int = Field(gt=0)


class BalanceCheckModel(BaseModel):
    user_id: UUID
    amount: int
    balance: int
    sufficient: bool


class ChargeRequest(BaseModel):
    model_id: str
    item_type: ItemType = ItemType.PROMPT
    item_id: str
    prompt_length: PromptLength | None = None
    text: str | None = None
    system_prompt: str | None = None
    source: str = "web"
    creator_id: UUID | None = None
    creator_fee_percent: Decimal = Field(
        default=Decimal(0), ge=0, le=MAX_CREATOR_FEE_PERCENT
    )


class ChargeResultModel(BaseModel):
    transaction_id: UUID
    credits_charged: int
    base_cost: int
    creator_fee: int
    prompt_length: PromptLength
    balance: int


class GrantRequest(BaseModel):
    amount: int = Field(gt=0)
    source: BucketSource
    provenance: str = Field(min_length=1, max_length=255)
    expiry_days: int | None = Field(default=None, gt=0)
    description: str | None = None


class GrantResultModel(BaseModel):
    bucket_id: UUID
    balance: int


class ItemEarningsModel(BaseModel):
    item_type: str | None
    item_id: str | None
    runs: int
    earnings: int
    percentage_of_total: int

    model_config = {"from_attributes": True}


class CreatorEarningsModel(BaseModel):
    user_id: UUID
    today: int
    this_week: int
    this_month: int
    all_time: int
    pending_payout: int
    total_users: int
    by_item: list[ItemEarningsModel]


class CreditTransactionModel(BaseModel):
    id: UUID
    amount: int
    type: str
    source: str | None
    description: str | None
    model_id: str | None
    prompt_length: str | None
    item_type: str | None
    item_id: str | None
    creator_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


# Response type aliases
ModelListResponse = APIResponse[list[ModelInfoModel]]
CostBreakdownResponse = APIResponse[CostBreakdownModel]
CreditBalanceResponse = APIResponse[CreditBalanceModel]
BalanceCheckResponse = APIResponse[BalanceCheckModel]
ChargeResponse = APIResponse[ChargeResultModel]
GrantResponse = APIResponse[GrantResultModel]
TransactionHistoryResponse = APIResponse[Paginated[CreditTransactionModel]]
CreatorEarningsResponse = APIResponse[CreatorEarningsModel]
