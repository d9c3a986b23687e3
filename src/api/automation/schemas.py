from uuid import UUID

from pydantic import BaseModel

from src.api.core.messages import APIResponse


class AutomationTierModel(BaseModel):
    id: str
    name: str
    min_burn: int
    max_burn: int | None
    bonus: int

    model_config = {"from_attributes": True}


class AutomationTierStatusModel(BaseModel):
    user_id: UUID
    monthly_burn: int
    window_days: int
    daily_rate: float
    current_tier: AutomationTierModel | None
    next_tier: AutomationTierModel | None
    progress: int
    credits_to_next_tier: int
    days_to_next_tier: int | None
    projected_bonus_change: int
    received_current_bonus: bool


class DailyUsageModel(BaseModel):
    date: str
    credits: int


class ModelUsageModel(BaseModel):
    model_id: str
    credits: int
    executions: int


class AutomationUsageStatsModel(BaseModel):
    days: int
    total_credits: int
    total_executions: int
    bonuses_received: int
    daily_usage: list[DailyUsageModel]
    model_usage: list[ModelUsageModel]


AutomationTierResponse = APIResponse[AutomationTierStatusModel]
AutomationUsageStatsResponse = APIResponse[AutomationUsageStatsModel]
