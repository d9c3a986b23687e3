"""Automation bonus tier and usage endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.api.core.dependencies import AutomationBonusServiceDep, InternalKeyDep
from src.api.core.messages import APIResponse
from .schemas import (
    AutomationTierModel,
    AutomationTierResponse,
    AutomationTierStatusModel,
    AutomationUsageStatsModel,
    AutomationUsageStatsResponse,
)

router = APIRouter(
    prefix="/users/{user_id}/automation",
    tags=["automation"],
    dependencies=[InternalKeyDep],
)


@router.get("/tier", response_model=AutomationTierResponse)
async def get_automation_tier(
    user_id: UUID,
    automation: AutomationBonusServiceDep,
    window_days: int | None = Query(None, ge=1, le=365),
) -> AutomationTierResponse:
    """Current tier, progress to the next one and the projected bonus change."""
    status = await automation.calculate_automation_tier(user_id, window_days)
    received = await automation.has_received_current_bonus(user_id)

    data = AutomationTierStatusModel(
        user_id=user_id,
        monthly_burn=status.monthly_burn,
        window_days=status.window_days,
        daily_rate=status.daily_rate,
        current_tier=(
            AutomationTierModel.model_validate(status.current_tier)
            if status.current_tier
            else None
        ),
        next_tier=(
            AutomationTierModel.model_validate(status.next_tier)
            if status.next_tier
            else None
        ),
        progress=status.progress,
        credits_to_next_tier=status.credits_to_next_tier,
        days_to_next_tier=status.days_to_next_tier,
        projected_bonus_change=status.projected_bonus_change,
        received_current_bonus=received,
    )
    return APIResponse.success(data=data)


@router.get("/stats", response_model=AutomationUsageStatsResponse)
async def get_automation_stats(
    user_id: UUID,
    automation: AutomationBonusServiceDep,
    days: int = Query(30, ge=1, le=365),
) -> AutomationUsageStatsResponse:
    stats = await automation.get_automation_usage_stats(user_id, days)
    return APIResponse.success(data=AutomationUsageStatsModel(**stats))
