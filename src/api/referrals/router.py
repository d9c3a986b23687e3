"""Referral attribution and stats endpoints."""

from uuid import UUID

from fastapi import APIRouter

from src.api.core.dependencies import InternalKeyDep, ReferralServiceDep
from src.api.core.messages import APIResponse, MessageCode
from .schemas import (
    ReferralSignupModel,
    ReferralSignupRequest,
    ReferralSignupResponse,
    ReferralStatsModel,
    ReferralStatsResponse,
    ReferrerModel,
)

router = APIRouter(tags=["referrals"], dependencies=[InternalKeyDep])


@router.post("/referrals/signup", response_model=ReferralSignupResponse)
async def process_signup(
    request_data: ReferralSignupRequest, referrals: ReferralServiceDep
) -> ReferralSignupResponse:
    """Called once by the identity service after a user signs up."""
    result = await referrals.process_new_user_signup(
        request_data.user_id, request_data.referral_code
    )
    data = ReferralSignupModel(
        credits_awarded=result.credits_awarded,
        referrer=ReferrerModel.model_validate(result.referrer) if result.referrer else None,
        message=result.message,
    )
    return APIResponse.success(
        message_code=MessageCode.REFERRAL_PROCESSED, message=result.message, data=data
    )


@router.get("/users/{user_id}/referrals/stats", response_model=ReferralStatsResponse)
async def get_referral_stats(
    user_id: UUID, referrals: ReferralServiceDep
) -> ReferralStatsResponse:
    stats = await referrals.get_referral_stats(user_id)
    return APIResponse.success(data=ReferralStatsModel(**stats))
