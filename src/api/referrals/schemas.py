from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.messages import APIResponse


class ReferralSignupRequest(BaseModel):
    user_id: UUID
    referral_code: str | None = Field(default=None, max_length=32)


class ReferrerModel(BaseModel):
    id: UUID
    name: str

    model_config = {"from_attributes": True}


class ReferralSignupModel(BaseModel):
    credits_awarded: int
    referrer: ReferrerModel | None
    message: str


class ReferralStatsModel(BaseModel):
    referral_code: str
    total_referrals: int
    completed_referrals: int
    pending_referrals: int
    credits_earned: int


ReferralSignupResponse = APIResponse[ReferralSignupModel]
ReferralStatsResponse = APIResponse[ReferralStatsModel]
