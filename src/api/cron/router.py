"""Scheduled batch jobs, triggered by the external scheduler."""

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.core.dependencies import (
    AutoRenewalServiceDep,
    AutomationBonusServiceDep,
    CreditLedgerServiceDep,
    InternalKeyDep,
    ReferralServiceDep,
)
from src.api.core.messages import APIResponse

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[InternalKeyDep])


class BatchJobResultModel(BaseModel):
    job: str
    processed: int
    credits_expired: int | None = None


@router.post("/automation-bonuses", response_model=APIResponse[BatchJobResultModel])
async def run_automation_bonuses(
    automation: AutomationBonusServiceDep,
) -> APIResponse[BatchJobResultModel]:
    granted = await automation.process_monthly_bonuses()
    return APIResponse.success(
        data=BatchJobResultModel(job="automation-bonuses", processed=granted)
    )


@router.post("/referrals", response_model=APIResponse[BatchJobResultModel])
async def run_referral_qualification(
    referrals: ReferralServiceDep,
) -> APIResponse[BatchJobResultModel]:
    qualified = await referrals.process_qualifying_referrals()
    return APIResponse.success(
        data=BatchJobResultModel(job="referrals", processed=qualified)
    )


@router.post("/credit-cleanup", response_model=APIResponse[BatchJobResultModel])
async def run_credit_cleanup(
    ledger: CreditLedgerServiceDep,
) -> APIResponse[BatchJobResultModel]:
    compacted, credits_expired = await ledger.compact_expired_buckets()
    return APIResponse.success(
        data=BatchJobResultModel(
            job="credit-cleanup", processed=compacted, credits_expired=credits_expired
        )
    )


@router.post("/auto-renewal", response_model=APIResponse[BatchJobResultModel])
async def run_auto_renewal(
    auto_renewal: AutoRenewalServiceDep,
) -> APIResponse[BatchJobResultModel]:
    triggered = await auto_renewal.check_all_thresholds()
    return APIResponse.success(
        data=BatchJobResultModel(job="auto-renewal", processed=triggered)
    )
