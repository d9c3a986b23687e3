from uuid import UUID

from fastapi import APIRouter

from src.api.core.dependencies import (
    AutoRenewalServiceDep,
    InternalKeyDep,
    StripePaymentServiceDep,
)
from src.api.core.messages import APIResponse, MessageCode
from src.modules.billing.constants import CREDIT_BUNDLES
from src.api.billing.schemas import (
    AutoRenewalAttemptModel,
    AutoRenewalCheckModel,
    AutoRenewalCheckResponse,
    AutoRenewalSettingsModel,
    AutoRenewalSettingsResponse,
    AutoRenewalUpdateModel,
    BundleListResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    CreditBundleModel,
)

router = APIRouter(tags=["billing"], dependencies=[InternalKeyDep])


def _settings_model(preferences: dict) -> AutoRenewalSettingsModel:
    attempts = [
        AutoRenewalAttemptModel.model_validate(log)
        for log in preferences.pop("recent_attempts", [])
    ]
    return AutoRenewalSettingsModel(**preferences, recent_attempts=attempts)


@router.get("/credits/bundles", response_model=BundleListResponse)
async def get_credit_bundles() -> BundleListResponse:
    """Purchasable credit bundles."""
    bundles = [
        CreditBundleModel.model_validate(bundle) for bundle in CREDIT_BUNDLES.values()
    ]
    return APIResponse.success(data=bundles)


@router.post(
    "/users/{user_id}/credits/checkout",
    response_model=APIResponse[CheckoutSessionResponse],
)
async def create_checkout_session(
    user_id: UUID,
    request_data: CheckoutSessionRequest,
    stripe_service: StripePaymentServiceDep,
) -> APIResponse[CheckoutSessionResponse]:
    """Create a Stripe checkout session for a credit bundle."""
    checkout_session = await stripe_service.create_checkout_session(
        user_id=user_id,
        bundle_id=request_data.bundle_id,
        success_url=request_data.success_url,
        cancel_url=request_data.cancel_url,
    )

    response_data = CheckoutSessionResponse(
        session_id=checkout_session.id, url=checkout_session.url
    )
    return APIResponse.success(message_code=MessageCode.CHECKOUT_CREATED, data=response_data)


@router.get(
    "/users/{user_id}/auto-renewal", response_model=AutoRenewalSettingsResponse
)
async def get_auto_renewal_settings(
    user_id: UUID, auto_renewal: AutoRenewalServiceDep
) -> AutoRenewalSettingsResponse:
    preferences = await auto_renewal.get_preferences(user_id)
    return APIResponse.success(data=_settings_model(preferences))


@router.put(
    "/users/{user_id}/auto-renewal", response_model=AutoRenewalSettingsResponse
)
async def update_auto_renewal_settings(
    user_id: UUID,
    request_data: AutoRenewalUpdateModel,
    auto_renewal: AutoRenewalServiceDep,
) -> AutoRenewalSettingsResponse:
    await auto_renewal.update_preferences(
        user_id,
        enabled=request_data.enabled,
        threshold=request_data.threshold,
        bundle_id=request_data.bundle_id.value if request_data.bundle_id else None,
    )
    preferences = await auto_renewal.get_preferences(user_id)
    return APIResponse.success(
        message_code=MessageCode.AUTO_RENEWAL_UPDATED,
        data=_settings_model(preferences),
    )


@router.post(
    "/users/{user_id}/auto-renewal/check", response_model=AutoRenewalCheckResponse
)
async def check_auto_renewal(
    user_id: UUID, auto_renewal: AutoRenewalServiceDep
) -> AutoRenewalCheckResponse:
    """Run the threshold check now instead of waiting for the scheduler."""
    triggered = await auto_renewal.check_threshold(user_id)
    return APIResponse.success(data=AutoRenewalCheckModel(triggered=triggered))
