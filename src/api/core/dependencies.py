import secrets
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import INTERNAL_API_KEY_HEADER
from src.api.core.exceptions.base import PromptFlowException
from src.api.core.messages import MessageCode
from src.modules.automation.service import AutomationBonusService
from src.modules.billing.auto_renewal import AutoRenewalService
from src.modules.billing.stripe.service import StripePaymentService
from src.modules.ledger.service import CreditLedgerService
from src.modules.referrals.service import ReferralService
from src.utils.settings.app import AppSettings


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def require_internal_key(request: Request) -> None:
    """Reject callers that do not present the shared internal API key."""
    provided = request.headers.get(INTERNAL_API_KEY_HEADER)
    expected = AppSettings().INTERNAL_API_KEY.get_secret_value()

    if not provided:
        raise PromptFlowException(MessageCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED)
    if not secrets.compare_digest(provided, expected):
        raise PromptFlowException(
            MessageCode.INVALID_API_KEY, status.HTTP_401_UNAUTHORIZED
        )


async def get_ledger_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> CreditLedgerService:
    """Get credit ledger service with database session."""
    return CreditLedgerService(db)


async def get_automation_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> AutomationBonusService:
    """Get automation bonus service with database session."""
    return AutomationBonusService(db)


async def get_referral_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ReferralService:
    """Get referral service with database session."""
    return ReferralService(db)


async def get_stripe_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> StripePaymentService:
    """Get Stripe payment service with database session."""
    return StripePaymentService(db)


async def get_auto_renewal_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> AutoRenewalService:
    """Get auto-renewal service with database session."""
    return AutoRenewalService(db)


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]
InternalKeyDep = Depends(require_internal_key)
CreditLedgerServiceDep = Annotated[CreditLedgerService, Depends(get_ledger_service)]
AutomationBonusServiceDep = Annotated[
    AutomationBonusService, Depends(get_automation_service)
]
ReferralServiceDep = Annotated[ReferralService, Depends(get_referral_service)]
StripePaymentServiceDep = Annotated[StripePaymentService, Depends(get_stripe_service)]
AutoRenewalServiceDep = Annotated[
    AutoRenewalService, Depends(get_auto_renewal_service)
]
