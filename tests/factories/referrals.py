"""Factory for Referral models."""

import factory
from src.database.models import Referral, ReferralStatus
from src.database.models.base import utc_now
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class ReferralFactory(AsyncSQLAlchemyModelFactory[Referral]):
    """Factory for creating Referral instances. Pass both user ids."""

    class Meta:
        model = Referral

    id = UUIDFactory()
    status = ReferralStatus.PENDING
    credits_awarded = 0
    completed_at = None
    created_at = factory.LazyFunction(utc_now)
