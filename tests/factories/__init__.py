"""Test factories for the credit engine models."""

from .base import AsyncSQLAlchemyModelFactory
from .users import UserFactory
from .credit_buckets import CreditBucketFactory
from .credit_transactions import CreditTransactionFactory
from .referrals import ReferralFactory
from .auto_renewal import AutoRenewalLogFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "UserFactory",
    "CreditBucketFactory",
    "CreditTransactionFactory",
    "ReferralFactory",
    "AutoRenewalLogFactory",
]
