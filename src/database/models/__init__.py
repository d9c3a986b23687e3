"""Database models for the PromptFlow credit engine."""

from .auto_renewal import AutoRenewalLog, AutoRenewalStatus
from .base import Base, UTCDateTime
from .credit_buckets import BucketSource, CreditBucket
from .credit_transactions import CreditTransaction, TransactionType
from .referrals import Referral, ReferralStatus
from .users import User

__all__ = [
    # Base
    "Base",
    "UTCDateTime",
    # Enums
    "AutoRenewalStatus",
    "BucketSource",
    "ReferralStatus",
    "TransactionType",
    # Models
    "AutoRenewalLog",
    "CreditBucket",
    "CreditTransaction",
    "Referral",
    "User",
]
