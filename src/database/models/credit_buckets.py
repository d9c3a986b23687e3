"""Credit bucket model."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UTCDateTime, utc_now


class BucketSource(str, Enum):
    PURCHASED = "purchased"
    BONUS = "bonus"
    REFERRAL = "referral"


class CreditBucket(Base):
    """A grant of credits with its own expiry.

    ``remaining`` starts at ``amount`` and only ever decreases.
    """

    __tablename__ = "credit_buckets"
    __table_args__ = (
        CheckConstraint("remaining >= 0", name="remaining_non_negative"),
        CheckConstraint("remaining <= amount", name="remaining_within_amount"),
        Index("ix_credit_buckets_user_expiry", "user_id", "expires_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    remaining: Mapped[int] = mapped_column(BigInteger, nullable=False)
    source: Mapped[BucketSource] = mapped_column(String, nullable=False)
    provenance: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)

    user = relationship("User", back_populates="credit_buckets")
