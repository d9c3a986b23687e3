"""User model: the slice of the identity record the credit engine owns."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UTCDateTime, utc_now


class User(Base):
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    locale: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String, nullable=True)

    # Referral attribution
    referral_code: Mapped[str | None] = mapped_column(
        String(32), unique=True, nullable=True
    )
    referred_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    referral_qualified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    referral_credits_awarded: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    # Auto-renewal preferences
    auto_renewal_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    auto_renewal_threshold: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True
    )
    auto_renewal_bundle_id: Mapped[str | None] = mapped_column(String, nullable=True)
    auto_renewal_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_auto_renewal_attempt_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utc_now, onupdate=utc_now
    )

    credit_buckets = relationship(
        "CreditBucket", back_populates="user", cascade="all, delete-orphan"
    )
