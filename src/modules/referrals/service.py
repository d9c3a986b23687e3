"""Referral processor: signup attribution and referrer payouts."""

import secrets
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.core.exceptions import DuplicateProvenance, UserNotFound
from src.database.models import (
    BucketSource,
    Referral,
    ReferralStatus,
    TransactionType,
    User,
)
from src.database.models.base import utc_now
from src.modules.ledger.service import CreditLedgerService
from src.utils.settings.credits import CreditSettings

REFERRAL_CODE_BYTES = 4
MAX_CODE_GENERATION_ATTEMPTS = 5


@dataclass(frozen=True)
class ReferrerSummary:
    id: UUID
    name: str


@dataclass(frozen=True)
class SignupResult:
    credits_awarded: int
    referrer: ReferrerSummary | None
    message: str


class ReferralService(BaseService):
    def __init__(self, db: AsyncSession, settings: CreditSettings | None = None):
        super().__init__(db)
        self.settings = settings or CreditSettings()
        self.ledger = CreditLedgerService(db, self.settings)

    async def process_new_user_signup(
        self, new_user_id: UUID, referral_code: str | None = None
    ) -> SignupResult:
        """Attribute a new user to a referrer, or fall back to the welcome bonus."""
        user = await self.db.get(
            User, new_user_id, with_for_update=True, populate_existing=True
        )
        if user is None:
            raise UserNotFound(new_user_id)

        if user.referred_by_id is not None:
            return await self._grant_welcome_bonus(
                user, "Referral already processed, welcome bonus added"
            )
        if not referral_code:
            return await self._grant_welcome_bonus(
                user, "No referral code provided, welcome bonus added"
            )

        referrer = await self._find_by_referral_code(referral_code)
        if referrer is None:
            return await self._grant_welcome_bonus(
                user, "Invalid referral code, welcome bonus added"
            )
        if referrer.id == user.id:
            return await self._grant_welcome_bonus(
                user, "Self-referral not allowed, welcome bonus added"
            )

        bonus = self.settings.REFERRAL_INVITEE_BONUS
        referrer_id = referrer.id
        try:
            user.referred_by_id = referrer.id
            self.db.add(
                Referral(
                    referrer_id=referrer.id,
                    referred_id=user.id,
                    status=ReferralStatus.PENDING,
                )
            )
            await self.ledger.stage_credits(
                user_id=user.id,
                amount=bonus,
                source=BucketSource.REFERRAL,
                provenance=f"referral_welcome_bonus:{user.id}",
                expiry_days=self.settings.REFERRAL_INVITEE_EXPIRY_DAYS,
                transaction_type=TransactionType.REFERRAL_BONUS,
                tag="referral_welcome_bonus",
                description=f"Referral welcome bonus from {referrer.name or referrer.id}",
            )
            await self.db.commit()
        except (DuplicateProvenance, IntegrityError):
            await self.db.rollback()
            self.logger.info(
                f"Referral for user {new_user_id} was already recorded",
                referrer_id=str(referrer_id),
            )
            return SignupResult(
                credits_awarded=0, referrer=None, message="Referral already processed"
            )
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            f"User {new_user_id} referred by {referrer.id}",
            invitee_bonus=bonus,
        )
        return SignupResult(
            credits_awarded=bonus,
            referrer=ReferrerSummary(id=referrer.id, name=referrer.name),
            message="Referral processed successfully, welcome bonus added",
        )

    async def _grant_welcome_bonus(self, user: User, message: str) -> SignupResult:
        bonus = self.settings.REFERRAL_INVITEE_BONUS
        try:
            await self.ledger.stage_credits(
                user_id=user.id,
                amount=bonus,
                source=BucketSource.BONUS,
                provenance=f"welcome_bonus:{user.id}",
                expiry_days=self.settings.WELCOME_BONUS_EXPIRY_DAYS,
                transaction_type=TransactionType.WELCOME_BONUS,
                tag="welcome_bonus",
                description="Welcome bonus",
            )
            await self.db.commit()
        except DuplicateProvenance:
            await self.db.rollback()
            return SignupResult(
                credits_awarded=0,
                referrer=None,
                message="Welcome bonus already granted",
            )
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(f"Welcome bonus granted to user {user.id}", bonus=bonus)
        return SignupResult(credits_awarded=bonus, referrer=None, message=message)

    async def _find_by_referral_code(self, referral_code: str) -> User | None:
        code = referral_code.strip().upper()
        if not code:
            return None
        result = await self.db.execute(select(User).where(User.referral_code == code))
        return result.scalar_one_or_none()

    async def process_qualifying_referrals(self) -> int:
        """Complete every pending referral whose referred user reached the minimum spend."""
        result = await self.db.execute(
            select(Referral.id, Referral.referred_id).where(
                Referral.status == ReferralStatus.PENDING
            )
        )
        pending = result.all()

        processed = 0
        for referral_id, referred_id in pending:
            try:
                spent = await self.ledger.get_total_spent(referred_id)
                if spent < self.settings.REFERRAL_MIN_SPEND:
                    continue
                if await self._qualify_referral(referral_id):
                    processed += 1
            except Exception as e:
                await self.db.rollback()
                self.logger.error(
                    f"Failed to process referral {referral_id}", error=str(e)
                )

        self.logger.info(
            f"Processed {processed} qualifying referrals", pending=len(pending)
        )
        return processed

    async def _qualify_referral(self, referral_id: UUID) -> bool:
        referral = await self.db.get(
            Referral, referral_id, with_for_update=True, populate_existing=True
        )
        if referral is None or referral.status != ReferralStatus.PENDING:
            await self.db.rollback()
            return False

        bonus = self.settings.REFERRAL_INVITER_BONUS
        referral.status = ReferralStatus.COMPLETE
        referral.credits_awarded = bonus
        referral.completed_at = utc_now()

        referred = await self.db.get(User, referral.referred_id, populate_existing=True)
        if referred is not None:
            referred.referral_qualified = True
            referred.referral_credits_awarded = bonus

        try:
            await self.ledger.stage_credits(
                user_id=referral.referrer_id,
                amount=bonus,
                source=BucketSource.REFERRAL,
                provenance=f"referral_bonus:{referral.referred_id}",
                expiry_days=self.settings.REFERRAL_INVITER_EXPIRY_DAYS,
                transaction_type=TransactionType.REFERRAL_BONUS,
                tag="referral_bonus",
                description="Referral bonus",
            )
            await self.db.commit()
        except DuplicateProvenance:
            await self.db.rollback()
            self.logger.warning(
                f"Referrer bonus for referral {referral_id} was already paid"
            )
            return False

        self.logger.info(
            f"Referral {referral_id} qualified",
            referrer_id=str(referral.referrer_id),
            bonus=bonus,
        )
        return True

    async def ensure_referral_code(self, user_id: UUID) -> str:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        if user.referral_code:
            return user.referral_code

        for _ in range(MAX_CODE_GENERATION_ATTEMPTS):
            code = secrets.token_hex(REFERRAL_CODE_BYTES).upper()
            if await self._find_by_referral_code(code) is None:
                user.referral_code = code
                await self.db.commit()
                return code
        raise RuntimeError("Could not generate a unique referral code")

    async def get_referral_stats(self, user_id: UUID) -> dict:
        referral_code = await self.ensure_referral_code(user_id)

        stmt = (
            select(
                Referral.status,
                func.count(Referral.id),
                func.coalesce(func.sum(Referral.credits_awarded), 0),
            )
            .where(Referral.referrer_id == user_id)
            .group_by(Referral.status)
        )
        result = await self.db.execute(stmt)

        counts = {status.value: 0 for status in ReferralStatus}
        credits_earned = 0
        for status, count, credits in result.all():
            counts[str(status)] = int(count)
            credits_earned += int(credits)

        return {
            "referral_code": referral_code,
            "total_referrals": sum(counts.values()),
            "completed_referrals": counts[ReferralStatus.COMPLETE.value],
            "pending_referrals": counts[ReferralStatus.PENDING.value],
            "credits_earned": credits_earned,
        }
