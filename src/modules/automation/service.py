"""Automation bonus calculator and monthly bonus grants."""

from collections import defaultdict
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import BucketSource, CreditTransaction, TransactionType
from src.database.models.base import utc_now
from src.modules.automation.tiers import TierProgress, calculate_tier_progress
from src.modules.ledger.service import CreditLedgerService
from src.utils.settings.credits import CreditSettings


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class AutomationBonusService(BaseService):
    """Tiers users by automation burn and pays the monthly volume bonus."""

    def __init__(self, db: AsyncSession, settings: CreditSettings | None = None):
        super().__init__(db)
        self.settings = settings or CreditSettings()
        self.ledger = CreditLedgerService(db, self.settings)

    async def calculate_automation_tier(
        self, user_id: UUID, window_days: int | None = None
    ) -> TierProgress:
        window_days = window_days or self.settings.AUTOMATION_WINDOW_DAYS
        since = utc_now() - timedelta(days=window_days)
        monthly_burn = await self.ledger.get_total_spent(
            user_id, since=since, source=self.settings.AUTOMATION_SOURCE_TAG
        )
        return calculate_tier_progress(monthly_burn, window_days)

    async def has_received_current_bonus(self, user_id: UUID) -> bool:
        stmt = (
            select(CreditTransaction.id)
            .where(
                CreditTransaction.user_id == user_id,
                CreditTransaction.type == TransactionType.AUTOMATION_BONUS,
                CreditTransaction.created_at >= start_of_month(utc_now()),
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def grant_monthly_bonus(self, user_id: UUID) -> UUID | None:
        """Grant this month's tier bonus. Returns the bucket id, or None if skipped."""
        if await self.has_received_current_bonus(user_id):
            self.logger.debug(f"User {user_id} already received this month's bonus")
            return None

        tier_status = await self.calculate_automation_tier(user_id)
        tier = tier_status.current_tier
        if tier is None:
            return None

        month = start_of_month(utc_now()).strftime("%Y-%m")
        bucket_id = await self.ledger.add_credits(
            user_id=user_id,
            amount=tier.bonus,
            source=BucketSource.BONUS,
            provenance=f"automation_bonus:{user_id}:{month}",
            expiry_days=self.settings.AUTOMATION_BONUS_EXPIRY_DAYS,
            transaction_type=TransactionType.AUTOMATION_BONUS,
            description=f"{tier.name} automation bonus for {month}",
        )
        self.logger.info(
            f"Granted {tier.name} automation bonus to user {user_id}",
            bonus=tier.bonus,
            monthly_burn=tier_status.monthly_burn,
        )
        return bucket_id

    async def _get_automation_users(self, since: datetime) -> list[UUID]:
        stmt = (
            select(CreditTransaction.user_id)
            .where(
                CreditTransaction.source == self.settings.AUTOMATION_SOURCE_TAG,
                CreditTransaction.amount < 0,
                CreditTransaction.created_at >= since,
            )
            .distinct()
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def process_monthly_bonuses(self) -> int:
        """Grant bonuses to every eligible user; one user's failure never stops the run."""
        since = utc_now() - timedelta(days=self.settings.AUTOMATION_WINDOW_DAYS)
        user_ids = await self._get_automation_users(since)

        granted = 0
        for user_id in user_ids:
            try:
                if await self.grant_monthly_bonus(user_id):
                    granted += 1
            except Exception as e:
                await self.db.rollback()
                self.logger.error(
                    f"Failed to grant automation bonus to user {user_id}",
                    error=str(e),
                )

        self.logger.info(
            f"Processed automation bonuses: {granted} granted",
            candidates=len(user_ids),
        )
        return granted

    async def get_automation_usage_stats(self, user_id: UUID, days: int = 30) -> dict:
        since = utc_now() - timedelta(days=days)
        stmt = (
            select(CreditTransaction)
            .where(
                and_(
                    CreditTransaction.user_id == user_id,
                    CreditTransaction.source == self.settings.AUTOMATION_SOURCE_TAG,
                    CreditTransaction.amount < 0,
                    CreditTransaction.created_at >= since,
                )
            )
            .order_by(CreditTransaction.created_at)
        )
        result = await self.db.execute(stmt)
        transactions = result.scalars().all()

        daily: dict[str, int] = defaultdict(int)
        by_model: dict[str, dict[str, int]] = defaultdict(
            lambda: {"credits": 0, "executions": 0}
        )
        for transaction in transactions:
            credits = -transaction.amount
            daily[transaction.created_at.date().isoformat()] += credits
            model_key = transaction.model_id or "unknown"
            by_model[model_key]["credits"] += credits
            by_model[model_key]["executions"] += 1

        bonus_stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.type == TransactionType.AUTOMATION_BONUS,
            CreditTransaction.created_at >= since,
        )
        bonuses_received = int((await self.db.execute(bonus_stmt)).scalar_one())

        return {
            "days": days,
            "total_credits": sum(daily.values()),
            "total_executions": len(transactions),
            "bonuses_received": bonuses_received,
            "daily_usage": [
                {"date": day, "credits": credits} for day, credits in sorted(daily.items())
            ],
            "model_usage": sorted(
                (
                    {"model_id": model_id, **usage}
                    for model_id, usage in by_model.items()
                ),
                key=lambda usage: usage["credits"],
                reverse=True,
            ),
        }
