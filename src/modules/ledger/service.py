"""Ledger engine: balances, burns and grants over expiring credit buckets."""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.core.exceptions import DuplicateProvenance, InsufficientCredits
from src.database.models import (
    BucketSource,
    CreditBucket,
    CreditTransaction,
    TransactionType,
    User,
)
from src.database.models.base import utc_now
from src.modules.ledger.types import (
    BurnMetadata,
    CreatorEarnings,
    ItemEarnings,
    plan_burn,
)
from src.modules.pricing.calculator import cost_breakdown, split_creator_fee
from src.modules.pricing.registry import PromptLength
from src.utils.settings.credits import CreditSettings

DEFAULT_TRANSACTION_TYPES: dict[str, TransactionType] = {
    BucketSource.PURCHASED.value: TransactionType.PURCHASE,
    BucketSource.REFERRAL.value: TransactionType.REFERRAL_BONUS,
    BucketSource.BONUS.value: TransactionType.BONUS,
}


class CreditLedgerService(BaseService):
    """Owns every mutation of credit buckets and the transaction log."""

    def __init__(self, db: AsyncSession, settings: CreditSettings | None = None):
        super().__init__(db)
        self.settings = settings or CreditSettings()

    @staticmethod
    def _live_buckets(user_id: UUID, now: datetime):
        return and_(
            CreditBucket.user_id == user_id,
            CreditBucket.remaining > 0,
            or_(CreditBucket.expires_at.is_(None), CreditBucket.expires_at > now),
        )

    async def get_balance(self, user_id: UUID) -> int:
        """Sum of remaining credits over buckets that have not expired."""
        stmt = select(func.coalesce(func.sum(CreditBucket.remaining), 0)).where(
            self._live_buckets(user_id, utc_now())
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def has_sufficient_balance(self, user_id: UUID, amount: int) -> bool:
        return await self.get_balance(user_id) >= amount

    async def get_credit_breakdown(self, user_id: UUID) -> dict[str, int]:
        """Live credits per bucket source, plus the total."""
        stmt = (
            select(CreditBucket.source, func.sum(CreditBucket.remaining))
            .where(self._live_buckets(user_id, utc_now()))
            .group_by(CreditBucket.source)
        )
        result = await self.db.execute(stmt)
        breakdown = {source.value: 0 for source in BucketSource}
        for source, remaining in result.all():
            breakdown[str(source)] = int(remaining or 0)
        breakdown["total"] = sum(breakdown.values())
        return breakdown

    async def burn(
        self, user_id: UUID, amount: int, metadata: BurnMetadata
    ) -> CreditTransaction:
        """Debit ``amount`` credits across buckets, soonest-expiring first.

        Either every draw and the debit transaction commit together, or
        nothing changes and ``InsufficientCredits`` is raised.
        """
        if amount <= 0:
            raise ValueError("Burn amount must be a positive number of credits")

        now = utc_now()
        try:
            # Serialises concurrent burns for the same user
            await self.db.execute(
                select(User.id).where(User.id == user_id).with_for_update()
            )
            buckets_result = await self.db.execute(
                select(CreditBucket)
                .where(self._live_buckets(user_id, now))
                .with_for_update()
            )
            buckets = list(buckets_result.scalars().all())

            draws = plan_burn(buckets, amount)
            for bucket, draw in draws:
                await self._decrement_bucket(bucket, draw, amount)

            transaction = CreditTransaction(
                user_id=user_id,
                amount=-amount,
                type=metadata.item_type.transaction_type,
                source=metadata.source,
                description=f"{metadata.item_type.value} run on {metadata.model_id}",
                model_id=metadata.model_id,
                prompt_length=(
                    PromptLength(metadata.prompt_length).value
                    if metadata.prompt_length
                    else None
                ),
                item_type=metadata.item_type.value,
                item_id=metadata.item_id,
                creator_id=metadata.creator_id,
                bucket_count=len(draws),
                created_at=now,
            )
            self.db.add(transaction)
            await self.db.flush()

            await self._pay_creator(user_id, transaction, metadata)
            await self.db.commit()
        except InsufficientCredits as e:
            await self.db.rollback()
            self.logger.info(
                f"Insufficient credits for user {user_id}",
                required=e.required,
                available=e.available,
                model_id=metadata.model_id,
            )
            raise
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            f"Burned {amount} credits for user {user_id}",
            transaction_id=str(transaction.id),
            buckets=len(draws),
            source=metadata.source,
        )
        return transaction

    async def _decrement_bucket(
        self, bucket: CreditBucket, draw: int, requested: int
    ) -> None:
        stmt = (
            update(CreditBucket)
            .where(CreditBucket.id == bucket.id, CreditBucket.remaining >= draw)
            .values(remaining=CreditBucket.remaining - draw)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            # Bucket drained between read and write
            raise InsufficientCredits(
                required=requested, available=await self.get_balance(bucket.user_id)
            )
        await self.db.refresh(bucket, attribute_names=["remaining"])

    async def _pay_creator(
        self, user_id: UUID, transaction: CreditTransaction, metadata: BurnMetadata
    ) -> CreditBucket | None:
        if (
            metadata.creator_id is None
            or metadata.creator_id == user_id
            or not metadata.creator_fee_percent
        ):
            return None

        breakdown = cost_breakdown(
            metadata.model_id, metadata.prompt_length, metadata.creator_fee_percent
        )
        creator_share, platform_share = split_creator_fee(
            breakdown.creator_fee, self.settings.PLATFORM_FEE_PERCENT
        )
        if creator_share <= 0:
            return None

        bucket = await self.stage_credits(
            user_id=metadata.creator_id,
            amount=creator_share,
            source=BucketSource.BONUS,
            provenance=f"creator_payment:{transaction.id}",
            expiry_days=self.settings.CREATOR_PAYOUT_EXPIRY_DAYS,
            transaction_type=TransactionType.CREATOR_PAYMENT,
            tag=f"prompt_execution:{user_id}",
            description=f"Creator earnings for {metadata.item_type.value} {metadata.item_id}",
            model_id=metadata.model_id,
            item_type=metadata.item_type.value,
            item_id=metadata.item_id,
        )
        self.logger.debug(
            f"Creator {metadata.creator_id} earned {creator_share} credits",
            platform_share=platform_share,
            transaction_id=str(transaction.id),
        )
        return bucket

    async def stage_credits(
        self,
        user_id: UUID,
        amount: int,
        source: BucketSource,
        provenance: str,
        expiry_days: int | None = None,
        *,
        transaction_type: TransactionType | None = None,
        tag: str | None = None,
        description: str | None = None,
        model_id: str | None = None,
        item_type: str | None = None,
        item_id: str | None = None,
    ) -> CreditBucket:
        """Add a grant to the current unit of work without committing.

        Raises ``DuplicateProvenance`` when the provenance is already recorded.
        After an ``IntegrityError`` the session must be rolled back by the caller.
        """
        if amount <= 0:
            raise ValueError("Granted amount must be a positive number of credits")
        if not provenance:
            raise ValueError("A provenance is required for every grant")

        existing_id = await self._find_bucket_id(provenance)
        if existing_id is not None:
            raise DuplicateProvenance(provenance, existing_id)

        source = BucketSource(source)
        now = utc_now()
        expires_at = now + timedelta(days=expiry_days) if expiry_days else None
        bucket = CreditBucket(
            user_id=user_id,
            amount=amount,
            remaining=amount,
            source=source,
            provenance=provenance,
            expires_at=expires_at,
            created_at=now,
        )
        transaction = CreditTransaction(
            user_id=user_id,
            amount=amount,
            type=transaction_type or DEFAULT_TRANSACTION_TYPES[source.value],
            source=tag or provenance.split(":", 1)[0],
            provenance=provenance,
            description=description or f"{source.value} credits",
            model_id=model_id,
            item_type=item_type,
            item_id=item_id,
            created_at=now,
        )
        self.db.add_all([bucket, transaction])
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateProvenance(provenance) from e
        return bucket

    async def add_credits(
        self,
        user_id: UUID,
        amount: int,
        source: BucketSource,
        provenance: str,
        expiry_days: int | None = None,
        **transaction_fields,
    ) -> UUID:
        """Grant credits exactly once per provenance and return the bucket id.

        Repeating a provenance returns the bucket recorded the first time.
        """
        try:
            bucket = await self.stage_credits(
                user_id, amount, source, provenance, expiry_days, **transaction_fields
            )
            await self.db.commit()
        except DuplicateProvenance as e:
            await self.db.rollback()
            bucket_id = e.bucket_id or await self._find_bucket_id(provenance)
            if bucket_id is None:
                # Constraint violation unrelated to provenance
                raise e.__cause__ or e
            self.logger.info(
                f"Grant already recorded for provenance {provenance}",
                bucket_id=str(bucket_id),
                user_id=str(user_id),
            )
            return bucket_id
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            f"Granted {amount} {BucketSource(source).value} credits to user {user_id}",
            bucket_id=str(bucket.id),
            provenance=provenance,
            expires_at=bucket.expires_at.isoformat() if bucket.expires_at else None,
        )
        return bucket.id

    async def _find_bucket_id(self, provenance: str) -> UUID | None:
        result = await self.db.execute(
            select(CreditBucket.id).where(CreditBucket.provenance == provenance)
        )
        return result.scalar_one_or_none()

    async def get_total_spent(
        self,
        user_id: UUID,
        since: datetime | None = None,
        source: str | None = None,
    ) -> int:
        """Magnitude of all debits, optionally limited by time and source tag."""
        conditions = [CreditTransaction.user_id == user_id, CreditTransaction.amount < 0]
        if since is not None:
            conditions.append(CreditTransaction.created_at >= since)
        if source is not None:
            conditions.append(CreditTransaction.source == source)
        stmt = select(func.coalesce(func.sum(-CreditTransaction.amount), 0)).where(
            and_(*conditions)
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def get_transaction_history(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> tuple[list[CreditTransaction], int]:
        """Newest-first page of the user's transactions and the total count."""
        count_stmt = select(func.count(CreditTransaction.id)).where(
            CreditTransaction.user_id == user_id
        )
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), int(total)

    async def get_creator_earnings(self, user_id: UUID) -> CreatorEarnings:
        """Creator payments received, by calendar period and by item."""
        now = utc_now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today_start - timedelta(days=(today_start.weekday() + 1) % 7)
        month_start = today_start.replace(day=1)

        is_payment = and_(
            CreditTransaction.user_id == user_id,
            CreditTransaction.type == TransactionType.CREATOR_PAYMENT,
        )

        def earned_since(start: datetime):
            return func.coalesce(
                func.sum(
                    case(
                        (CreditTransaction.created_at >= start, CreditTransaction.amount),
                        else_=0,
                    )
                ),
                0,
            )

        totals = (
            await self.db.execute(
                select(
                    earned_since(today_start),
                    earned_since(week_start),
                    earned_since(month_start),
                    func.coalesce(func.sum(CreditTransaction.amount), 0),
                    func.count(CreditTransaction.source.distinct()),
                ).where(is_payment)
            )
        ).one()
        today, this_week, this_month, all_time, total_users = (
            int(value) for value in totals
        )

        pending_stmt = select(
            func.coalesce(func.sum(CreditBucket.remaining), 0)
        ).where(
            self._live_buckets(user_id, now),
            CreditBucket.provenance.like("creator_payment:%"),
        )
        pending_payout = int((await self.db.execute(pending_stmt)).scalar_one())

        item_earnings = func.sum(CreditTransaction.amount)
        by_item_stmt = (
            select(
                CreditTransaction.item_type,
                CreditTransaction.item_id,
                func.count(CreditTransaction.id),
                item_earnings,
            )
            .where(is_payment)
            .group_by(CreditTransaction.item_type, CreditTransaction.item_id)
            .order_by(item_earnings.desc(), CreditTransaction.item_id)
        )
        rows = (await self.db.execute(by_item_stmt)).all()
        by_item = [
            ItemEarnings(
                item_type=item_type,
                item_id=item_id,
                runs=int(runs),
                earnings=int(earnings),
                percentage_of_total=(
                    round(earnings * 100 / all_time) if all_time else 0
                ),
            )
            for item_type, item_id, runs, earnings in rows
        ]

        return CreatorEarnings(
            today=today,
            this_week=this_week,
            this_month=this_month,
            all_time=all_time,
            pending_payout=pending_payout,
            total_users=total_users,
            by_item=by_item,
        )

    async def compact_expired_buckets(self) -> tuple[int, int]:
        """Zero out expired buckets. Balances are unaffected.

        Returns (buckets compacted, credits expired).
        """
        now = utc_now()
        stmt = (
            select(CreditBucket)
            .where(
                CreditBucket.remaining > 0,
                CreditBucket.expires_at.is_not(None),
                CreditBucket.expires_at <= now,
            )
            .with_for_update(skip_locked=True)
        )
        try:
            result = await self.db.execute(stmt)
            expired = list(result.scalars().all())
            credits_expired = sum(bucket.remaining for bucket in expired)
            for bucket in expired:
                bucket.remaining = 0
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        self.logger.info(
            f"Compacted {len(expired)} expired credit buckets",
            credits_expired=credits_expired,
        )
        return len(expired), credits_expired
