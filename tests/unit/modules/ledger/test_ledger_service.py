"""Tests for the CreditLedgerService balance, burn and grant operations."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import case, func, select

from src.core.exceptions import InsufficientCredits
from src.database.models import (
    BucketSource,
    CreditBucket,
    CreditTransaction,
    TransactionType,
)
from src.database.models.base import utc_now
from src.modules.ledger.service import CreditLedgerService
from src.modules.ledger.types import BurnMetadata, ItemType, plan_burn
from src.modules.pricing.registry import PromptLength


def prompt_run(**overrides) -> BurnMetadata:
    fields = {
        "model_id": "gpt-4o-mini",
        "item_type": ItemType.PROMPT,
        "item_id": "prompt-1",
    }
    fields.update(overrides)
    return BurnMetadata(**fields)


@pytest.fixture
def ledger(db_session, credit_settings):
    return CreditLedgerService(db_session, credit_settings)


async def remaining_of(db_session, bucket_id) -> int:
    result = await db_session.execute(
        select(CreditBucket.remaining).where(CreditBucket.id == bucket_id)
    )
    return result.scalar_one()


class TestBalance:
    @pytest.mark.asyncio
    async def test_balance_ignores_expired_buckets(
        self, ledger, db_session, test_user, bucket_factory
    ):
        now = utc_now()
        await bucket_factory.create_async(db_session, user_id=test_user.id, amount=500)
        await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=300,
            expires_at=now - timedelta(seconds=1),
        )
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=200, expires_at=None
        )
        await db_session.commit()

        assert await ledger.get_balance(test_user.id) == 700
        assert await ledger.has_sufficient_balance(test_user.id, 700)
        assert not await ledger.has_sufficient_balance(test_user.id, 701)

    @pytest.mark.asyncio
    async def test_balance_for_unknown_user_is_zero(self, ledger):
        assert await ledger.get_balance(uuid4()) == 0

    @pytest.mark.asyncio
    async def test_credit_breakdown_by_source(
        self, ledger, db_session, test_user, bucket_factory
    ):
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=1_000, source=BucketSource.PURCHASED
        )
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=250, source=BucketSource.REFERRAL
        )
        await db_session.commit()

        breakdown = await ledger.get_credit_breakdown(test_user.id)

        assert breakdown == {
            "purchased": 1_000,
            "bonus": 0,
            "referral": 250,
            "total": 1_250,
        }


class TestPlanBurn:
    def test_soonest_expiry_first_and_no_expiry_last(self):
        now = utc_now()
        never = CreditBucket(
            id=uuid4(), remaining=100, expires_at=None, created_at=now
        )
        late = CreditBucket(
            id=uuid4(), remaining=100, expires_at=now + timedelta(days=30), created_at=now
        )
        soon = CreditBucket(
            id=uuid4(), remaining=100, expires_at=now + timedelta(days=1), created_at=now
        )

        draws = plan_burn([never, late, soon], 150)

        assert [(bucket.id, draw) for bucket, draw in draws] == [
            (soon.id, 100),
            (late.id, 50),
        ]

    def test_equal_expiry_draws_oldest_first(self):
        now = utc_now()
        expiry = now + timedelta(days=7)
        newer = CreditBucket(id=uuid4(), remaining=10, expires_at=expiry, created_at=now)
        older = CreditBucket(
            id=uuid4(),
            remaining=10,
            expires_at=expiry,
            created_at=now - timedelta(hours=1),
        )

        draws = plan_burn([newer, older], 5)

        assert draws[0][0] is older

    def test_insufficient_plan_raises(self):
        bucket = CreditBucket(
            id=uuid4(), remaining=10, expires_at=None, created_at=utc_now()
        )
        with pytest.raises(InsufficientCredits) as exc_info:
            plan_burn([bucket], 11)

        assert exc_info.value.required == 11
        assert exc_info.value.available == 10


class TestBurn:
    @pytest.mark.asyncio
    async def test_burn_spans_buckets_in_expiry_order(
        self, ledger, db_session, test_user, bucket_factory
    ):
        now = utc_now()
        soon = await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=1_000,
            expires_at=now + timedelta(days=2),
        )
        later = await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=5_000,
            expires_at=now + timedelta(days=60),
        )
        forever = await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=5_000,
            source=BucketSource.PURCHASED,
            expires_at=None,
        )
        await db_session.commit()

        transaction = await ledger.burn(
            test_user.id, 1_800, prompt_run(prompt_length=PromptLength.MEDIUM)
        )

        assert transaction.amount == -1_800
        assert transaction.type == TransactionType.PROMPT_RUN
        assert transaction.bucket_count == 2
        assert transaction.prompt_length == "medium"
        assert await remaining_of(db_session, soon.id) == 0
        assert await remaining_of(db_session, later.id) == 4_200
        assert await remaining_of(db_session, forever.id) == 5_000
        assert await ledger.get_balance(test_user.id) == 9_200

    @pytest.mark.asyncio
    async def test_insufficient_burn_changes_nothing(
        self, ledger, db_session, test_user, bucket_factory
    ):
        first = await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=400
        )
        second = await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=500
        )
        await db_session.commit()
        # The failed burn rolls back and expires every loaded instance
        user_id, first_id, second_id = test_user.id, first.id, second.id

        with pytest.raises(InsufficientCredits) as exc_info:
            await ledger.burn(user_id, 1_000, prompt_run())

        assert exc_info.value.available == 900
        assert await remaining_of(db_session, first_id) == 400
        assert await remaining_of(db_session, second_id) == 500

        result = await db_session.execute(
            select(CreditTransaction).where(CreditTransaction.user_id == user_id)
        )
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_expired_bucket_is_never_drawn(
        self, ledger, db_session, test_user, bucket_factory
    ):
        expired = await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=10_000,
            expires_at=utc_now() - timedelta(minutes=5),
        )
        await db_session.commit()
        expired_id = expired.id

        with pytest.raises(InsufficientCredits):
            await ledger.burn(test_user.id, 100, prompt_run())

        assert await remaining_of(db_session, expired_id) == 10_000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_burn_rejected(self, ledger, test_user, amount):
        with pytest.raises(ValueError):
            await ledger.burn(test_user.id, amount, prompt_run())

    @pytest.mark.asyncio
    async def test_flow_run_transaction_type(
        self, ledger, db_session, test_user, bucket_factory
    ):
        await bucket_factory.create_async(db_session, user_id=test_user.id)
        await db_session.commit()

        transaction = await ledger.burn(
            test_user.id,
            3_000,
            prompt_run(item_type=ItemType.FLOW, item_id="flow-9", source="n8n_api"),
        )

        assert transaction.type == TransactionType.FLOW_RUN
        assert transaction.source == "n8n_api"
        assert transaction.item_id == "flow-9"


class TestCreatorPayout:
    @pytest.mark.asyncio
    async def test_creator_receives_share_of_fee(
        self, ledger, db_session, test_user, test_creator, bucket_factory
    ):
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=20_000
        )
        await db_session.commit()

        # gpt-4o short: 8,500 base + 15% fee (1,275) = 9,775
        transaction = await ledger.burn(
            test_user.id,
            9_775,
            prompt_run(
                model_id="gpt-4o",
                creator_id=test_creator.id,
                creator_fee_percent=15,
                prompt_length=PromptLength.SHORT,
            ),
        )

        result = await db_session.execute(
            select(CreditBucket).where(CreditBucket.user_id == test_creator.id)
        )
        payout = result.scalar_one()
        assert payout.amount == 1_020
        assert payout.source == BucketSource.BONUS
        assert payout.provenance == f"creator_payment:{transaction.id}"
        assert payout.expires_at is not None
        assert await ledger.get_balance(test_creator.id) == 1_020
        assert await ledger.get_balance(test_user.id) == 20_000 - 9_775

        payment = await db_session.execute(
            select(CreditTransaction).where(
                CreditTransaction.user_id == test_creator.id
            )
        )
        payment_tx = payment.scalar_one()
        assert payment_tx.type == TransactionType.CREATOR_PAYMENT
        assert payment_tx.amount == 1_020

    @pytest.mark.asyncio
    async def test_self_run_pays_no_creator(
        self, ledger, db_session, test_user, bucket_factory
    ):
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=20_000
        )
        await db_session.commit()

        await ledger.burn(
            test_user.id,
            9_775,
            prompt_run(
                model_id="gpt-4o",
                creator_id=test_user.id,
                creator_fee_percent=15,
                prompt_length=PromptLength.SHORT,
            ),
        )

        result = await db_session.execute(
            select(CreditBucket).where(CreditBucket.provenance.like("creator_payment:%"))
        )
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_failed_burn_pays_no_creator(
        self, ledger, db_session, test_user, test_creator
    ):
        creator_id = test_creator.id
        with pytest.raises(InsufficientCredits):
            await ledger.burn(
                test_user.id,
                9_775,
                prompt_run(
                    model_id="gpt-4o",
                    creator_id=creator_id,
                    creator_fee_percent=15,
                    prompt_length=PromptLength.SHORT,
                ),
            )

        assert await ledger.get_balance(creator_id) == 0

    def test_creator_fee_needs_prompt_length(self):
        with pytest.raises(ValueError):
            prompt_run(model_id="gpt-4o", creator_id=uuid4(), creator_fee_percent=15)

        # Without a fee there is nothing to price
        assert prompt_run(creator_id=uuid4()).prompt_length is None

    @pytest.mark.asyncio
    async def test_flow_run_pays_its_creator(
        self, ledger, db_session, test_user, test_creator, bucket_factory
    ):
        await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=20_000
        )
        await db_session.commit()

        # gpt-4o medium: 15,000 base + 10% fee (1,500) = 16,500
        await ledger.burn(
            test_user.id,
            16_500,
            prompt_run(
                model_id="gpt-4o",
                item_type=ItemType.FLOW,
                item_id="flow-3",
                creator_id=test_creator.id,
                creator_fee_percent=10,
                prompt_length=PromptLength.MEDIUM,
            ),
        )

        assert await ledger.get_balance(test_creator.id) == 1_200


async def ledger_totals(db_session, user_id) -> tuple[int, int, int, int]:
    """(signed transaction sum, credits granted, credits burned, bucket remaining)."""
    transactions = (
        await db_session.execute(
            select(
                func.coalesce(func.sum(CreditTransaction.amount), 0),
                func.coalesce(
                    func.sum(
                        case(
                            (CreditTransaction.amount < 0, -CreditTransaction.amount),
                            else_=0,
                        )
                    ),
                    0,
                ),
            ).where(CreditTransaction.user_id == user_id)
        )
    ).one()
    buckets = (
        await db_session.execute(
            select(
                func.coalesce(func.sum(CreditBucket.amount), 0),
                func.coalesce(func.sum(CreditBucket.remaining), 0),
            ).where(CreditBucket.user_id == user_id)
        )
    ).one()
    signed, burned = transactions
    granted, remaining = buckets
    return int(signed), int(granted), int(burned), int(remaining)


class TestLedgerConservation:
    @pytest.mark.asyncio
    async def test_transactions_reconcile_with_buckets(
        self, ledger, db_session, test_user, test_creator
    ):
        buyer_id, creator_id = test_user.id, test_creator.id
        await ledger.add_credits(
            buyer_id, 5_000, BucketSource.BONUS, "campaign:autumn", 30
        )
        await ledger.add_credits(
            buyer_id, 20_000, BucketSource.PURCHASED, "stripe_payment:cs_autumn"
        )

        paid_run = await ledger.burn(
            buyer_id,
            9_775,
            prompt_run(
                model_id="gpt-4o",
                creator_id=creator_id,
                creator_fee_percent=15,
                prompt_length=PromptLength.SHORT,
            ),
        )
        await ledger.burn(buyer_id, 1_000, prompt_run(item_id="prompt-2"))
        await ledger.burn(creator_id, 500, prompt_run(item_id="prompt-3"))

        assert paid_run.bucket_count == 2

        buyer = await ledger_totals(db_session, buyer_id)
        assert buyer == (14_225, 25_000, 10_775, 14_225)

        creator = await ledger_totals(db_session, creator_id)
        assert creator == (520, 1_020, 500, 520)

        for signed, granted, burned, remaining in (buyer, creator):
            assert signed == granted - burned == remaining


class TestCreatorEarnings:
    @pytest.mark.asyncio
    async def test_earnings_by_period_and_item(
        self,
        ledger,
        db_session,
        test_user,
        test_creator,
        bucket_factory,
        transaction_factory,
    ):
        buyer_id, creator_id = test_user.id, test_creator.id
        await bucket_factory.create_async(db_session, user_id=buyer_id, amount=20_000)
        await transaction_factory.create_async(
            db_session,
            user_id=creator_id,
            amount=500,
            type=TransactionType.CREATOR_PAYMENT,
            source="prompt_execution:earlier-buyer",
            item_id="prompt-old",
            created_at=utc_now() - timedelta(days=40),
        )
        await db_session.commit()

        for _ in range(2):
            await ledger.burn(
                buyer_id,
                9_775,
                prompt_run(
                    model_id="gpt-4o",
                    creator_id=creator_id,
                    creator_fee_percent=15,
                    prompt_length=PromptLength.SHORT,
                ),
            )

        earnings = await ledger.get_creator_earnings(creator_id)

        assert earnings.today == earnings.this_week == earnings.this_month == 2_040
        assert earnings.all_time == 2_540
        assert earnings.pending_payout == 2_040
        assert earnings.total_users == 2
        assert [
            (item.item_id, item.runs, item.earnings, item.percentage_of_total)
            for item in earnings.by_item
        ] == [("prompt-1", 2, 2_040, 80), ("prompt-old", 1, 500, 20)]

    @pytest.mark.asyncio
    async def test_buyer_has_no_earnings(
        self, ledger, db_session, test_user, bucket_factory
    ):
        await bucket_factory.create_async(db_session, user_id=test_user.id, amount=1_000)
        await db_session.commit()
        await ledger.burn(test_user.id, 400, prompt_run())

        earnings = await ledger.get_creator_earnings(test_user.id)

        assert earnings.all_time == 0
        assert earnings.pending_payout == 0
        assert earnings.by_item == []


class TestAddCredits:
    @pytest.mark.asyncio
    async def test_grant_creates_bucket_and_transaction(
        self, ledger, db_session, test_user
    ):
        bucket_id = await ledger.add_credits(
            user_id=test_user.id,
            amount=50_000,
            source=BucketSource.PURCHASED,
            provenance="stripe_payment:cs_test_1",
            expiry_days=365,
        )

        bucket = await db_session.get(CreditBucket, bucket_id)
        assert bucket.amount == bucket.remaining == 50_000
        assert bucket.expires_at - bucket.created_at == timedelta(days=365)

        result = await db_session.execute(
            select(CreditTransaction).where(
                CreditTransaction.provenance == "stripe_payment:cs_test_1"
            )
        )
        transaction = result.scalar_one()
        assert transaction.type == TransactionType.PURCHASE
        assert transaction.source == "stripe_payment"
        assert transaction.amount == 50_000

    @pytest.mark.asyncio
    async def test_repeated_provenance_is_idempotent(
        self, ledger, db_session, test_user
    ):
        user_id = test_user.id
        first = await ledger.add_credits(
            user_id, 10_000, BucketSource.BONUS, "campaign:spring", 30
        )
        second = await ledger.add_credits(
            user_id, 10_000, BucketSource.BONUS, "campaign:spring", 30
        )

        assert first == second
        assert await ledger.get_balance(user_id) == 10_000

        count = await db_session.execute(
            select(CreditTransaction.id).where(
                CreditTransaction.provenance == "campaign:spring"
            )
        )
        assert len(count.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_grant_without_expiry_never_expires(self, ledger, db_session, test_user):
        bucket_id = await ledger.add_credits(
            test_user.id, 1_000, BucketSource.PURCHASED, "manual:1", None
        )

        bucket = await db_session.get(CreditBucket, bucket_id)
        assert bucket.expires_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_grant_rejected(self, ledger, test_user, amount):
        with pytest.raises(ValueError):
            await ledger.add_credits(test_user.id, amount, BucketSource.BONUS, "x:1")


class TestHistoryAndMaintenance:
    @pytest.mark.asyncio
    async def test_history_is_newest_first_with_total(
        self, ledger, db_session, test_user, transaction_factory
    ):
        now = utc_now()
        for hours_ago in (3, 2, 1):
            await transaction_factory.create_async(
                db_session,
                user_id=test_user.id,
                amount=-hours_ago,
                created_at=now - timedelta(hours=hours_ago),
            )
        await db_session.commit()

        page, total = await ledger.get_transaction_history(test_user.id, limit=2)

        assert total == 3
        assert [tx.amount for tx in page] == [-1, -2]

        page, _ = await ledger.get_transaction_history(test_user.id, limit=2, offset=2)
        assert [tx.amount for tx in page] == [-3]

    @pytest.mark.asyncio
    async def test_total_spent_filters_by_source_and_time(
        self, ledger, db_session, test_user, transaction_factory
    ):
        now = utc_now()
        await transaction_factory.create_async(
            db_session, user_id=test_user.id, amount=-5_000, source="n8n_api"
        )
        await transaction_factory.create_async(
            db_session, user_id=test_user.id, amount=-2_000, source="web"
        )
        await transaction_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=-9_000,
            source="n8n_api",
            created_at=now - timedelta(days=45),
        )
        await transaction_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=20_000,
            type=TransactionType.PURCHASE,
            source="stripe",
        )
        await db_session.commit()

        assert await ledger.get_total_spent(test_user.id) == 16_000
        assert (
            await ledger.get_total_spent(
                test_user.id, since=now - timedelta(days=30), source="n8n_api"
            )
            == 5_000
        )

    @pytest.mark.asyncio
    async def test_compaction_zeroes_expired_buckets_only(
        self, ledger, db_session, test_user, bucket_factory
    ):
        expired = await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=700,
            expires_at=utc_now() - timedelta(days=1),
        )
        live = await bucket_factory.create_async(
            db_session, user_id=test_user.id, amount=300
        )
        await db_session.commit()
        balance_before = await ledger.get_balance(test_user.id)

        compacted, credits_expired = await ledger.compact_expired_buckets()

        assert (compacted, credits_expired) == (1, 700)
        assert await remaining_of(db_session, expired.id) == 0
        assert await remaining_of(db_session, live.id) == 300
        assert await ledger.get_balance(test_user.id) == balance_before
