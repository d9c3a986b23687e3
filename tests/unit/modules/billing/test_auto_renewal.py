"""Tests for the auto-renewal monitor with a stubbed payment collaborator."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import select

from src.core.exceptions import BundleNotFound, ExternalPaymentFailure
from src.database.models import AutoRenewalLog, AutoRenewalStatus, BucketSource, User
from src.database.models.base import utc_now
from src.modules.billing.auto_renewal import AutoRenewalService

STARTER_CREDITS = 10_000_000


@pytest.fixture
def payments():
    payments = AsyncMock()
    payments.create_replenishment_intent.return_value = SimpleNamespace(
        id="pi_renewal_1", status="succeeded"
    )
    return payments


@pytest.fixture
def notifications():
    return AsyncMock()


@pytest.fixture
def auto_renewal(db_session, credit_settings, payments, notifications):
    return AutoRenewalService(
        db_session, credit_settings, payments=payments, notifications=notifications
    )


@pytest_asyncio.fixture
async def renewing_user(db_session, user_factory) -> User:
    user = await user_factory.create_async(
        db_session,
        stripe_customer_id="cus_test_renewal",
        auto_renewal_enabled=True,
        auto_renewal_bundle_id="starter",
        auto_renewal_threshold=1_000_000,
    )
    await db_session.commit()
    return user


async def renewal_logs(db_session, user_id) -> list[AutoRenewalLog]:
    result = await db_session.execute(
        select(AutoRenewalLog)
        .where(AutoRenewalLog.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class TestCheckThreshold:
    @pytest.mark.asyncio
    async def test_disabled_user_is_never_charged(
        self, auto_renewal, payments, test_user
    ):
        assert await auto_renewal.check_threshold(test_user.id) is False
        payments.create_replenishment_intent.assert_not_called()

    @pytest.mark.asyncio
    async def test_balance_above_threshold_is_a_no_op(
        self, auto_renewal, payments, db_session, renewing_user, bucket_factory
    ):
        await bucket_factory.create_async(
            db_session, user_id=renewing_user.id, amount=1_000_000
        )
        await db_session.commit()

        assert await auto_renewal.check_threshold(renewing_user.id) is False
        payments.create_replenishment_intent.assert_not_called()
        assert await renewal_logs(db_session, renewing_user.id) == []

    @pytest.mark.asyncio
    async def test_immediate_success_grants_bundle(
        self, auto_renewal, payments, notifications, db_session, renewing_user
    ):
        assert await auto_renewal.check_threshold(renewing_user.id) is True

        [renewal_log] = await renewal_logs(db_session, renewing_user.id)
        assert renewal_log.status == AutoRenewalStatus.SUCCEEDED
        assert renewal_log.payment_intent_id == "pi_renewal_1"
        assert renewal_log.amount == 1_000

        call = payments.create_replenishment_intent.await_args
        assert call.args[0] == "cus_test_renewal"
        assert call.args[3] == renewal_log.id

        assert await auto_renewal.ledger.get_balance(renewing_user.id) == STARTER_CREDITS
        user = await db_session.get(User, renewing_user.id, populate_existing=True)
        assert user.auto_renewal_attempts == 0
        notifications.send_auto_renewal_succeeded.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_processing_payment_waits_for_webhook(
        self, auto_renewal, payments, notifications, db_session, renewing_user
    ):
        payments.create_replenishment_intent.return_value = SimpleNamespace(
            id="pi_renewal_2", status="processing"
        )
        user_id = renewing_user.id

        assert await auto_renewal.check_threshold(user_id) is True

        [renewal_log] = await renewal_logs(db_session, user_id)
        assert renewal_log.status == AutoRenewalStatus.PENDING
        assert await auto_renewal.ledger.get_balance(user_id) == 0
        notifications.send_auto_renewal_pending.assert_awaited_once()

        assert await auto_renewal.complete_renewal("pi_renewal_2") is True
        # Redelivered webhook
        assert await auto_renewal.complete_renewal("pi_renewal_2") is True

        [renewal_log] = await renewal_logs(db_session, user_id)
        assert renewal_log.status == AutoRenewalStatus.SUCCEEDED
        assert await auto_renewal.ledger.get_balance(user_id) == STARTER_CREDITS
        notifications.send_auto_renewal_succeeded.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_payment_failure_is_logged_and_notified(
        self, auto_renewal, payments, notifications, db_session, renewing_user
    ):
        payments.create_replenishment_intent.side_effect = ExternalPaymentFailure(
            "Auto-renewal charge failed: Your card was declined.", code="card_declined"
        )

        assert await auto_renewal.check_threshold(renewing_user.id) is False

        [renewal_log] = await renewal_logs(db_session, renewing_user.id)
        assert renewal_log.status == AutoRenewalStatus.FAILED
        assert "declined" in renewal_log.error_message
        user = await db_session.get(User, renewing_user.id, populate_existing=True)
        assert user.auto_renewal_attempts == 1
        assert user.last_auto_renewal_attempt_at is not None
        notifications.send_auto_renewal_failed.assert_awaited_once()
        notifications.send_auto_renewal_pending.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_customer_fails_without_calling_stripe(
        self, auto_renewal, payments, db_session, renewing_user
    ):
        renewing_user.stripe_customer_id = None
        await db_session.commit()

        assert await auto_renewal.check_threshold(renewing_user.id) is False

        payments.create_replenishment_intent.assert_not_called()
        [renewal_log] = await renewal_logs(db_session, renewing_user.id)
        assert renewal_log.status == AutoRenewalStatus.FAILED
        assert renewal_log.error_message == "No Stripe customer on file"

    @pytest.mark.asyncio
    async def test_retired_bundle_is_skipped(
        self, auto_renewal, payments, db_session, user_factory
    ):
        user = await user_factory.create_async(
            db_session,
            stripe_customer_id="cus_retired",
            auto_renewal_enabled=True,
            auto_renewal_bundle_id="retired_bundle",
            auto_renewal_threshold=1_000_000,
        )
        await db_session.commit()
        user_id = user.id

        assert await auto_renewal.check_threshold(user_id) is False

        payments.create_replenishment_intent.assert_not_called()
        assert await renewal_logs(db_session, user_id) == []


class TestAttemptBudget:
    @pytest.mark.asyncio
    async def test_exhausted_budget_blocks_attempts(
        self, auto_renewal, payments, db_session, renewing_user
    ):
        renewing_user.auto_renewal_attempts = 3
        renewing_user.last_auto_renewal_attempt_at = utc_now() - timedelta(hours=1)
        await db_session.commit()

        assert await auto_renewal.check_threshold(renewing_user.id) is False
        payments.create_replenishment_intent.assert_not_called()

    @pytest.mark.asyncio
    async def test_budget_resets_after_window(
        self, auto_renewal, payments, db_session, renewing_user
    ):
        payments.create_replenishment_intent.side_effect = ExternalPaymentFailure(
            "declined"
        )
        renewing_user.auto_renewal_attempts = 3
        renewing_user.last_auto_renewal_attempt_at = utc_now() - timedelta(hours=25)
        await db_session.commit()

        await auto_renewal.check_threshold(renewing_user.id)

        payments.create_replenishment_intent.assert_awaited_once()
        user = await db_session.get(User, renewing_user.id, populate_existing=True)
        assert user.auto_renewal_attempts == 1

    @pytest.mark.asyncio
    async def test_repeated_failures_stop_at_the_cap(
        self, auto_renewal, payments, renewing_user
    ):
        payments.create_replenishment_intent.side_effect = ExternalPaymentFailure(
            "declined"
        )
        user_id = renewing_user.id

        for _ in range(5):
            await auto_renewal.check_threshold(user_id)

        assert payments.create_replenishment_intent.await_count == 3


class TestRenewalWebhooks:
    @pytest.mark.asyncio
    async def test_fail_renewal_only_from_pending(
        self, auto_renewal, notifications, db_session, renewing_user, renewal_log_factory
    ):
        pending = await renewal_log_factory.create_async(
            db_session, user_id=renewing_user.id, payment_intent_id="pi_pending"
        )
        done = await renewal_log_factory.create_async(
            db_session,
            user_id=renewing_user.id,
            payment_intent_id="pi_done",
            status=AutoRenewalStatus.SUCCEEDED,
        )
        await db_session.commit()
        user_id, pending_id, done_id = renewing_user.id, pending.id, done.id

        assert await auto_renewal.fail_renewal("pi_pending", None, "Insufficient funds")
        assert not await auto_renewal.fail_renewal("pi_done", str(done_id), "late")

        logs = {log.id: log for log in await renewal_logs(db_session, user_id)}
        assert logs[pending_id].status == AutoRenewalStatus.FAILED
        assert logs[pending_id].error_message == "Insufficient funds"
        assert logs[done_id].status == AutoRenewalStatus.SUCCEEDED
        notifications.send_auto_renewal_failed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_payment_intent(self, auto_renewal):
        assert await auto_renewal.complete_renewal("pi_unknown") is False


class TestThresholdsAndPreferences:
    @pytest.mark.asyncio
    async def test_default_threshold_without_purchases(self, auto_renewal, test_user):
        assert await auto_renewal.calculate_default_threshold(test_user.id) == 1_000_000

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "purchased,expected", [(50_000_000, 5_000_000), (200_000, 100_000)]
    )
    async def test_default_threshold_from_last_purchase(
        self, auto_renewal, db_session, test_user, bucket_factory, purchased, expected
    ):
        await bucket_factory.create_async(
            db_session,
            user_id=test_user.id,
            amount=purchased,
            source=BucketSource.PURCHASED,
        )
        await db_session.commit()

        assert await auto_renewal.calculate_default_threshold(test_user.id) == expected

    @pytest.mark.asyncio
    async def test_enabling_requires_a_bundle(self, auto_renewal, test_user):
        with pytest.raises(ValueError):
            await auto_renewal.update_preferences(test_user.id, enabled=True)

    @pytest.mark.asyncio
    async def test_unknown_bundle_rejected(self, auto_renewal, test_user):
        with pytest.raises(BundleNotFound):
            await auto_renewal.update_preferences(
                test_user.id, enabled=True, bundle_id="platinum"
            )

    @pytest.mark.asyncio
    async def test_update_and_read_preferences(self, auto_renewal, test_user):
        await auto_renewal.update_preferences(
            test_user.id, enabled=True, threshold=2_000_000, bundle_id="pro"
        )

        preferences = await auto_renewal.get_preferences(test_user.id)

        assert preferences["enabled"] is True
        assert preferences["bundle_id"] == "pro"
        assert preferences["threshold"] == 2_000_000
        assert preferences["effective_threshold"] == 2_000_000
        assert preferences["attempts"] == 0
        assert preferences["recent_attempts"] == []

    @pytest.mark.asyncio
    async def test_check_all_thresholds(
        self, auto_renewal, payments, db_session, user_factory, renewing_user, test_user
    ):
        payments.create_replenishment_intent.side_effect = (
            lambda customer_id, bundle, user_id, renewal_log_id: SimpleNamespace(
                id=f"pi_{renewal_log_id.hex}", status="succeeded"
            )
        )
        await user_factory.create_async(
            db_session,
            stripe_customer_id="cus_other",
            auto_renewal_enabled=True,
            auto_renewal_bundle_id="basic",
        )
        await db_session.commit()

        assert await auto_renewal.check_all_thresholds() == 2
