"""Auto-renewal monitor: tops up users whose balance falls below their threshold."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.core.exceptions import (
    AttemptBudgetExceeded,
    BundleNotFound,
    ExternalPaymentFailure,
    UserNotFound,
)
from src.database.models import (
    AutoRenewalLog,
    AutoRenewalStatus,
    BucketSource,
    CreditBucket,
    User,
)
from src.database.models.base import utc_now
from src.modules.billing.constants import CreditBundleConfig, get_bundle
from src.modules.billing.fulfillment import fulfill_bundle_purchase
from src.modules.billing.stripe.service import StripePaymentService
from src.modules.ledger.service import CreditLedgerService
from src.modules.notifications.service import NotificationService
from src.utils.settings.credits import CreditSettings


class AutoRenewalService(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        settings: CreditSettings | None = None,
        payments: StripePaymentService | None = None,
        notifications: NotificationService | None = None,
    ):
        super().__init__(db)
        self.settings = settings or CreditSettings()
        self.ledger = CreditLedgerService(db, self.settings)
        self.payments = payments or StripePaymentService(db, self.settings)
        self.notifications = notifications or NotificationService()

    def _ensure_attempt_budget(self, user: User) -> None:
        """Reset the counter once the window has passed, then enforce the cap."""
        window = timedelta(hours=self.settings.AUTO_RENEWAL_WINDOW_HOURS)
        last_attempt = user.last_auto_renewal_attempt_at
        if last_attempt is not None and utc_now() - last_attempt >= window:
            user.auto_renewal_attempts = 0

        if user.auto_renewal_attempts >= self.settings.AUTO_RENEWAL_MAX_ATTEMPTS:
            raise AttemptBudgetExceeded(user.id, user.auto_renewal_attempts)

    async def calculate_default_threshold(self, user_id: UUID) -> int:
        """A tenth of the user's last purchase, never below the configured floor."""
        stmt = (
            select(CreditBucket.amount)
            .where(
                CreditBucket.user_id == user_id,
                CreditBucket.source == BucketSource.PURCHASED,
            )
            .order_by(CreditBucket.created_at.desc())
            .limit(1)
        )
        last_purchase = (await self.db.execute(stmt)).scalar_one_or_none()
        if last_purchase is None:
            return self.settings.AUTO_RENEWAL_DEFAULT_THRESHOLD

        return max(
            last_purchase * self.settings.AUTO_RENEWAL_THRESHOLD_PERCENT // 100,
            self.settings.AUTO_RENEWAL_MIN_THRESHOLD,
        )

    async def check_threshold(self, user_id: UUID) -> bool:
        """Trigger a renewal if the balance is below threshold. True if one was started."""
        user = await self.db.get(
            User, user_id, with_for_update=True, populate_existing=True
        )
        if user is None:
            raise UserNotFound(user_id)

        if not user.auto_renewal_enabled or not user.auto_renewal_bundle_id:
            await self.db.rollback()
            return False

        try:
            self._ensure_attempt_budget(user)
        except AttemptBudgetExceeded as e:
            await self.db.rollback()
            self.logger.debug(str(e))
            return False

        threshold = user.auto_renewal_threshold or await self.calculate_default_threshold(
            user.id
        )
        balance = await self.ledger.get_balance(user.id)
        if balance >= threshold:
            # Persists a counter reset, if one happened
            await self.db.commit()
            return False

        self.logger.info(
            f"Balance below auto-renewal threshold for user {user.id}",
            balance=balance,
            threshold=threshold,
        )
        return await self.trigger_auto_renewal(user)

    async def trigger_auto_renewal(self, user: User) -> bool:
        """Record the attempt, then charge the saved card with no row locks held."""
        try:
            bundle = get_bundle(user.auto_renewal_bundle_id)
        except BundleNotFound:
            user_id, bundle_id = user.id, user.auto_renewal_bundle_id
            await self.db.rollback()
            self.logger.warning(
                f"User {user_id} has an unknown auto-renewal bundle",
                bundle_id=bundle_id,
            )
            return False

        renewal_log = AutoRenewalLog(
            user_id=user.id,
            bundle_id=bundle.id.value,
            amount=bundle.price_cents,
            status=AutoRenewalStatus.PENDING,
        )
        self.db.add(renewal_log)
        user.auto_renewal_attempts += 1
        user.last_auto_renewal_attempt_at = utc_now()
        await self.db.commit()

        try:
            if not user.stripe_customer_id:
                raise ExternalPaymentFailure(
                    "No Stripe customer on file", code="no_customer"
                )
            intent = await self.payments.create_replenishment_intent(
                user.stripe_customer_id, bundle, user.id, renewal_log.id
            )
        except ExternalPaymentFailure as e:
            renewal_log.status = AutoRenewalStatus.FAILED
            renewal_log.error_message = str(e)
            await self.db.commit()
            self.logger.warning(
                f"Auto-renewal failed for user {user.id}: {e}",
                code=e.code,
                renewal_log_id=str(renewal_log.id),
                attempts=user.auto_renewal_attempts,
            )
            await self.notifications.send_auto_renewal_failed(user, bundle, str(e))
            return False

        renewal_log.payment_intent_id = intent.id
        await self.db.commit()
        self.logger.info(
            f"Auto-renewal charge started for user {user.id}",
            payment_intent_id=intent.id,
            status=intent.status,
            bundle_id=bundle.id.value,
        )

        if intent.status == "succeeded":
            await self.complete_renewal(intent.id, renewal_log.id)
        else:
            await self.notifications.send_auto_renewal_pending(user, bundle)
        return True

    async def _find_log(
        self, payment_intent_id: str, renewal_log_id: UUID | str | None
    ) -> AutoRenewalLog | None:
        if renewal_log_id:
            try:
                log_id = UUID(str(renewal_log_id))
            except ValueError:
                log_id = None
            if log_id is not None:
                renewal_log = await self.db.get(
                    AutoRenewalLog, log_id, with_for_update=True, populate_existing=True
                )
                if renewal_log is not None:
                    return renewal_log

        result = await self.db.execute(
            select(AutoRenewalLog)
            .where(AutoRenewalLog.payment_intent_id == payment_intent_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def complete_renewal(
        self, payment_intent_id: str, renewal_log_id: UUID | str | None = None
    ) -> bool:
        """Grant the renewed bundle. Safe to call again for the same payment."""
        renewal_log = await self._find_log(payment_intent_id, renewal_log_id)
        if renewal_log is None:
            self.logger.warning(
                f"No auto-renewal log for payment intent {payment_intent_id}"
            )
            return False
        if renewal_log.status == AutoRenewalStatus.SUCCEEDED:
            await self.db.rollback()
            return True

        bundle = get_bundle(renewal_log.bundle_id)
        user_id, log_id = renewal_log.user_id, renewal_log.id
        await fulfill_bundle_purchase(self.ledger, user_id, bundle, payment_intent_id)

        renewal_log = await self._find_log(payment_intent_id, log_id)
        if renewal_log.status == AutoRenewalStatus.SUCCEEDED:
            await self.db.rollback()
            return True

        renewal_log.status = AutoRenewalStatus.SUCCEEDED
        renewal_log.payment_intent_id = payment_intent_id
        renewal_log.error_message = None
        user = await self.db.get(User, user_id, populate_existing=True)
        user.auto_renewal_attempts = 0
        await self.db.commit()

        balance = await self.ledger.get_balance(user_id)
        self.logger.info(
            f"Auto-renewal completed for user {user_id}",
            payment_intent_id=payment_intent_id,
            credits=bundle.total_credits,
        )
        await self.notifications.send_auto_renewal_succeeded(user, bundle, balance)
        return True

    async def fail_renewal(
        self,
        payment_intent_id: str,
        renewal_log_id: UUID | str | None,
        error_message: str,
    ) -> bool:
        renewal_log = await self._find_log(payment_intent_id, renewal_log_id)
        if renewal_log is None:
            self.logger.warning(
                f"No auto-renewal log for failed payment intent {payment_intent_id}"
            )
            return False
        if renewal_log.status != AutoRenewalStatus.PENDING:
            await self.db.rollback()
            return False

        renewal_log.status = AutoRenewalStatus.FAILED
        renewal_log.payment_intent_id = payment_intent_id
        renewal_log.error_message = error_message
        await self.db.commit()

        user = await self.db.get(User, renewal_log.user_id)
        self.logger.warning(
            f"Auto-renewal payment failed for user {renewal_log.user_id}",
            payment_intent_id=payment_intent_id,
            error=error_message,
        )
        await self.notifications.send_auto_renewal_failed(
            user, get_bundle(renewal_log.bundle_id), error_message
        )
        return True

    async def check_all_thresholds(self) -> int:
        """Run the threshold check for every opted-in user."""
        result = await self.db.execute(
            select(User.id).where(
                User.auto_renewal_enabled.is_(True),
                User.auto_renewal_bundle_id.is_not(None),
            )
        )
        user_ids = list(result.scalars().all())

        triggered = 0
        for user_id in user_ids:
            try:
                if await self.check_threshold(user_id):
                    triggered += 1
            except Exception as e:
                await self.db.rollback()
                self.logger.error(
                    f"Auto-renewal check failed for user {user_id}", error=str(e)
                )

        self.logger.info(
            f"Checked auto-renewal thresholds: {triggered} renewals triggered",
            candidates=len(user_ids),
        )
        return triggered

    async def update_preferences(
        self,
        user_id: UUID,
        enabled: bool,
        threshold: int | None = None,
        bundle_id: str | None = None,
    ) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)

        if bundle_id is not None:
            user.auto_renewal_bundle_id = get_bundle(bundle_id).id.value
        if enabled and not user.auto_renewal_bundle_id:
            raise ValueError("A credit bundle is required to enable auto-renewal")
        if threshold is not None and threshold <= 0:
            raise ValueError("Auto-renewal threshold must be positive")

        if enabled and not user.auto_renewal_enabled:
            user.auto_renewal_attempts = 0
        user.auto_renewal_enabled = enabled
        if threshold is not None:
            user.auto_renewal_threshold = threshold
        await self.db.commit()

        self.logger.info(
            f"Updated auto-renewal preferences for user {user_id}",
            enabled=enabled,
            bundle_id=user.auto_renewal_bundle_id,
            threshold=user.auto_renewal_threshold,
        )
        return user

    async def get_preferences(self, user_id: UUID) -> dict:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)

        bundle: CreditBundleConfig | None = None
        if user.auto_renewal_bundle_id:
            try:
                bundle = get_bundle(user.auto_renewal_bundle_id)
            except BundleNotFound:
                bundle = None

        history = await self.db.execute(
            select(AutoRenewalLog)
            .where(AutoRenewalLog.user_id == user_id)
            .order_by(AutoRenewalLog.created_at.desc())
            .limit(10)
        )
        return {
            "enabled": user.auto_renewal_enabled,
            "threshold": user.auto_renewal_threshold,
            "effective_threshold": user.auto_renewal_threshold
            or await self.calculate_default_threshold(user_id),
            "bundle_id": bundle.id.value if bundle else None,
            "attempts": user.auto_renewal_attempts,
            "last_attempt_at": user.last_auto_renewal_attempt_at,
            "recent_attempts": list(history.scalars().all()),
        }
