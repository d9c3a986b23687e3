"""Stripe payment adapter: bundle checkout, off-session renewals and webhooks."""

from uuid import UUID

import stripe  # type: ignore
from stripe import StripeError  # type: ignore
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.core.exceptions import (
    BundleNotEligible,
    ExternalPaymentFailure,
    UserNotFound,
)
from src.database.models import User
from src.modules.billing.constants import (
    CreditBundleConfig,
    CreditBundleId,
    PaymentPurpose,
    get_bundle,
)
from src.modules.billing.fulfillment import FulfilledPurchase, fulfill_bundle_purchase
from src.modules.ledger.service import CreditLedgerService
from src.utils.settings.credits import CreditSettings
from src.utils.settings.stripe import StripeSettings


class StripePaymentService(BaseService):
    def __init__(self, db: AsyncSession, settings: CreditSettings | None = None):
        super().__init__(db)
        self.stripe_settings = StripeSettings()
        self.settings = settings or CreditSettings()
        self.ledger = CreditLedgerService(db, self.settings)
        stripe.api_key = self.stripe_settings.STRIPE_SECRET_KEY.get_secret_value()

    async def _find_or_create_stripe_customer(self, user: User) -> str:
        """Return the user's Stripe customer, creating one on first purchase."""
        if user.stripe_customer_id:
            return user.stripe_customer_id

        try:
            customer = stripe.Customer.create(
                email=user.email,
                name=user.name,
                metadata={"user_id": str(user.id)},
            )
        except StripeError as e:
            raise ExternalPaymentFailure(
                f"Failed to create Stripe customer: {e}", code=getattr(e, "code", None)
            ) from e

        user.stripe_customer_id = customer.id
        await self.db.commit()
        self.logger.info(f"Created Stripe customer {customer.id} for user {user.id}")
        return customer.id

    async def _ensure_bundle_eligible(
        self, user_id: UUID, bundle: CreditBundleConfig
    ) -> None:
        if bundle.requires_monthly_burn is None:
            return

        from src.modules.automation.service import AutomationBonusService

        tier_status = await AutomationBonusService(
            self.db, self.settings
        ).calculate_automation_tier(user_id)
        if tier_status.monthly_burn < bundle.requires_monthly_burn:
            raise BundleNotEligible(
                bundle.id.value, bundle.requires_monthly_burn, tier_status.monthly_burn
            )

    async def create_checkout_session(
        self,
        user_id: UUID,
        bundle_id: CreditBundleId | str,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)

        bundle = get_bundle(bundle_id)
        await self._ensure_bundle_eligible(user.id, bundle)
        customer_id = await self._find_or_create_stripe_customer(user)

        try:
            checkout_session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.stripe_settings.STRIPE_CURRENCY,
                            "unit_amount": bundle.price_cents,
                            "product_data": {
                                "name": bundle.name,
                                "description": bundle.description,
                            },
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                # Keeps the card on file for off-session auto-renewal charges
                payment_intent_data={"setup_future_usage": "off_session"},
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={
                    "user_id": str(user.id),
                    "bundle_id": bundle.id.value,
                    "purpose": PaymentPurpose.CREDIT_PURCHASE.value,
                },
            )
        except StripeError as e:
            raise ExternalPaymentFailure(
                f"Failed to create checkout session: {e}", code=getattr(e, "code", None)
            ) from e

        self.logger.info(
            f"Created checkout session {checkout_session.id} for user {user.id}",
            bundle_id=bundle.id.value,
        )
        return checkout_session

    async def create_replenishment_intent(
        self,
        customer_id: str,
        bundle: CreditBundleConfig,
        user_id: UUID,
        renewal_log_id: UUID,
    ) -> stripe.PaymentIntent:
        """Charge the customer's default card off-session for an auto-renewal."""
        try:
            customer = stripe.Customer.retrieve(customer_id)
            invoice_settings = customer.get("invoice_settings") or {}
            payment_method = invoice_settings.get("default_payment_method")
            if not payment_method:
                methods = stripe.PaymentMethod.list(
                    customer=customer_id, type="card", limit=1
                )
                payment_method = methods.data[0].id if methods.data else None
            if not payment_method:
                raise ExternalPaymentFailure(
                    "No saved payment method for auto-renewal", code="no_payment_method"
                )

            return stripe.PaymentIntent.create(
                amount=bundle.price_cents,
                currency=self.stripe_settings.STRIPE_CURRENCY,
                customer=customer_id,
                payment_method=payment_method,
                off_session=True,
                confirm=True,
                description=f"Auto-renewal: {bundle.name}",
                metadata={
                    "user_id": str(user_id),
                    "bundle_id": bundle.id.value,
                    "purpose": PaymentPurpose.AUTO_RENEWAL.value,
                    "auto_renewal_log_id": str(renewal_log_id),
                },
                idempotency_key=f"auto_renewal:{renewal_log_id}",
            )
        except StripeError as e:
            raise ExternalPaymentFailure(
                f"Auto-renewal charge failed: {getattr(e, 'user_message', None) or e}",
                code=getattr(e, "code", None),
            ) from e

    def validate_webhook_signature(self, payload: bytes, signature: str) -> dict:
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.stripe_settings.STRIPE_WEBHOOK_SECRET,
                tolerance=self.stripe_settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            )
            return event
        except Exception:
            raise ValueError("Invalid webhook data")

    async def handle_webhook_event(self, event: dict) -> bool:
        """Dispatch a verified event. Returns False for event types we ignore."""
        event_type = event["type"]
        data = event["data"]["object"]

        webhook_handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "payment_intent.succeeded": self._handle_payment_intent_succeeded,
            "payment_intent.payment_failed": self._handle_payment_intent_failed,
        }

        handler = webhook_handlers.get(event_type)
        if not handler:
            return False

        try:
            await handler(data)
            return True
        except Exception as e:
            self.logger.error(
                "Error handling webhook", event_type=event_type, error=str(e)
            )
            raise

    async def _handle_checkout_completed(self, session_data: dict) -> None:
        metadata = session_data.get("metadata") or {}
        session_id = session_data.get("id")

        if session_data.get("mode") != "payment":
            self.logger.debug(f"Ignoring non-payment checkout session {session_id}")
            return
        if session_data.get("payment_status") != "paid":
            self.logger.info(
                f"Checkout session {session_id} completed without payment",
                payment_status=session_data.get("payment_status"),
            )
            return

        user_id_str = metadata.get("user_id")
        bundle_id = metadata.get("bundle_id")
        if not user_id_str or not bundle_id:
            self.logger.warning(
                f"Checkout session {session_id} is missing user or bundle metadata"
            )
            return

        try:
            user_id = UUID(user_id_str)
        except (ValueError, TypeError):
            self.logger.error(f"Invalid user_id in metadata: {user_id_str}")
            return

        user = await self.db.get(User, user_id)
        if user is None:
            self.logger.error(f"User not found for checkout session {session_id}")
            return

        customer_id = session_data.get("customer")
        if customer_id and user.stripe_customer_id != customer_id:
            user.stripe_customer_id = customer_id
            await self.db.commit()

        await self.fulfill_bundle_purchase(user_id, get_bundle(bundle_id), session_id)

    async def _handle_payment_intent_succeeded(self, intent_data: dict) -> None:
        metadata = intent_data.get("metadata") or {}
        # Checkout purchases are fulfilled from checkout.session.completed
        if metadata.get("purpose") != PaymentPurpose.AUTO_RENEWAL.value:
            return

        from src.modules.billing.auto_renewal import AutoRenewalService

        await AutoRenewalService(self.db, self.settings, payments=self).complete_renewal(
            intent_data["id"], metadata.get("auto_renewal_log_id")
        )

    async def _handle_payment_intent_failed(self, intent_data: dict) -> None:
        metadata = intent_data.get("metadata") or {}
        if metadata.get("purpose") != PaymentPurpose.AUTO_RENEWAL.value:
            return

        error = intent_data.get("last_payment_error") or {}
        from src.modules.billing.auto_renewal import AutoRenewalService

        await AutoRenewalService(self.db, self.settings, payments=self).fail_renewal(
            intent_data["id"],
            metadata.get("auto_renewal_log_id"),
            error.get("message") or "Payment failed",
        )

    async def fulfill_bundle_purchase(
        self, user_id: UUID, bundle: CreditBundleConfig, payment_reference: str
    ) -> FulfilledPurchase:
        purchase = await fulfill_bundle_purchase(
            self.ledger, user_id, bundle, payment_reference
        )
        self.logger.info(
            f"Fulfilled {bundle.name} bundle for user {user_id}",
            payment_reference=payment_reference,
            credits=purchase.total_credits,
        )
        return purchase
