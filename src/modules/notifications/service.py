"""Transactional billing emails sent through Resend."""

from typing import Any, cast

import resend

from src.database.models import User
from src.emails import SUPPORTED_LOCALES, LocaleType, TemplateType, render_email
from src.modules.billing.constants import CreditBundleConfig
from src.utils.logger import get_logger
from src.utils.settings.email import EmailSettings


def _format_credits(credits: int) -> str:
    return f"{credits:,}"


class NotificationService:
    """Best-effort delivery: failures are logged and never raised to callers."""

    def __init__(self, settings: EmailSettings | None = None):
        self.settings = settings or EmailSettings()
        self.logger = get_logger(self.__class__.__name__)

    def _send(
        self,
        user: User,
        template_name: TemplateType,
        context: dict[str, Any],
        category: str,
    ) -> str | None:
        if not self.settings.RESEND_API_KEY:
            self.logger.warning(
                f"RESEND_API_KEY not configured, skipping {template_name} email for {user.email}"
            )
            return None

        try:
            resend.api_key = self.settings.RESEND_API_KEY

            locale: LocaleType = "en"
            if user.locale and user.locale in SUPPORTED_LOCALES:
                locale = cast(LocaleType, user.locale)

            email_data = render_email(
                template_name=template_name,
                locale=locale,
                context={"name": user.name or user.email, **context},
            )
            from_address = f"{self.settings.EMAIL_FROM_NAME} <noreply@{self.settings.EMAIL_FROM_DOMAIN}>"

            response = resend.Emails.send(
                {
                    "from": from_address,
                    "to": user.email,
                    "subject": email_data["subject"],
                    "html": email_data["html"],
                    "reply_to": email_data["reply_to"],
                    "tags": [{"name": "category", "value": category}],
                }
            )
            self.logger.info(
                f"{template_name} email sent to {user.email}",
                email_id=response["id"],
                locale=locale,
            )
            return response["id"]
        except Exception as e:
            self.logger.warning(
                f"Failed to send {template_name} email to {user.email}: {e}",
                error=str(e),
            )
            return None

    @staticmethod
    def _bundle_context(bundle: CreditBundleConfig) -> dict[str, Any]:
        return {
            "bundle_name": bundle.name,
            "credits": _format_credits(bundle.total_credits),
            "amount": f"${bundle.price:.2f}",
        }

    async def send_auto_renewal_pending(
        self, user: User, bundle: CreditBundleConfig
    ) -> str | None:
        return self._send(
            user, "auto_renewal_pending", self._bundle_context(bundle), "auto_renewal"
        )

    async def send_auto_renewal_succeeded(
        self, user: User, bundle: CreditBundleConfig, balance: int
    ) -> str | None:
        context = {**self._bundle_context(bundle), "balance": _format_credits(balance)}
        return self._send(user, "auto_renewal_succeeded", context, "auto_renewal")

    async def send_auto_renewal_failed(
        self, user: User, bundle: CreditBundleConfig, error_message: str | None = None
    ) -> str | None:
        context = {**self._bundle_context(bundle), "error_message": error_message}
        return self._send(user, "auto_renewal_failed", context, "auto_renewal")
