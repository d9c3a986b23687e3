"""Stripe webhook endpoint."""

import time

from fastapi import APIRouter, Request, status

from src.api.core.constants import MAX_WEBHOOK_PAYLOAD_BYTES
from src.api.core.dependencies import StripePaymentServiceDep
from src.api.core.exceptions.base import PromptFlowException
from src.api.core.messages import MessageCode
from src.utils.logger import get_logger
from src.utils.settings.stripe import StripeSettings

logger = get_logger(__name__)

router = APIRouter(prefix="/stripe", tags=["stripe"])


def _bad_request(description: str, status_code: int = status.HTTP_400_BAD_REQUEST):
    return PromptFlowException(
        MessageCode.BAD_REQUEST, status_code, details={"description": description}
    )


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_service: StripePaymentServiceDep,
):
    """Verify and dispatch a Stripe webhook event.

    Fulfilment is idempotent per payment, so Stripe retries after a 5xx are safe.
    """
    payload = await request.body()

    if not payload:
        raise _bad_request("Empty webhook payload")
    if len(payload) > MAX_WEBHOOK_PAYLOAD_BYTES:
        raise _bad_request(
            "Webhook payload too large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )

    signature = request.headers.get("stripe-signature")
    if not signature:
        raise _bad_request("Missing stripe-signature header")
    if not signature.startswith("t=") or ",v" not in signature:
        raise _bad_request("Invalid stripe-signature format")

    try:
        event = stripe_service.validate_webhook_signature(payload, signature)
    except ValueError as e:
        logger.error(f"Webhook validation error: {e}")
        raise _bad_request("Invalid webhook data")

    event_timestamp = event.get("created", 0)
    tolerance = StripeSettings().STRIPE_WEBHOOK_TOLERANCE_SECONDS
    if abs(int(time.time()) - event_timestamp) > tolerance:
        logger.warning(f"Webhook event timestamp too old: {event_timestamp}")
        raise _bad_request("Webhook event timestamp too old")

    try:
        handled = await stripe_service.handle_webhook_event(event)
    except Exception as e:
        logger.error(f"Webhook processing error: {e}", event_type=event["type"])
        raise PromptFlowException(
            MessageCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if handled:
        logger.info(f"Successfully processed webhook event: {event['type']}")
        return {"status": "success"}

    logger.debug(f"Webhook event not handled: {event['type']}")
    return {"status": "ignored"}
