"""Stripe payment adapter: checkout sessions for contact fees and webhook verification."""

import logging
from typing import Any, Optional, Union
import stripe

from pitchdesk.models.pitch import CheckoutSession
from pitchdesk.utils.config import (
    AppConfig,
    CONTACT_FEE_HIGH_VOLUME_CENTS,
    CONTACT_FEE_STANDARD_CENTS,
    HIGH_VOLUME_THRESHOLD,
)
from pitchdesk.utils.errors import ConfigurationError, PaymentProviderError, WebhookVerificationError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_EXPIRED = "checkout.session.expired"


def contact_fee_cents(agent_sales_volume: float) -> int:
    """Contact fee for one pitch, in cents."""
    override = AppConfig.contact_fee_override_cents()
    if override is not None:
        return override
    if agent_sales_volume >= HIGH_VOLUME_THRESHOLD:
        return CONTACT_FEE_HIGH_VOLUME_CENTS
    return CONTACT_FEE_STANDARD_CENTS


def _configure_stripe() -> None:
    stripe.api_key = AppConfig.require("STRIPE_SECRET_KEY")


def create_checkout_session(
    amount_cents: int,
    metadata: dict[str, str],
    success_url: str,
    cancel_url: str,
    description: Optional[str] = None,
) -> CheckoutSession:
    """Open a one-off card payment session and return its id and redirect URL."""
    _configure_stripe()

    product_data: dict[str, Any] = {"name": "Agent Contact Fee"}
    if description:
        product_data["description"] = description

    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": "usd",
                    "product_data": product_data,
                    "unit_amount": amount_cents,
                },
                "quantity": 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe checkout session creation failed: {e}")
        raise PaymentProviderError(f"Failed to create checkout session: {e}")

    if not session.url:
        raise PaymentProviderError("Checkout session returned no redirect URL")

    logger.info(
        "Checkout session created",
        extra={"session_id": session.id, "pitch_id": metadata.get("pitchId"), "amount_cents": amount_cents}
    )
    return CheckoutSession(session_id=session.id, redirect_url=session.url)


def get_webhook_secret() -> str:
    """Get the Stripe webhook signing secret."""
    secret = AppConfig.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise ConfigurationError("STRIPE_WEBHOOK_SECRET not set")
    return secret


def verify_webhook_event(payload: Union[str, bytes], signature: Optional[str]) -> Any:
    """
    Verify a Stripe webhook and return the parsed event.

    Raises WebhookVerificationError when the signature header is missing,
    malformed, stale or does not match the raw body.
    """
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")

    secret = get_webhook_secret()

    try:
        return stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        raise WebhookVerificationError("Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise WebhookVerificationError("Invalid signature")
