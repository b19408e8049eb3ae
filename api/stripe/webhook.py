"""Stripe webhook endpoint: checkout completion and expiry."""

from pitchdesk.services.payments import verify_webhook_event
from pitchdesk.services.pitch_lifecycle import handle_payment_event
from pitchdesk.utils.errors import DomainError
from pitchdesk.utils.http import dispatch, get_header, get_raw_body, json_response
from pitchdesk.utils.logging import get_correlation_id, get_structured_logger

logger = get_structured_logger(__name__)


async def receive_event(request: dict) -> dict:
    # Signature is computed over the raw body; verify before touching any state
    event = verify_webhook_event(get_raw_body(request), get_header(request, "stripe-signature"))
    try:
        event_id = event["id"]
    except (KeyError, TypeError):
        event_id = None

    try:
        outcome = await handle_payment_event(event)
    except DomainError as e:
        # Retrying will not change the answer; acknowledge and leave it for reconciliation
        logger.error(
            "Payment event rejected",
            correlation_id=get_correlation_id(),
            event_id=event_id,
            error_code=e.code,
            error=e.message,
            details=e.details
        )
        return json_response(200, {"received": True, "outcome": "rejected", "code": e.code})

    logger.info(
        "Payment event processed",
        correlation_id=get_correlation_id(),
        event_id=event_id,
        outcome=outcome.value
    )
    return json_response(200, {"received": True, "outcome": outcome.value})


def handler(request):
    """
    Stripe sends checkout.session.completed and checkout.session.expired here.

    A bad signature is a 400 with no side effects. Store failures surface as
    500 so Stripe redelivers; completion is idempotent.
    """
    return dispatch(request, {"POST": receive_event}, endpoint="stripe/webhook")
