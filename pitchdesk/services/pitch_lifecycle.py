"""
Pitch lifecycle - the state machine behind pitches and their contact fee.

Pitch status:    PENDING -> ACCEPTED | DECLINED   (agent responds once)
Payment status:  PENDING -> PAID | FAILED         (driven by the payment webhook)

Every transition is a conditional update against the current state, so
concurrent requests and redelivered webhooks cannot double-apply.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from pitchdesk.models.agent import Agent
from pitchdesk.models.brokerage import Brokerage
from pitchdesk.models.notification import NotificationKind
from pitchdesk.models.offer import OfferDetails
from pitchdesk.models.pitch import CheckoutSession, PaymentStatus, Pitch, PitchStatus
from pitchdesk.models.views import AgentPitchView, BrokeragePitchView
from pitchdesk.services.notifications import notify
from pitchdesk.services.payments import (
    CHECKOUT_COMPLETED,
    CHECKOUT_EXPIRED,
    contact_fee_cents,
    create_checkout_session,
)
from pitchdesk.services.supabase_client import (
    get_agent_by_id,
    get_agents_by_ids,
    get_brokerage_by_id,
    get_brokerages_by_ids,
    get_pitch_by_id,
    get_pitch_by_pair,
    get_pitch_by_session,
    get_user_by_id,
    get_users_by_ids,
    insert_pitch,
    list_pitches_by_agent,
    list_pitches_by_brokerage,
    reveal_agent,
    transition_pitch,
)
from pitchdesk.services.visibility import agent_pitch_view, brokerage_pitch_view
from pitchdesk.utils.config import AppConfig
from pitchdesk.utils.errors import (
    AlreadyPaidError,
    DuplicatePitchError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from pitchdesk.utils.ids import generate_id, utc_now_iso
from pitchdesk.utils.logging import get_correlation_id, get_structured_logger, mask_id, timed

logger = get_structured_logger(__name__)


class PaymentOutcome(str, Enum):
    """What a payment webhook did to the pitch."""
    COMPLETED = "completed"
    EXPIRED = "expired"
    NO_OP = "no_op"
    IGNORED = "ignored"


async def _load_pitch(pitch_id: str) -> Pitch:
    row = await get_pitch_by_id(pitch_id)
    if row is None:
        raise NotFoundError("Pitch not found", {"pitch_id": pitch_id})
    return Pitch.model_validate(row)


async def _load_agent(agent_id: str) -> Agent:
    row = await get_agent_by_id(agent_id)
    if row is None:
        raise NotFoundError("Agent not found", {"agent_id": agent_id})
    return Agent.model_validate(row)


async def _load_brokerage(brokerage_id: str) -> Brokerage:
    row = await get_brokerage_by_id(brokerage_id)
    if row is None:
        raise NotFoundError("Brokerage not found", {"brokerage_id": brokerage_id})
    return Brokerage.model_validate(row)


async def _notify_user(kind: NotificationKind, user_id: str, template_data: dict[str, Any]) -> None:
    """Resolve a user's email and queue a notification. Failures are logged only."""
    try:
        user = await get_user_by_id(user_id)
    except Exception as e:
        logger.error(
            "Notification recipient lookup failed (non-fatal)",
            correlation_id=get_correlation_id(),
            notification_kind=kind.value,
            user_id=mask_id(user_id),
            error=str(e)
        )
        return
    await notify(kind, user.get("email") if user else None, template_data)


def _coerce_offer(offer_details: Union[OfferDetails, dict, None], fallback: OfferDetails) -> OfferDetails:
    if offer_details is None:
        return fallback
    if isinstance(offer_details, OfferDetails):
        return offer_details
    try:
        return OfferDetails.model_validate(offer_details)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid offer details",
            {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
        )


async def create_pitch(
    brokerage_id: str,
    agent_id: str,
    message: str,
    offer_details: Union[OfferDetails, dict, None] = None,
) -> Pitch:
    """
    Send a pitch from a brokerage to an agent.

    The offer is snapshotted into the pitch; later edits to the brokerage's
    standard offer do not touch it. One pitch per (agent, brokerage) pair.
    """
    correlation_id = get_correlation_id()

    if not message or not message.strip():
        raise ValidationError("Pitch message is required", {"field": "message"})

    brokerage = await _load_brokerage(brokerage_id)
    agent = await _load_agent(agent_id)
    offer = _coerce_offer(offer_details, brokerage.standard_offer)

    if await get_pitch_by_pair(agent.id, brokerage.id) is not None:
        raise DuplicatePitchError("You have already pitched this agent")

    # A concurrent insert still loses on the unique index inside insert_pitch
    row = await insert_pitch({
        "id": generate_id(),
        "agent_id": agent.id,
        "brokerage_id": brokerage.id,
        "message": message.strip(),
        "offer_details": offer.to_record(),
        "status": PitchStatus.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
        "stripe_payment_id": None,
        "expired_payment_id": None,
        "created_at": utc_now_iso(),
        "responded_at": None,
        "paid_at": None,
    })
    pitch = Pitch.model_validate(row)

    logger.info(
        "Pitch created",
        correlation_id=correlation_id,
        pitch_id=pitch.id,
        agent_id=agent.id,
        brokerage_id=brokerage.id
    )

    await _notify_user(NotificationKind.PITCH_RECEIVED, agent.user_id, {
        "pitch_id": pitch.id,
        "brokerage_company_name": brokerage.company_name,
    })
    return pitch


async def _respond(pitch_id: str, acting_agent_id: str, new_status: PitchStatus) -> Pitch:
    correlation_id = get_correlation_id()
    pitch = await _load_pitch(pitch_id)

    if pitch.agent_id != acting_agent_id:
        raise ForbiddenError("Only the pitched agent can respond to this pitch")
    if pitch.status != PitchStatus.PENDING:
        raise InvalidStateError(
            f"Pitch already {pitch.status.value.lower()}",
            {"status": pitch.status.value}
        )

    row = await transition_pitch(
        pitch.id,
        {"status": new_status.value, "responded_at": utc_now_iso()},
        where={"status": PitchStatus.PENDING.value},
    )
    if row is None:
        logger.warning(
            "Pitch response lost a concurrent update",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            attempted_status=new_status.value
        )
        raise InvalidStateError("Pitch has already been responded to")

    updated = Pitch.model_validate(row)
    logger.info(
        "Pitch responded",
        correlation_id=correlation_id,
        pitch_id=updated.id,
        status=updated.status.value
    )
    return updated


async def _notify_brokerage_of_response(pitch: Pitch, kind: NotificationKind) -> None:
    try:
        brokerage = await _load_brokerage(pitch.brokerage_id)
        agent = await _load_agent(pitch.agent_id)
    except Exception as e:
        logger.error(
            "Response notification skipped (non-fatal)",
            correlation_id=get_correlation_id(),
            pitch_id=pitch.id,
            error=str(e)
        )
        return
    await _notify_user(kind, brokerage.user_id, {
        "pitch_id": pitch.id,
        "agent_anonymous_id": agent.anonymous_id[-6:].upper(),
    })


async def accept_pitch(pitch_id: str, acting_agent_id: str) -> Pitch:
    """Agent accepts a pending pitch. Identity stays hidden until payment."""
    pitch = await _respond(pitch_id, acting_agent_id, PitchStatus.ACCEPTED)
    await _notify_brokerage_of_response(pitch, NotificationKind.PITCH_ACCEPTED)
    return pitch


async def decline_pitch(pitch_id: str, acting_agent_id: str) -> Pitch:
    """Agent declines a pending pitch."""
    pitch = await _respond(pitch_id, acting_agent_id, PitchStatus.DECLINED)
    await _notify_brokerage_of_response(pitch, NotificationKind.PITCH_DECLINED)
    return pitch


async def initiate_payment(pitch_id: str, acting_brokerage_id: str) -> CheckoutSession:
    """
    Open a checkout session for the contact fee on an accepted pitch.

    Payment status is untouched here; only the webhook moves it. A pitch
    whose previous session expired (FAILED) may open a fresh session.
    """
    correlation_id = get_correlation_id()
    pitch = await _load_pitch(pitch_id)

    if pitch.brokerage_id != acting_brokerage_id:
        raise ForbiddenError("Only the pitching brokerage can pay for this pitch")
    if pitch.status != PitchStatus.ACCEPTED:
        raise InvalidStateError(
            "Pitch must be accepted before payment",
            {"status": pitch.status.value}
        )
    if pitch.is_paid:
        raise AlreadyPaidError("Payment already completed for this pitch")

    agent = await _load_agent(pitch.agent_id)
    base_url = AppConfig.app_base_url()

    session = create_checkout_session(
        amount_cents=contact_fee_cents(agent.sales_volume),
        metadata={
            "pitchId": pitch.id,
            "brokerageId": pitch.brokerage_id,
            "agentId": pitch.agent_id,
        },
        success_url=f"{base_url}/dashboard/brokerage?payment=success&pitch={pitch.id}",
        cancel_url=f"{base_url}/dashboard/brokerage?payment=cancelled",
        description=f"Contact information for {agent.display_handle}",
    )

    row = await transition_pitch(
        pitch.id,
        {"stripe_payment_id": session.session_id},
        where_not={"payment_status": PaymentStatus.PAID.value},
    )
    if row is None:
        # The webhook for an earlier session landed while this one was opening
        raise AlreadyPaidError("Payment already completed for this pitch")

    logger.info(
        "Payment initiated",
        correlation_id=correlation_id,
        pitch_id=pitch.id,
        session_id=session.session_id,
        previous_payment_status=pitch.payment_status.value
    )
    return session


async def _find_pitch_for_session(session_reference: str, pitch_id: Optional[str]) -> Pitch:
    row = await get_pitch_by_session(session_reference)
    if row is None and pitch_id:
        row = await get_pitch_by_id(pitch_id)
    if row is None:
        raise NotFoundError(
            "No pitch for payment session",
            {"session_id": session_reference, "pitch_id": pitch_id}
        )
    return Pitch.model_validate(row)


@timed("complete_payment", logger=logger)
async def complete_payment(session_reference: str, pitch_id: Optional[str] = None) -> PaymentOutcome:
    """
    Record a completed checkout. Idempotent under webhook redelivery.

    Marks the pitch PAID, clears the agent's anonymity flag and notifies the
    agent exactly once. A redelivery finds the pitch already PAID and does
    nothing beyond re-asserting the reveal.
    """
    correlation_id = get_correlation_id()
    pitch = await _find_pitch_for_session(session_reference, pitch_id)

    if pitch.is_paid:
        logger.info(
            "Duplicate payment completion ignored",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            session_id=session_reference
        )
        await reveal_agent(pitch.agent_id)
        return PaymentOutcome.NO_OP

    if pitch.status != PitchStatus.ACCEPTED:
        logger.error(
            "Payment completed for a pitch that is not accepted; reconciliation required",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            session_id=session_reference,
            status=pitch.status.value
        )
        raise InvalidStateError(
            "Payment received for a pitch that is not accepted",
            {"pitch_id": pitch.id, "status": pitch.status.value}
        )

    if pitch.expired_payment_id and pitch.expired_payment_id == session_reference:
        logger.error(
            "Completion received for an expired payment session; reconciliation required",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            session_id=session_reference
        )
        raise InvalidStateError(
            "Payment session already expired",
            {"pitch_id": pitch.id, "payment_status": pitch.payment_status.value}
        )

    row = await transition_pitch(
        pitch.id,
        {
            "payment_status": PaymentStatus.PAID.value,
            "paid_at": utc_now_iso(),
            "stripe_payment_id": session_reference,
        },
        where={"status": PitchStatus.ACCEPTED.value},
        where_not={"payment_status": PaymentStatus.PAID.value},
    )
    if row is None:
        # Another delivery won the race
        current = await _load_pitch(pitch.id)
        if current.is_paid:
            logger.info(
                "Concurrent payment completion ignored",
                correlation_id=correlation_id,
                pitch_id=pitch.id
            )
            return PaymentOutcome.NO_OP
        raise InvalidStateError("Pitch changed while recording payment", {"pitch_id": pitch.id})

    paid = Pitch.model_validate(row)
    await reveal_agent(paid.agent_id)

    if pitch.payment_status == PaymentStatus.FAILED:
        logger.warning(
            "Payment recovered after an expired session",
            correlation_id=correlation_id,
            pitch_id=paid.id,
            session_id=session_reference
        )
    logger.info(
        "Payment completed",
        correlation_id=correlation_id,
        pitch_id=paid.id,
        agent_id=paid.agent_id,
        brokerage_id=paid.brokerage_id
    )

    try:
        agent = await _load_agent(paid.agent_id)
        brokerage = await _load_brokerage(paid.brokerage_id)
    except Exception as e:
        logger.error(
            "Payment notification skipped (non-fatal)",
            correlation_id=correlation_id,
            pitch_id=paid.id,
            error=str(e)
        )
        return PaymentOutcome.COMPLETED

    await _notify_user(NotificationKind.PAYMENT_COMPLETE, agent.user_id, {
        "pitch_id": paid.id,
        "agent_name": agent.name,
        "brokerage_company_name": brokerage.company_name,
    })
    return PaymentOutcome.COMPLETED


async def expire_payment(session_reference: str, pitch_id: Optional[str] = None) -> PaymentOutcome:
    """Mark a pending payment FAILED when its checkout session expires."""
    correlation_id = get_correlation_id()
    pitch = await _find_pitch_for_session(session_reference, pitch_id)

    if pitch.stripe_payment_id and pitch.stripe_payment_id != session_reference:
        logger.info(
            "Superseded payment session expired",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            session_id=session_reference
        )
        return PaymentOutcome.NO_OP

    row = await transition_pitch(
        pitch.id,
        {"payment_status": PaymentStatus.FAILED.value, "expired_payment_id": session_reference},
        where={"payment_status": PaymentStatus.PENDING.value},
    )
    if row is None:
        logger.info(
            "Payment expiry ignored",
            correlation_id=correlation_id,
            pitch_id=pitch.id,
            payment_status=pitch.payment_status.value
        )
        return PaymentOutcome.NO_OP

    logger.info(
        "Payment expired",
        correlation_id=correlation_id,
        pitch_id=pitch.id,
        session_id=session_reference
    )
    return PaymentOutcome.EXPIRED


def _event_field(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    try:
        return obj[key]
    except (KeyError, TypeError):
        return getattr(obj, key, None)


async def handle_payment_event(event: Any) -> PaymentOutcome:
    """Dispatch a verified Stripe event to the matching transition."""
    event_type = _event_field(event, "type")
    session = _event_field(_event_field(event, "data"), "object")
    session_id = _event_field(session, "id")
    metadata = _event_field(session, "metadata") or {}
    pitch_id = _event_field(metadata, "pitchId")

    if event_type not in (CHECKOUT_COMPLETED, CHECKOUT_EXPIRED) or not session_id:
        logger.info(
            "Payment event ignored",
            correlation_id=get_correlation_id(),
            event_type=event_type
        )
        return PaymentOutcome.IGNORED

    if event_type == CHECKOUT_COMPLETED:
        return await complete_payment(session_id, pitch_id)
    return await expire_payment(session_id, pitch_id)


async def list_pitches_for_brokerage(brokerage_id: str) -> list[BrokeragePitchView]:
    """Pitches a brokerage has sent, newest first, with agents projected."""
    pitches = [Pitch.model_validate(row) for row in await list_pitches_by_brokerage(brokerage_id)]
    if not pitches:
        return []

    agent_rows = await get_agents_by_ids(list({p.agent_id for p in pitches}))
    agents = {row["id"]: Agent.model_validate(row) for row in agent_rows}

    return [
        brokerage_pitch_view(pitch, agents[pitch.agent_id])
        for pitch in pitches
        if pitch.agent_id in agents
    ]


async def list_pitches_for_agent(agent_id: str) -> list[AgentPitchView]:
    """Pitches an agent has received, newest first, with brokerages projected."""
    pitches = [Pitch.model_validate(row) for row in await list_pitches_by_agent(agent_id)]
    if not pitches:
        return []

    brokerage_rows = await get_brokerages_by_ids(list({p.brokerage_id for p in pitches}))
    brokerages = {row["id"]: Brokerage.model_validate(row) for row in brokerage_rows}

    # Only fetch contact emails the agent is entitled to see
    paid_user_ids = {
        brokerages[p.brokerage_id].user_id
        for p in pitches
        if p.is_paid and p.brokerage_id in brokerages
    }
    emails: dict[str, Optional[str]] = {}
    if paid_user_ids:
        emails = {row["id"]: row.get("email") for row in await get_users_by_ids(list(paid_user_ids))}

    views = []
    for pitch in pitches:
        brokerage = brokerages.get(pitch.brokerage_id)
        if brokerage is None:
            continue
        views.append(agent_pitch_view(pitch, brokerage, emails.get(brokerage.user_id)))
    return views
