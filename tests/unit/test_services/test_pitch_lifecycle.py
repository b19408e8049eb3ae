"""Tests for the pitch lifecycle state machine."""

import logging

import pytest

from pitchdesk.models.pitch import PaymentStatus, PitchStatus
from pitchdesk.services.pitch_lifecycle import (
    PaymentOutcome,
    accept_pitch,
    complete_payment,
    create_pitch,
    decline_pitch,
    expire_payment,
    handle_payment_event,
    initiate_payment,
)
from pitchdesk.utils.errors import (
    AlreadyPaidError,
    DuplicatePitchError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from tests.utils.helpers import create_checkout_event


def _kinds(fake_store):
    return [row["kind"] for row in fake_store.rows("notification_queue")]


async def _accepted_pitch(agent_row, brokerage_row):
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Come build with us")
    return await accept_pitch(pitch.id, agent_row["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_snapshots_standard_offer(fake_store, agent_row, brokerage_row):
    """Test new pitches copy the brokerage's standard offer and start PENDING."""
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "We'd love to talk")

    assert pitch.status == PitchStatus.PENDING
    assert pitch.payment_status == PaymentStatus.PENDING
    assert pitch.responded_at is None
    assert pitch.offer_details.split_percent == 90

    stored = fake_store.get("pitches", pitch.id)
    assert stored["offer_details"]["splitPercent"] == 90
    assert stored["responded_at"] is None
    assert stored["paid_at"] is None

    # Later edits to the standard offer leave the snapshot alone
    fake_store.get("brokerages", brokerage_row["id"])["standard_offer"]["splitPercent"] = 50
    assert fake_store.get("pitches", pitch.id)["offer_details"]["splitPercent"] == 90


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_with_custom_offer(fake_store, agent_row, brokerage_row):
    pitch = await create_pitch(
        brokerage_row["id"],
        agent_row["id"],
        "Special terms for you",
        offer_details={"splitPercent": 95, "capAmount": 10000, "monthlyFee": 0},
    )

    assert pitch.offer_details.split_percent == 95
    assert pitch.offer_details.cap_amount == 10000


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_rejects_invalid_offer(fake_store, agent_row, brokerage_row):
    with pytest.raises(ValidationError):
        await create_pitch(brokerage_row["id"], agent_row["id"], "Hi", offer_details={"splitPercent": 140})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_requires_message(fake_store, agent_row, brokerage_row):
    with pytest.raises(ValidationError):
        await create_pitch(brokerage_row["id"], agent_row["id"], "   ")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_notifies_agent(fake_store, agent_row, brokerage_row):
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    jobs = fake_store.rows("notification_queue")
    assert len(jobs) == 1
    assert jobs[0]["kind"] == "pitch_received"
    assert jobs[0]["recipient"] == "agent@example.com"
    assert jobs[0]["template_data"]["pitch_id"] == pitch.id
    assert jobs[0]["template_data"]["brokerage_company_name"] == brokerage_row["company_name"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_duplicate_pitch_rejected(fake_store, agent_row, brokerage_row):
    """Test second pitch for the same (agent, brokerage) pair fails."""
    await create_pitch(brokerage_row["id"], agent_row["id"], "First")

    with pytest.raises(DuplicatePitchError):
        await create_pitch(brokerage_row["id"], agent_row["id"], "Second")

    assert len(fake_store.rows("pitches")) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_duplicate_pitch_race_maps_unique_violation(fake_store, agent_row, brokerage_row, monkeypatch):
    """A concurrent insert that slips past the lookup still loses on the unique index."""
    await create_pitch(brokerage_row["id"], agent_row["id"], "First")

    async def _no_existing(agent_id, brokerage_id):
        return None

    monkeypatch.setattr("pitchdesk.services.pitch_lifecycle.get_pitch_by_pair", _no_existing)

    with pytest.raises(DuplicatePitchError):
        await create_pitch(brokerage_row["id"], agent_row["id"], "Second")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_different_brokerages_may_pitch_same_agent(fake_store, agent_row, brokerage_row, second_brokerage_row):
    await create_pitch(brokerage_row["id"], agent_row["id"], "From one")
    await create_pitch(second_brokerage_row["id"], agent_row["id"], "From two")

    assert len(fake_store.rows("pitches")) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_pitch_unknown_agent(fake_store, brokerage_row):
    with pytest.raises(NotFoundError):
        await create_pitch(brokerage_row["id"], "missing-agent", "Hello")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_accept_pitch(fake_store, agent_row, brokerage_row):
    """Test accepting sets ACCEPTED and responded_at but reveals nothing."""
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    accepted = await accept_pitch(pitch.id, agent_row["id"])

    assert accepted.status == PitchStatus.ACCEPTED
    assert accepted.responded_at is not None
    assert accepted.payment_status == PaymentStatus.PENDING
    assert fake_store.get("agents", agent_row["id"])["is_anonymous"] is True
    assert _kinds(fake_store) == ["pitch_received", "pitch_accepted"]

    accepted_job = fake_store.rows("notification_queue")[1]
    assert accepted_job["recipient"] == "brokerage@example.com"
    assert accepted_job["template_data"]["agent_anonymous_id"] == agent_row["anonymous_id"][-6:].upper()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_accept_twice_is_invalid_state(fake_store, agent_row, brokerage_row):
    pitch = await _accepted_pitch(agent_row, brokerage_row)

    with pytest.raises(InvalidStateError):
        await accept_pitch(pitch.id, agent_row["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_decline_after_accept_is_invalid_state(fake_store, agent_row, brokerage_row):
    pitch = await _accepted_pitch(agent_row, brokerage_row)

    with pytest.raises(InvalidStateError):
        await decline_pitch(pitch.id, agent_row["id"])

    assert fake_store.get("pitches", pitch.id)["status"] == "ACCEPTED"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_decline_then_accept_fails(fake_store, agent_row, brokerage_row):
    """PENDING -> DECLINED sets responded_at, notifies the brokerage, and is terminal."""
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    declined = await decline_pitch(pitch.id, agent_row["id"])

    assert declined.status == PitchStatus.DECLINED
    assert declined.responded_at is not None
    assert _kinds(fake_store)[-1] == "pitch_declined"
    assert fake_store.rows("notification_queue")[-1]["recipient"] == "brokerage@example.com"

    with pytest.raises(InvalidStateError):
        await accept_pitch(pitch.id, agent_row["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_only_pitched_agent_can_respond(fake_store, agent_row, brokerage_row):
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    with pytest.raises(ForbiddenError):
        await accept_pitch(pitch.id, "some-other-agent")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_respond_to_missing_pitch(fake_store):
    with pytest.raises(NotFoundError):
        await decline_pitch("nope", "agent")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lost_race_reports_invalid_state(fake_store, agent_row, brokerage_row, monkeypatch):
    """Test the conditional update guards against a concurrent response."""
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    original_get = fake_store.get("pitches", pitch.id).copy()

    async def _stale_read(pitch_id):
        # The caller saw PENDING, but another request declined in between
        return original_get

    fake_store.get("pitches", pitch.id)["status"] = "DECLINED"
    monkeypatch.setattr("pitchdesk.services.pitch_lifecycle.get_pitch_by_id", _stale_read)

    with pytest.raises(InvalidStateError):
        await accept_pitch(pitch.id, agent_row["id"])

    assert fake_store.get("pitches", pitch.id)["status"] == "DECLINED"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_transition(fake_store, agent_row, brokerage_row):
    fake_store.fail_on("notification_queue", "insert")

    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")
    accepted = await accept_pitch(pitch.id, agent_row["id"])

    assert accepted.status == PitchStatus.ACCEPTED
    assert fake_store.rows("notification_queue") == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_store_failure_surfaces_as_store_error(fake_store, agent_row, brokerage_row):
    fake_store.fail_on("pitches", "insert")

    with pytest.raises(StoreError):
        await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_payment(fake_store, agent_row, brokerage_row, mock_checkout):
    """Test checkout opens with pitch metadata and records the session."""
    pitch = await _accepted_pitch(agent_row, brokerage_row)

    session = await initiate_payment(pitch.id, brokerage_row["id"])

    assert session.session_id == "cs_test_1"
    assert session.redirect_url.startswith("https://checkout.stripe.com/")
    stored = fake_store.get("pitches", pitch.id)
    assert stored["stripe_payment_id"] == "cs_test_1"
    assert stored["payment_status"] == "PENDING"

    call = mock_checkout[0]
    assert call["metadata"] == {
        "pitchId": pitch.id,
        "brokerageId": brokerage_row["id"],
        "agentId": agent_row["id"],
    }
    assert call["amount_cents"] == 2500
    assert call["success_url"] == f"https://app.example.com/dashboard/brokerage?payment=success&pitch={pitch.id}"
    assert call["cancel_url"] == "https://app.example.com/dashboard/brokerage?payment=cancelled"
    assert call["description"].endswith(agent_row["anonymous_id"][-6:].upper())


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_payment_requires_accepted(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")

    with pytest.raises(InvalidStateError):
        await initiate_payment(pitch.id, brokerage_row["id"])

    assert mock_checkout == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_payment_other_brokerage_forbidden(
    fake_store, agent_row, brokerage_row, second_brokerage_row, mock_checkout
):
    pitch = await _accepted_pitch(agent_row, brokerage_row)

    with pytest.raises(ForbiddenError):
        await initiate_payment(pitch.id, second_brokerage_row["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_initiate_payment_already_paid(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])
    await complete_payment(session.session_id)

    with pytest.raises(AlreadyPaidError):
        await initiate_payment(pitch.id, brokerage_row["id"])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_reveals_and_notifies(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])

    outcome = await complete_payment(session.session_id)

    assert outcome == PaymentOutcome.COMPLETED
    stored = fake_store.get("pitches", pitch.id)
    assert stored["payment_status"] == "PAID"
    assert stored["paid_at"] is not None
    assert fake_store.get("agents", agent_row["id"])["is_anonymous"] is False

    job = fake_store.rows("notification_queue")[-1]
    assert job["kind"] == "payment_complete"
    assert job["recipient"] == "agent@example.com"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_is_idempotent(fake_store, agent_row, brokerage_row, mock_checkout):
    """Test a redelivered completion changes nothing and notifies once."""
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])

    first = await complete_payment(session.session_id)
    paid_at = fake_store.get("pitches", pitch.id)["paid_at"]
    second = await complete_payment(session.session_id)

    assert first == PaymentOutcome.COMPLETED
    assert second == PaymentOutcome.NO_OP
    assert fake_store.get("pitches", pitch.id)["paid_at"] == paid_at
    assert _kinds(fake_store).count("payment_complete") == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_on_unaccepted_pitch_rejected(fake_store, agent_row, brokerage_row):
    """Test a payment event never marks a non-accepted pitch PAID."""
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")
    fake_store.get("pitches", pitch.id)["stripe_payment_id"] = "cs_stray"

    with pytest.raises(InvalidStateError):
        await complete_payment("cs_stray")

    stored = fake_store.get("pitches", pitch.id)
    assert stored["payment_status"] == "PENDING"
    assert fake_store.get("agents", agent_row["id"])["is_anonymous"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_after_decline_rejected(fake_store, agent_row, brokerage_row):
    pitch = await create_pitch(brokerage_row["id"], agent_row["id"], "Hello")
    await decline_pitch(pitch.id, agent_row["id"])

    with pytest.raises(InvalidStateError):
        await complete_payment("cs_unknown", pitch_id=pitch.id)

    assert fake_store.get("pitches", pitch.id)["payment_status"] == "PENDING"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_falls_back_to_metadata_pitch_id(fake_store, agent_row, brokerage_row):
    pitch = await _accepted_pitch(agent_row, brokerage_row)

    outcome = await complete_payment("cs_not_recorded", pitch_id=pitch.id)

    assert outcome == PaymentOutcome.COMPLETED
    assert fake_store.get("pitches", pitch.id)["stripe_payment_id"] == "cs_not_recorded"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_complete_payment_unknown_session(fake_store):
    with pytest.raises(NotFoundError):
        await complete_payment("cs_nobody")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expired_session_cannot_resurrect_pitch(fake_store, agent_row, brokerage_row, mock_checkout):
    """ACCEPTED/PENDING -> expired -> FAILED; a later completion for that session is rejected."""
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])

    assert await expire_payment(session.session_id) == PaymentOutcome.EXPIRED
    assert fake_store.get("pitches", pitch.id)["payment_status"] == "FAILED"

    with pytest.raises(InvalidStateError):
        await complete_payment(session.session_id, pitch_id=pitch.id)

    stored = fake_store.get("pitches", pitch.id)
    assert stored["payment_status"] == "FAILED"
    assert stored["paid_at"] is None
    assert fake_store.get("agents", agent_row["id"])["is_anonymous"] is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retry_after_expiry_with_new_session(fake_store, agent_row, brokerage_row, mock_checkout):
    """A fresh checkout after expiry can complete; the expired one still cannot."""
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    first = await initiate_payment(pitch.id, brokerage_row["id"])
    await expire_payment(first.session_id)

    second = await initiate_payment(pitch.id, brokerage_row["id"])
    assert second.session_id != first.session_id
    assert fake_store.get("pitches", pitch.id)["payment_status"] == "FAILED"

    with pytest.raises(InvalidStateError):
        await complete_payment(first.session_id, pitch_id=pitch.id)

    assert await complete_payment(second.session_id, pitch_id=pitch.id) == PaymentOutcome.COMPLETED
    assert fake_store.get("pitches", pitch.id)["payment_status"] == "PAID"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_to_paid_recovery_is_logged(fake_store, agent_row, brokerage_row, mock_checkout, caplog):
    """FAILED -> PAID only happens through a newer session, and never silently."""
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    first = await initiate_payment(pitch.id, brokerage_row["id"])
    await expire_payment(first.session_id)
    second = await initiate_payment(pitch.id, brokerage_row["id"])

    with caplog.at_level(logging.WARNING, logger="pitchdesk.services.pitch_lifecycle"):
        await complete_payment(second.session_id, pitch_id=pitch.id)

    recovery = [r for r in caplog.records if r.getMessage() == "Payment recovered after an expired session"]
    assert len(recovery) == 1
    assert recovery[0].session_id == second.session_id
    stored = fake_store.get("pitches", pitch.id)
    assert stored["expired_payment_id"] == first.session_id
    assert stored["stripe_payment_id"] == second.session_id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expire_is_noop_when_paid(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])
    await complete_payment(session.session_id)

    assert await expire_payment(session.session_id) == PaymentOutcome.NO_OP
    assert fake_store.get("pitches", pitch.id)["payment_status"] == "PAID"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expire_superseded_session_is_noop(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    old = await initiate_payment(pitch.id, brokerage_row["id"])
    await initiate_payment(pitch.id, brokerage_row["id"])

    assert await expire_payment(old.session_id, pitch_id=pitch.id) == PaymentOutcome.NO_OP
    assert fake_store.get("pitches", pitch.id)["payment_status"] == "PENDING"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_handle_payment_event_dispatch(fake_store, agent_row, brokerage_row, mock_checkout):
    pitch = await _accepted_pitch(agent_row, brokerage_row)
    session = await initiate_payment(pitch.id, brokerage_row["id"])

    ignored = await handle_payment_event(create_checkout_event(event_type="invoice.paid"))
    completed = await handle_payment_event(
        create_checkout_event(session_id=session.session_id, pitch_id=pitch.id)
    )

    assert ignored == PaymentOutcome.IGNORED
    assert completed == PaymentOutcome.COMPLETED
