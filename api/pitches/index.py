"""Pitches endpoint: list the caller's pitches, or send a new one."""

from pitchdesk.models.pitch import CreatePitchRequest
from pitchdesk.services.auth import Role, authenticate, resolve_agent, resolve_brokerage
from pitchdesk.services.pitch_lifecycle import (
    create_pitch,
    list_pitches_for_agent,
    list_pitches_for_brokerage,
)
from pitchdesk.utils.http import dispatch, json_response, parse_json_body, parse_model


async def list_pitches(request: dict) -> dict:
    actor = authenticate(request)

    if actor.role == Role.BROKERAGE:
        brokerage = await resolve_brokerage(actor)
        views = await list_pitches_for_brokerage(brokerage.id)
    else:
        agent = await resolve_agent(actor)
        views = await list_pitches_for_agent(agent.id)

    return json_response(200, {"pitches": [view.to_response() for view in views]})


async def send_pitch(request: dict) -> dict:
    actor = authenticate(request)
    brokerage = await resolve_brokerage(actor)
    body = parse_model(CreatePitchRequest, parse_json_body(request))

    pitch = await create_pitch(
        brokerage_id=brokerage.id,
        agent_id=body.agent_id,
        message=body.message,
        offer_details=body.offer_details,
    )
    return json_response(201, {"pitch": pitch.model_dump(mode="json", by_alias=True)})


def handler(request):
    """GET lists pitches for the caller's role; POST creates a pitch (brokerages only)."""
    return dispatch(request, {"GET": list_pitches, "POST": send_pitch}, endpoint="pitches")
