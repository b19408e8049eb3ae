"""Accept a pitch (agent only)."""

from pitchdesk.services.auth import authenticate, resolve_agent
from pitchdesk.services.pitch_lifecycle import accept_pitch
from pitchdesk.utils.http import dispatch, json_response, pitch_id_from_request


async def accept(request: dict) -> dict:
    actor = authenticate(request)
    agent = await resolve_agent(actor)
    pitch = await accept_pitch(pitch_id_from_request(request), agent.id)
    return json_response(200, {"pitch": pitch.model_dump(mode="json", by_alias=True)})


def handler(request):
    return dispatch(request, {"POST": accept}, endpoint="pitches/accept")
