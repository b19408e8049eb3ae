"""Agent profile endpoint for the signed-in agent."""

from pitchdesk.models.agent import AgentProfileInput, AgentProfileUpdate
from pitchdesk.services.auth import Role, authenticate, require_role
from pitchdesk.services.profiles import create_agent_profile, get_agent_profile, update_agent_profile
from pitchdesk.utils.http import dispatch, json_response, parse_json_body, parse_model


def _agent_response(status_code: int, agent) -> dict:
    # The owner sees their own profile in full
    return json_response(status_code, {"agent": agent.model_dump(mode="json", by_alias=True)})


async def get_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.AGENT)
    return _agent_response(200, await get_agent_profile(actor.user_id))


async def create_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.AGENT)
    profile = parse_model(AgentProfileInput, parse_json_body(request))
    return _agent_response(201, await create_agent_profile(actor.user_id, profile))


async def update_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.AGENT)
    changes = parse_model(AgentProfileUpdate, parse_json_body(request))
    return _agent_response(200, await update_agent_profile(actor.user_id, changes))


def handler(request):
    return dispatch(
        request,
        {"GET": get_profile, "POST": create_profile, "PUT": update_profile},
        endpoint="agent/profile",
    )
