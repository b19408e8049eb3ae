"""Brokerage profile endpoint for the signed-in brokerage."""

from pitchdesk.models.brokerage import BrokerageProfileInput, BrokerageProfileUpdate
from pitchdesk.services.auth import Role, authenticate, require_role
from pitchdesk.services.profiles import (
    create_brokerage_profile,
    get_brokerage_profile,
    update_brokerage_profile,
)
from pitchdesk.utils.http import dispatch, json_response, parse_json_body, parse_model


def _brokerage_response(status_code: int, brokerage) -> dict:
    return json_response(status_code, {"brokerage": brokerage.model_dump(mode="json", by_alias=True)})


async def get_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.BROKERAGE)
    return _brokerage_response(200, await get_brokerage_profile(actor.user_id))


async def create_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.BROKERAGE)
    profile = parse_model(BrokerageProfileInput, parse_json_body(request))
    return _brokerage_response(201, await create_brokerage_profile(actor.user_id, profile))


async def update_profile(request: dict) -> dict:
    actor = authenticate(request)
    require_role(actor, Role.BROKERAGE)
    changes = parse_model(BrokerageProfileUpdate, parse_json_body(request))
    return _brokerage_response(200, await update_brokerage_profile(actor.user_id, changes))


def handler(request):
    return dispatch(
        request,
        {"GET": get_profile, "POST": create_profile, "PUT": update_profile},
        endpoint="brokerage/profile",
    )
