"""Agent discovery feed for brokerages."""

from typing import Optional

from pitchdesk.services.auth import authenticate, resolve_brokerage
from pitchdesk.services.visibility import discovery_feed
from pitchdesk.utils.errors import ValidationError
from pitchdesk.utils.http import dispatch, get_query_param, json_response


def _number(request: dict, name: str, cast):
    raw = get_query_param(request, name)
    if raw in (None, ""):
        return 0
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", {"field": name})
    if value < 0:
        raise ValidationError(f"{name} must be non-negative", {"field": name})
    return value


def _tags(request: dict) -> Optional[list[str]]:
    raw = get_query_param(request, "wishList")
    if not raw:
        return None
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


async def list_agents(request: dict) -> dict:
    actor = authenticate(request)
    brokerage = await resolve_brokerage(actor)

    sort = (get_query_param(request, "sort") or "match").lower()
    if sort not in ("match", "volume"):
        raise ValidationError("sort must be 'match' or 'volume'", {"field": "sort"})

    entries = await discovery_feed(
        brokerage,
        min_experience=_number(request, "minExperience", int),
        min_volume=_number(request, "minVolume", float),
        wish_list_filter=_tags(request),
        include_pitched=(get_query_param(request, "includePitched") or "true").lower() != "false",
        sort_by_match=sort == "match",
    )
    return json_response(200, {"agents": [entry.to_response() for entry in entries]})


def handler(request):
    """
    GET /api/agents?minExperience=&minVolume=&wishList=a,b&sort=match|volume

    Lists every agent regardless of anonymity; identity fields only appear
    for agents this brokerage has paid to contact.
    """
    return dispatch(request, {"GET": list_agents}, endpoint="agents")
