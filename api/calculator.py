"""Lost commission calculator (public)."""

from pitchdesk.services.commission_calculator import DEFAULT_COMMISSION_RATE, calculate_lost_commission
from pitchdesk.utils.errors import ValidationError
from pitchdesk.utils.http import dispatch, get_query_param, json_response, parse_json_body


def _calculate(params: dict) -> dict:
    sales_volume = params.get("salesVolume")
    current_split = params.get("currentSplit")
    if sales_volume in (None, "") or current_split in (None, ""):
        raise ValidationError("salesVolume and currentSplit are required")

    commission_rate = params.get("commissionRate")
    if commission_rate in (None, ""):
        commission_rate = DEFAULT_COMMISSION_RATE

    result = calculate_lost_commission(sales_volume, current_split, commission_rate=commission_rate)
    return json_response(200, {
        "totalCommission": float(result["total_commission"]),
        "currentShare": float(result["current_share"]),
        "potentialShare": float(result["potential_share"]),
        "lostCommission": float(result["lost_commission"]),
    })


async def calculate_from_body(request: dict) -> dict:
    return _calculate(parse_json_body(request))


async def calculate_from_query(request: dict) -> dict:
    return _calculate({
        "salesVolume": get_query_param(request, "salesVolume"),
        "currentSplit": get_query_param(request, "currentSplit"),
        "commissionRate": get_query_param(request, "commissionRate"),
    })


def handler(request):
    return dispatch(request, {"GET": calculate_from_query, "POST": calculate_from_body}, endpoint="calculator")
