"""Open a Stripe checkout session for an accepted pitch."""

from pitchdesk.services.auth import authenticate, resolve_brokerage
from pitchdesk.services.pitch_lifecycle import initiate_payment
from pitchdesk.utils.http import dispatch, json_response, pitch_id_from_request


async def checkout(request: dict) -> dict:
    actor = authenticate(request)
    brokerage = await resolve_brokerage(actor)
    session = await initiate_payment(pitch_id_from_request(request), brokerage.id)
    return json_response(200, {"sessionId": session.session_id, "url": session.redirect_url})


def handler(request):
    return dispatch(request, {"POST": checkout}, endpoint="stripe/checkout")
