"""Notification outbox processor endpoint (called via Vercel cron)."""

import hmac

from pitchdesk.services.notifications import poll_and_send_once
from pitchdesk.utils.config import AppConfig
from pitchdesk.utils.errors import UnauthorizedError, ValidationError
from pitchdesk.utils.http import dispatch, get_header, get_query_param, json_response


def _check_cron_secret(request: dict) -> None:
    secret = AppConfig.cron_secret()
    if not secret:
        return
    expected = f"Bearer {secret}"
    provided = get_header(request, "authorization") or ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedError("Unauthorized")


async def process(request: dict) -> dict:
    """
    Drain one batch of the notification queue.

    Can be called manually or via Vercel cron job.
    """
    _check_cron_secret(request)

    raw = get_query_param(request, "max_messages")
    try:
        max_messages = int(raw) if raw else AppConfig.notification_batch_size()
    except ValueError:
        raise ValidationError("max_messages must be an integer", {"field": "max_messages"})
    if max_messages < 1:
        raise ValidationError("max_messages must be positive", {"field": "max_messages"})

    processed = await poll_and_send_once(max_messages)

    return json_response(200, {
        "ok": True,
        "processed": processed,
        "max_messages": max_messages
    })


def handler(request):
    return dispatch(request, {"GET": process, "POST": process}, endpoint="notifications/process")
