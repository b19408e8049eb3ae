"""Notification outbox - lifecycle emails handed off to a queue and sent by a cron drain."""

import html
from typing import Any, Optional
import httpx
from pydantic import ValidationError as PydanticValidationError

from pitchdesk.models.notification import NotificationJob, NotificationKind
from pitchdesk.services.supabase_client import (
    enqueue_notification,
    get_notification_batch,
    mark_notification_processed,
)
from pitchdesk.utils.config import AppConfig
from pitchdesk.utils.errors import NotificationError
from pitchdesk.utils.ids import generate_id, utc_now_iso
from pitchdesk.utils.logging import get_correlation_id, get_structured_logger, log_timing

logger = get_structured_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
EMAIL_TIMEOUT_SECONDS = 15


async def notify(kind: NotificationKind, recipient: Optional[str], template_data: dict[str, Any]) -> Optional[str]:
    """
    Hand a notification to the outbox.

    Never raises: a failed hand-off is logged and the caller carries on.
    Returns the job ID, or None when nothing was queued.
    """
    correlation_id = get_correlation_id()

    if not recipient:
        logger.info(
            "Notification skipped: no recipient address",
            correlation_id=correlation_id,
            notification_kind=kind.value,
            pitch_id=template_data.get("pitch_id")
        )
        return None

    job = NotificationJob(
        id=generate_id(),
        kind=kind,
        recipient=recipient,
        template_data=template_data,
        created_at=utc_now_iso(),
    )

    try:
        job_id = await enqueue_notification(job.model_dump(mode="json", exclude_none=True))
        logger.info(
            "Notification queued",
            correlation_id=correlation_id,
            notification_kind=kind.value,
            notification_id=job_id,
            pitch_id=template_data.get("pitch_id")
        )
        return job_id
    except Exception as e:
        logger.error(
            "Failed to queue notification (non-fatal)",
            correlation_id=correlation_id,
            notification_kind=kind.value,
            pitch_id=template_data.get("pitch_id"),
            error=str(e)
        )
        return None


def render_notification(job: NotificationJob) -> tuple[str, str]:
    """Build (subject, html body) for a job."""
    data = job.template_data
    dashboard_url = f"{AppConfig.app_base_url()}/dashboard"
    company = html.escape(str(data.get("brokerage_company_name", "A brokerage")))
    handle = html.escape(str(data.get("agent_anonymous_id", "")))

    if job.kind == NotificationKind.PITCH_RECEIVED:
        subject = f"New Pitch from {data.get('brokerage_company_name', 'a brokerage')}"
        body = (
            "<h2>You've Received a New Pitch!</h2>"
            f"<p><strong>{company}</strong> has sent you a pitch and prepared an offer for you to review.</p>"
            f'<p><a href="{dashboard_url}">View Pitch</a></p>'
            "<p>Your identity remains anonymous until you accept a pitch and the brokerage completes payment.</p>"
        )
    elif job.kind == NotificationKind.PITCH_ACCEPTED:
        subject = f"Agent {data.get('agent_anonymous_id', '')} Accepted Your Pitch!"
        body = (
            "<h2>Your Pitch Was Accepted!</h2>"
            f"<p><strong>Agent {handle}</strong> has accepted your pitch.</p>"
            "<p>To unlock the agent's contact information and identity, please complete the payment.</p>"
            f'<p><a href="{dashboard_url}">Complete Payment</a></p>'
        )
    elif job.kind == NotificationKind.PITCH_DECLINED:
        subject = f"Pitch Update: Agent {data.get('agent_anonymous_id', '')}"
        body = (
            "<h2>Pitch Update</h2>"
            f"<p><strong>Agent {handle}</strong> has decided to decline your pitch.</p>"
            "<p>Keep browsing and sending pitches to find your next great team member.</p>"
            f'<p><a href="{dashboard_url}">Browse Agents</a></p>'
        )
    elif job.kind == NotificationKind.PAYMENT_COMPLETE:
        name = data.get("agent_name")
        greeting = f"Hi {html.escape(name)}" if name else "Hi there"
        subject = f"{data.get('brokerage_company_name', 'A brokerage')} Has Completed Payment - Time to Connect!"
        body = (
            "<h2>Payment Complete - Time to Connect!</h2>"
            f"<p>{greeting},</p>"
            f"<p><strong>{company}</strong> has completed their payment for your accepted pitch.</p>"
            f"<p>Your contact information has now been shared with {company}.</p>"
            f'<p><a href="{dashboard_url}">View Dashboard</a></p>'
        )
    else:
        raise NotificationError(f"Unknown notification kind: {job.kind}")

    return subject, body


async def send_email(to: str, subject: str, html_body: str) -> bool:
    """Send one email through Resend. Returns False when email is not configured."""
    api_key = AppConfig.resend_api_key()
    if not api_key:
        logger.info("Email skipped: RESEND_API_KEY not configured")
        return False

    payload = {
        "from": AppConfig.email_from(),
        "to": [to],
        "subject": subject,
        "html": html_body,
    }
    headers = {"Authorization": f"Bearer {api_key}"}

    async with httpx.AsyncClient(timeout=EMAIL_TIMEOUT_SECONDS) as client:
        try:
            response = await client.post(RESEND_API_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Email request failed: {e}")

    if response.status_code >= 400:
        raise NotificationError(f"Email provider returned {response.status_code}: {response.text[:200]}")
    return True


async def deliver(job: NotificationJob) -> bool:
    subject, body = render_notification(job)
    return await send_email(job.recipient, subject, body)


async def poll_and_send_once(max_messages: int = 10) -> int:
    """Drain one batch of the outbox. Returns the number of jobs processed."""
    correlation_id = get_correlation_id()
    batch = await get_notification_batch(max_messages)

    if not batch:
        logger.debug("Notification queue empty", correlation_id=correlation_id)
        return 0

    processed = 0
    for row in batch:
        try:
            job = NotificationJob.model_validate(row)
        except PydanticValidationError as e:
            # Park the row so it cannot block later batches
            logger.error(
                "Malformed notification job",
                correlation_id=correlation_id,
                notification_id=row.get("id"),
                error_count=e.error_count()
            )
            if row.get("id"):
                await mark_notification_processed(row["id"], utc_now_iso(), "invalid job: failed validation")
                processed += 1
            continue

        error_message = None
        try:
            with log_timing(
                "send_notification",
                logger=logger,
                correlation_id=correlation_id,
                notification_id=job.id,
                notification_kind=job.kind.value
            ):
                sent = await deliver(job)
            if not sent:
                error_message = "skipped: email not configured"
        except NotificationError as e:
            error_message = str(e)
            logger.error(
                "Notification delivery failed",
                correlation_id=correlation_id,
                notification_id=job.id,
                notification_kind=job.kind.value,
                error=error_message
            )

        await mark_notification_processed(job.id, utc_now_iso(), error_message)
        processed += 1

    logger.info(
        "Notification batch processed",
        correlation_id=correlation_id,
        processed=processed,
        batch_size=len(batch)
    )
    return processed
