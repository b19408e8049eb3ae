"""Notification outbox models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    """Email templates sent on pitch lifecycle transitions."""
    PITCH_RECEIVED = "pitch_received"
    PITCH_ACCEPTED = "pitch_accepted"
    PITCH_DECLINED = "pitch_declined"
    PAYMENT_COMPLETE = "payment_complete"


class NotificationJob(BaseModel):
    """Row in the notification_queue table."""
    id: Optional[str] = None
    kind: NotificationKind = Field(..., description="Template kind")
    recipient: str = Field(..., description="Recipient email address")
    template_data: dict[str, Any] = Field(default_factory=dict, description="Template variables")
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None
