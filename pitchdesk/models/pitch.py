"""Pitch models - the offer a brokerage sends to one agent."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pitchdesk.models.offer import OfferDetails


class PitchStatus(str, Enum):
    """Agent response to a pitch."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class PaymentStatus(str, Enum):
    """Contact fee payment state."""
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class Pitch(BaseModel):
    """Pitch record as stored in the pitches table."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Pitch ID (text)")
    agent_id: str = Field(..., description="Agent ID (text FK)")
    brokerage_id: str = Field(..., description="Brokerage ID (text FK)")
    message: str = Field(..., description="Free-text pitch message")
    offer_details: OfferDetails = Field(..., description="Offer snapshot taken at creation")
    status: PitchStatus = Field(default=PitchStatus.PENDING)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    stripe_payment_id: Optional[str] = Field(None, description="Checkout session reference")
    expired_payment_id: Optional[str] = Field(None, description="Last checkout session that expired unpaid")
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


class CreatePitchRequest(BaseModel):
    """Body of POST /api/pitches."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    agent_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=5000)
    offer_details: Optional[OfferDetails] = Field(
        None,
        description="Override of the brokerage's standard offer for this pitch"
    )


class CheckoutSession(BaseModel):
    """Checkout session opened with the payment provider."""
    session_id: str
    redirect_url: str
