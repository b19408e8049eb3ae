"""Read models returned to brokerages and agents."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pitchdesk.models.offer import OfferDetails
from pitchdesk.models.pitch import PaymentStatus, PitchStatus


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class AgentView(_View):
    """An agent as a brokerage sees it."""
    id: str
    anonymous_id: str
    years_experience: int
    sales_volume: float
    wish_list: list[str] = Field(default_factory=list)
    # Null unless this brokerage's pitch is paid
    name: Optional[str] = None
    license_number: Optional[str] = None


class BrokerageView(_View):
    """A brokerage as an agent sees it."""
    id: str
    company_name: str
    location: str
    logo_url: Optional[str] = None
    description: Optional[str] = None
    # Null unless the agent's pitch from this brokerage is paid
    email: Optional[str] = None


class _PitchFields(_View):
    id: str
    message: str
    offer_details: OfferDetails
    status: PitchStatus
    payment_status: PaymentStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class BrokeragePitchView(_PitchFields):
    """A sent pitch with the agent projected for the brokerage."""
    agent: AgentView


class AgentPitchView(_PitchFields):
    """A received pitch with the brokerage projected for the agent."""
    brokerage: BrokerageView


class DiscoveryEntry(_View):
    """One card in a brokerage's agent discovery feed."""
    agent: AgentView
    match_score: int
    pitch_id: Optional[str] = None
    status: Optional[PitchStatus] = None
    payment_status: Optional[PaymentStatus] = None
