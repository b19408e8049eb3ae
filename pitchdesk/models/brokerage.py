"""Brokerage model - the paying side of the marketplace."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pitchdesk.models.offer import OfferDetails


class Brokerage(BaseModel):
    """Brokerage record as stored in the brokerages table."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Brokerage ID (text)")
    user_id: str = Field(..., description="Owning user account ID")
    company_name: str = Field(..., description="Company name")
    location: str = Field(..., description="Market / city")
    logo_url: Optional[str] = Field(None, description="Logo URL")
    description: Optional[str] = Field(None, description="About the brokerage")
    standard_offer: OfferDetails = Field(..., description="Default terms snapshotted into pitches")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BrokerageProfileInput(BaseModel):
    """Payload for creating a brokerage profile."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    company_name: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    logo_url: Optional[str] = Field(None, max_length=2000)
    description: Optional[str] = Field(None, max_length=5000)
    standard_offer: OfferDetails


class BrokerageProfileUpdate(BaseModel):
    """Partial update of a brokerage profile."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    logo_url: Optional[str] = Field(None, max_length=2000)
    description: Optional[str] = Field(None, max_length=5000)
    standard_offer: Optional[OfferDetails] = None

    @field_validator("company_name", "location", "standard_offer", mode="before")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value
