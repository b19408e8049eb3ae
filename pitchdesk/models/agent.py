"""Agent model - the anonymous side of the marketplace."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pitchdesk.models.wish_list import normalize_wish_list


class Agent(BaseModel):
    """Agent record as stored in the agents table."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Agent ID (text)")
    user_id: str = Field(..., description="Owning user account ID")
    anonymous_id: str = Field(..., description="Persistent anonymous handle")
    name: Optional[str] = Field(None, description="Real name (disclosed only after payment)")
    license_number: Optional[str] = Field(None, description="License number (disclosed only after payment)")
    years_experience: int = Field(default=0, ge=0, description="Years in the business")
    sales_volume: float = Field(default=0, ge=0, description="Annual sales volume in dollars")
    current_broker: Optional[str] = Field(None, description="Current brokerage name")
    wish_list: list[str] = Field(default_factory=list, description="Wish list tags")
    is_anonymous: bool = Field(default=True, description="False once any pitch for this agent is paid")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("wish_list", mode="before")
    @classmethod
    def _wish_list_as_strings(cls, value):
        # Stored JSON may hold legacy tags; keep strings, drop anything else
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, str)]

    @property
    def display_handle(self) -> str:
        """Short public handle, e.g. 'Anonymous Agent #3F9K2Q'."""
        return f"Anonymous Agent #{self.anonymous_id[-6:].upper()}"


class AgentProfileInput(BaseModel):
    """Payload for creating an agent profile."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Optional[str] = Field(None, max_length=200)
    license_number: str = Field(..., min_length=1, max_length=64)
    years_experience: int = Field(..., ge=0, le=80)
    sales_volume: float = Field(..., ge=0)
    current_broker: Optional[str] = Field(None, max_length=200)
    wish_list: list[str] = Field(default_factory=list)

    @field_validator("wish_list", mode="before")
    @classmethod
    def _validate_wish_list(cls, value):
        return normalize_wish_list(value)


class AgentProfileUpdate(BaseModel):
    """Partial update of an agent profile. Unset fields are left alone."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Optional[str] = Field(None, max_length=200)
    license_number: Optional[str] = Field(None, min_length=1, max_length=64)
    years_experience: Optional[int] = Field(None, ge=0, le=80)
    sales_volume: Optional[float] = Field(None, ge=0)
    current_broker: Optional[str] = Field(None, max_length=200)
    wish_list: Optional[list[str]] = None
    is_anonymous: Optional[bool] = None

    @field_validator("license_number", "years_experience", "sales_volume", "wish_list", mode="before")
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it alone; null would blank a required column
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    @field_validator("wish_list", mode="before")
    @classmethod
    def _validate_wish_list(cls, value):
        return normalize_wish_list(value)
