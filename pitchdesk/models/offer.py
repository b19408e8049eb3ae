"""Offer terms value object used for standard offers and pitch snapshots."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from pitchdesk.models.wish_list import Benefit


class OfferDetails(BaseModel):
    """Commission, fee and benefit terms.

    Immutable once built. Pitches keep their own copy so later edits to the
    brokerage's standard offer never alter an existing pitch.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    split_percent: float = Field(..., ge=0, le=100, description="Agent's share of commission (0-100)")
    cap_amount: Optional[float] = Field(None, ge=0, description="Annual cap, null for no cap")
    monthly_fee: float = Field(default=0, ge=0, description="Monthly desk fee")
    additional_benefits: frozenset[Benefit] = Field(
        default_factory=frozenset,
        description="Benefit ids included in the offer"
    )

    @field_validator("additional_benefits", mode="before")
    @classmethod
    def _coerce_benefits(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, str):
            raise ValueError("additional_benefits must be a list of benefit ids")
        return frozenset(value)

    @field_serializer("additional_benefits")
    def _serialize_benefits(self, benefits: frozenset[Benefit]) -> list[str]:
        return sorted(benefit.value for benefit in benefits)

    def has_benefit(self, benefit: Benefit) -> bool:
        return benefit in self.additional_benefits

    def to_record(self) -> dict:
        """JSON column representation (camelCase, like the stored blobs)."""
        return self.model_dump(mode="json", by_alias=True)
