from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NarrativeKind = Literal["cropStory", "environmentalImpact", "cookingSuggestions"]
NARRATIVE_KINDS: tuple[NarrativeKind, ...] = ("cropStory", "environmentalImpact", "cookingSuggestions")


class EventLocation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    location_name: str = Field(alias="locationName")


class SupplyChainEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    timestamp: datetime
    description: str
    location: Optional[EventLocation] = None


class CropData(BaseModel):
    """Facts about a crop that narratives are generated from."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    crop_type: str = Field(alias="cropType", min_length=1)
    variety: Optional[str] = None
    farmer_name: Optional[str] = Field(default=None, alias="farmerName")
    farm_location: Optional[str] = Field(default=None, alias="farmLocation")
    planting_date: Optional[Union[datetime, date]] = Field(default=None, alias="plantingDate")
    harvest_date: Optional[Union[datetime, date]] = Field(default=None, alias="harvestDate")
    farming_practices: Optional[str] = Field(default=None, alias="farmingPractices")
    certifications: Optional[str] = None
    supply_chain_events: List[SupplyChainEvent] = Field(default_factory=list, alias="supplyChainEvents")
    water_usage: Optional[str] = Field(default=None, alias="waterUsage")
    carbon_footprint: Optional[str] = Field(default=None, alias="carbonFootprint")
    pesticide_use: Optional[str] = Field(default=None, alias="pesticideUse")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
