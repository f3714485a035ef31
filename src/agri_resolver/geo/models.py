from __future__ import annotations

from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Stage = Literal["PLANTING", "GROWING", "HARVESTING", "PROCESSING", "PACKAGING", "DISTRIBUTION", "RETAIL"]


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class GeoLocation(BaseModel):
    """One supply-chain checkpoint of a crop token, as returned by the geo-location API."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    token_id: str = Field(alias="tokenId")
    location_name: str = Field(alias="locationName")
    coordinates: Coordinates
    timestamp: datetime
    stage: Stage
    description: Optional[str] = None
    verified_by: Optional[str] = Field(default=None, alias="verifiedBy")
    metadata: Dict[str, str] = Field(default_factory=dict)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LocationStats(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    total_locations: int = Field(default=0, alias="totalLocations")
    unique_tokens: int = Field(default=0, alias="uniqueTokens")

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
