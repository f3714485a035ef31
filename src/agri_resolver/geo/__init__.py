"""Supply-chain geo-history lookups."""

from agri_resolver.geo.models import Coordinates, GeoLocation, LocationStats, Stage
from agri_resolver.geo.service import GeoHistoryService

__all__ = ["Coordinates", "GeoHistoryService", "GeoLocation", "LocationStats", "Stage"]
