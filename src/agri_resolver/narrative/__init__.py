"""Crop narratives generated by an LLM, with cached and canned fallbacks."""

from agri_resolver.narrative.models import NARRATIVE_KINDS, CropData, NarrativeKind, SupplyChainEvent
from agri_resolver.narrative.service import NarrativeService

__all__ = ["CropData", "NARRATIVE_KINDS", "NarrativeKind", "NarrativeService", "SupplyChainEvent"]
