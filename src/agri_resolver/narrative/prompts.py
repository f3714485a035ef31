from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Optional, Sequence, Union

from agri_resolver.narrative.models import CropData, NarrativeKind, SupplyChainEvent


@dataclass(frozen=True, slots=True)
class PromptSpec:
    system_prompt: str
    user_prompt: str
    max_tokens: int
    temperature: float


def _format_date(value: Optional[Union[datetime, date]], fallback: str) -> str:
    if value is None:
        return fallback
    return value.strftime("%Y-%m-%d")


def format_supply_chain_events(events: Sequence[SupplyChainEvent]) -> str:
    if not events:
        return "The crop was planted and is being carefully tended to by the farmer."
    lines = []
    for event in events:
        where = event.location.location_name if event.location else "farm location"
        lines.append(f"- {_format_date(event.timestamp, 'unknown date')}: {event.description} at {where}")
    return "\n".join(lines)


def crop_story_prompt(crop: CropData) -> PromptSpec:
    lines = [
        "Create an engaging story about this crop:",
        "",
        f"Crop Type: {crop.crop_type}",
        f"Variety: {crop.variety or 'Unspecified'}",
        f"Farmer: {crop.farmer_name or 'A local farmer'}",
        f"Farm Location: {crop.farm_location or 'A rural farm'}",
        f"Planting Date: {_format_date(crop.planting_date, 'Unknown')}",
    ]
    if crop.harvest_date is not None:
        lines.append(f"Harvest Date: {_format_date(crop.harvest_date, 'Unknown')}")
    lines += [
        f"Farming Practices: {crop.farming_practices or 'Sustainable farming methods'}",
        f"Certifications: {crop.certifications or 'None'}",
        "",
        "Supply Chain Journey:",
        format_supply_chain_events(crop.supply_chain_events),
        "",
        "Write a first-person narrative from the perspective of the crop, describing its journey from seed "
        "to consumer. Include details about the farmer, growing conditions, and how blockchain records "
        "ensure its authenticity. Keep it engaging, educational, and around 300-400 words.",
    ]
    return PromptSpec(
        system_prompt=(
            "You are a storyteller specializing in agricultural narratives that connect consumers to the "
            "origins of their food. Create engaging, factual stories about crops based on their data."
        ),
        user_prompt="\n".join(lines),
        max_tokens=500,
        temperature=0.7,
    )


def environmental_impact_prompt(crop: CropData) -> PromptSpec:
    lines = [
        "Create a short narrative about the environmental impact of this crop:",
        "",
        f"Crop Type: {crop.crop_type}",
        f"Farming Methods: {crop.farming_practices or 'Traditional'}",
        f"Water Usage: {crop.water_usage or 'Unknown'}",
        f"Carbon Footprint: {crop.carbon_footprint or 'Unknown'}",
        f"Pesticide Use: {crop.pesticide_use or 'Minimal'}",
        f"Certifications: {crop.certifications or 'None'}",
        "",
        "Write a 150-200 word narrative explaining the environmental impact of growing this crop, "
        "highlighting sustainable practices used and comparing to conventional methods.",
    ]
    return PromptSpec(
        system_prompt=(
            "You are an environmental expert who explains the ecological impact of agricultural practices "
            "in an informative way."
        ),
        user_prompt="\n".join(lines),
        max_tokens=300,
        temperature=0.6,
    )


def cooking_suggestions_prompt(crop: CropData) -> PromptSpec:
    lines = [
        "Suggest 3 simple recipes or cooking methods for this crop:",
        "",
        f"Crop Type: {crop.crop_type}",
        f"Variety: {crop.variety or 'Unspecified'}",
        "",
        "Each suggestion should be 2-3 sentences, focusing on simple preparation methods that home cooks "
        "can use to highlight the natural flavors of this crop.",
    ]
    return PromptSpec(
        system_prompt="You are a chef who specializes in simple, delicious recipes that highlight fresh ingredients.",
        user_prompt="\n".join(lines),
        max_tokens=300,
        temperature=0.7,
    )


PROMPT_BUILDERS: Dict[NarrativeKind, Callable[[CropData], PromptSpec]] = {
    "cropStory": crop_story_prompt,
    "environmentalImpact": environmental_impact_prompt,
    "cookingSuggestions": cooking_suggestions_prompt,
}
