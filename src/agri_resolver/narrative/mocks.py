from __future__ import annotations

from typing import Dict

# Served when neither the narrative API nor the LLM answers and nothing is cached.
DEFAULT_MOCK_NARRATIVES: Dict[str, Dict[str, str]] = {
    "cropStory": {
        "wheat": (
            "This wheat was grown using sustainable farming practices in the heartland region. It was planted "
            "in early spring and harvested in late summer, then transported to local mills for processing."
        ),
        "corn": (
            "This corn was grown on a family farm using traditional methods. After harvest, it was carefully "
            "inspected and transported to distribution centers."
        ),
        "default": "This crop was grown with care by local farmers committed to sustainable agriculture practices.",
    },
    "environmentalImpact": {
        "wheat": (
            "This wheat crop was grown with 30% less water than conventional methods. The farm uses solar power "
            "for operations, reducing carbon emissions by approximately 25%."
        ),
        "corn": (
            "This corn was grown using integrated pest management, reducing pesticide use by 40%. Crop rotation "
            "practices help maintain soil health."
        ),
        "default": (
            "This crop was grown using methods designed to minimize environmental impact and promote sustainability."
        ),
    },
    "cookingSuggestions": {
        "wheat": (
            "This wheat can be milled into flour for bread, pasta, or pastries. For whole grain options, try wheat "
            "berries in salads or soups."
        ),
        "corn": (
            "This corn is perfect for grilling, boiling, or roasting. Try it in salads, salsas, or as a side dish "
            "with butter and herbs."
        ),
        "default": (
            "This crop can be prepared using various cooking methods to bring out its natural flavors and "
            "nutritional benefits."
        ),
    },
}
