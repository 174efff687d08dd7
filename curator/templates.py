"""
Business-type playlist templates.

Each entry describes one preset: the energy profile shown to customers and
the rule used to pick songs from the catalog. Definitions are validated when
loaded, never edited at runtime.
"""

from typing import Any, Iterable, List, Mapping, Optional

from .models import TemplateDefinition
from .validator import validate

BUSINESS_TEMPLATES = [
    {
        "name": "Gym Power",
        "businessType": "gym",
        "energyProfile": {"low": 0, "medium": 10, "high": 50, "very_high": 40},
        "songCriteria": {
            "minEnergy": "high",
            "preferredGenres": ["Dance", "Trap", "Hip Hop", "EDM"],
        },
    },
    {
        "name": "Spa Calm",
        "businessType": "spa",
        "energyProfile": {"low": 100, "medium": 0, "high": 0, "very_high": 0},
        "songCriteria": {
            "maxEnergy": "low",
            "preferredGenres": ["Lounge", "Ambient", "Classical"],
        },
    },
    {
        "name": "Cafe Morning",
        "businessType": "cafe",
        "energyProfile": {"low": 40, "medium": 60, "high": 0, "very_high": 0},
        "songCriteria": {
            "maxEnergy": "medium",
            "preferredGenres": ["Jazz", "Acoustic", "Lounge", "Soul"],
        },
    },
    {
        "name": "Restaurant Dinner",
        "businessType": "restaurant",
        "energyProfile": {"low": 50, "medium": 50, "high": 0, "very_high": 0},
        "songCriteria": {
            "maxEnergy": "medium",
            "preferredGenres": ["Jazz", "Soul", "Bossa Nova", "Classical"],
        },
    },
    {
        "name": "Retail Floor",
        "businessType": "retail",
        "energyProfile": {"low": 0, "medium": 50, "high": 40, "very_high": 10},
        "songCriteria": {
            "minEnergy": "medium",
            "preferredGenres": ["Pop", "Funk", "Indie", "House"],
        },
    },
    {
        "name": "Office Focus",
        "businessType": "office",
        "energyProfile": {"low": 60, "medium": 40, "high": 0, "very_high": 0},
        "songCriteria": {
            "maxEnergy": "medium",
            "preferredGenres": ["Ambient", "Classical", "Acoustic", "Lo-Fi"],
        },
    },
]


def load_templates(
    raw_templates: Optional[Iterable[Mapping[str, Any]]] = None,
) -> List[TemplateDefinition]:
    """
    Validate raw template definitions.

    Args:
        raw_templates: Definitions to load. Defaults to BUSINESS_TEMPLATES.

    Returns:
        List of TemplateDefinition in declaration order

    Raises:
        ValidationError: On the first malformed definition
    """
    if raw_templates is None:
        raw_templates = BUSINESS_TEMPLATES
    return [validate(raw) for raw in raw_templates]
