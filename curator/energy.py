"""
Energy taxonomy lookups and range resolution.
"""

from typing import List, Union

from .exceptions import ConfigError
from .models import ENERGY_LEVELS, EnergyLevel, SongCriteria


def parse_energy_level(value: Union[str, EnergyLevel]) -> EnergyLevel:
    """
    Convert a string or EnergyLevel to an EnergyLevel.

    Raises:
        ValueError: If the value is not a known energy level
    """
    if isinstance(value, EnergyLevel):
        return value
    try:
        return EnergyLevel(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(level.value for level in ENERGY_LEVELS)
        raise ValueError(f"Unknown energy level '{value}' (expected one of: {valid})")


def energy_index(level: EnergyLevel) -> int:
    """Position of a level in the taxonomy (low is 0)."""
    return ENERGY_LEVELS.index(level)


def resolve_range(criteria: SongCriteria) -> List[EnergyLevel]:
    """
    Map a criteria bound to a contiguous slice of the taxonomy.

    min_energy selects min_energy..very_high; otherwise max_energy selects
    low..max_energy. Both bounds inclusive.

    Raises:
        ConfigError: If neither bound is set
    """
    if criteria.min_energy is not None:
        return list(ENERGY_LEVELS[energy_index(criteria.min_energy):])
    if criteria.max_energy is not None:
        return list(ENERGY_LEVELS[: energy_index(criteria.max_energy) + 1])
    raise ConfigError("Song criteria must specify min_energy or max_energy")
