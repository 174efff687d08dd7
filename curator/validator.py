"""
Template configuration validation.

Raw template definitions (as written in templates.py or posted to the API) are
parsed with pydantic and converted to immutable TemplateDefinition objects.
Accepts camelCase keys (businessType, energyProfile, songCriteria, minEnergy,
maxEnergy, preferredGenres) as well as their snake_case equivalents.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .energy import parse_energy_level
from .exceptions import ValidationError
from .models import EnergyLevel, EnergyProfile, SongCriteria, TemplateDefinition

logger = logging.getLogger(__name__)


class EnergyProfileModel(BaseModel):
    """Percentages per energy level; must add up to exactly 100."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    low: int = Field(default=0, ge=0, le=100)
    medium: int = Field(default=0, ge=0, le=100)
    high: int = Field(default=0, ge=0, le=100)
    very_high: int = Field(default=0, ge=0, le=100, alias="veryHigh")

    @model_validator(mode="after")
    def check_total(self):
        total = self.low + self.medium + self.high + self.very_high
        if total != 100:
            raise ValueError(f"energy profile must sum to 100, got {total}")
        return self


class SongCriteriaModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    min_energy: Optional[EnergyLevel] = Field(default=None, alias="minEnergy")
    max_energy: Optional[EnergyLevel] = Field(default=None, alias="maxEnergy")
    preferred_genres: List[str] = Field(alias="preferredGenres")

    @field_validator("min_energy", "max_energy", mode="before")
    @classmethod
    def normalize_energy(cls, value):
        if value is None:
            return None
        return parse_energy_level(value)

    @field_validator("preferred_genres")
    @classmethod
    def check_genres(cls, value: List[str]) -> List[str]:
        genres = [genre.strip() for genre in value]
        if not genres:
            raise ValueError("preferred genres must not be empty")
        if any(not genre for genre in genres):
            raise ValueError("preferred genres must not contain blank entries")
        return genres

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_energy is None and self.max_energy is None:
            raise ValueError("song criteria must specify minEnergy or maxEnergy")
        # Combined bounds have no agreed meaning, so they are refused outright.
        if self.min_energy is not None and self.max_energy is not None:
            raise ValueError("song criteria must specify only one of minEnergy or maxEnergy")
        return self


class TemplateModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1)
    business_type: str = Field(min_length=1, alias="businessType")
    energy_profile: EnergyProfileModel = Field(alias="energyProfile")
    song_criteria: SongCriteriaModel = Field(alias="songCriteria")

    @field_validator("name", "business_type")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


def _format_errors(error: pydantic.ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def validate(raw: Union[Mapping[str, Any], TemplateDefinition]) -> TemplateDefinition:
    """
    Validate a raw template definition.

    Args:
        raw: Mapping describing the template, or an existing TemplateDefinition
             (which is re-checked against the same rules)

    Returns:
        Immutable TemplateDefinition

    Raises:
        ValidationError: If the definition breaks any schema rule
    """
    if isinstance(raw, TemplateDefinition):
        raw = to_raw(raw)
    if not isinstance(raw, Mapping):
        raise ValidationError(f"template must be a mapping, got {type(raw).__name__}")

    name = raw.get("name") if isinstance(raw.get("name"), str) else None
    try:
        model = TemplateModel.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        logger.debug("Template %s failed validation: %s", name, e)
        raise ValidationError(_format_errors(e), template_name=name) from e

    profile = model.energy_profile
    criteria = model.song_criteria
    return TemplateDefinition(
        name=model.name,
        business_type=model.business_type,
        energy_profile=EnergyProfile(
            low=profile.low,
            medium=profile.medium,
            high=profile.high,
            very_high=profile.very_high,
        ),
        song_criteria=SongCriteria(
            preferred_genres=tuple(criteria.preferred_genres),
            min_energy=criteria.min_energy,
            max_energy=criteria.max_energy,
        ),
    )


def to_raw(definition: TemplateDefinition) -> dict:
    """Convert a TemplateDefinition back to its camelCase mapping form."""
    criteria = definition.song_criteria
    song_criteria: dict = {"preferredGenres": list(criteria.preferred_genres)}
    if criteria.min_energy is not None:
        song_criteria["minEnergy"] = criteria.min_energy.value
    if criteria.max_energy is not None:
        song_criteria["maxEnergy"] = criteria.max_energy.value
    return {
        "name": definition.name,
        "businessType": definition.business_type,
        "energyProfile": definition.energy_profile.to_dict(),
        "songCriteria": song_criteria,
    }
