"""
Data models for curator.

Defines typed dataclasses for all entities used throughout the application.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class EnergyLevel(str, Enum):
    """Perceived intensity of a track, declared in ascending order."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


# Order matters: range resolution works on index position
ENERGY_LEVELS = (
    EnergyLevel.LOW,
    EnergyLevel.MEDIUM,
    EnergyLevel.HIGH,
    EnergyLevel.VERY_HIGH,
)


@dataclass(frozen=True)
class EnergyProfile:
    """Declared percentage breakdown across energy levels."""

    low: int = 0
    medium: int = 0
    high: int = 0
    very_high: int = 0

    def total(self) -> int:
        return self.low + self.medium + self.high + self.very_high

    def to_dict(self) -> Dict[str, int]:
        return {
            "low": self.low,
            "medium": self.medium,
            "high": self.high,
            "very_high": self.very_high,
        }


@dataclass(frozen=True)
class SongCriteria:
    """Matching rule used to populate a template playlist."""

    preferred_genres: tuple
    min_energy: Optional[EnergyLevel] = None
    max_energy: Optional[EnergyLevel] = None


@dataclass(frozen=True)
class TemplateDefinition:
    """A validated business-type preset. Never persisted itself."""

    name: str
    business_type: str
    energy_profile: EnergyProfile
    song_criteria: SongCriteria


@dataclass
class Song:
    """Catalog song."""

    id: int
    title: str
    genre: str
    energy_level: EnergyLevel
    duration_seconds: Optional[int] = None
    file_location: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass
class Playlist:
    """Playlist header. created_by is None for template playlists."""

    id: int
    name: str
    business_type: str
    energy_profile: Dict[str, int] = field(default_factory=dict)
    is_template: bool = False
    created_by: Optional[str] = None
    song_count: int = 0
    created_at: Optional[datetime] = None


@dataclass
class PlaylistSong:
    """Association of a song with a playlist at a given position."""

    playlist_id: int
    song_id: int
    position: int
    created_at: Optional[datetime] = None


@dataclass
class BuildResult:
    """Outcome of building one template playlist."""

    template_name: str
    business_type: Optional[str] = None
    playlist: Optional[Playlist] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.playlist is not None


@dataclass
class ConfigEntry:
    """Configuration entry."""

    key: str
    value: str
    updated_at: Optional[datetime] = None


@dataclass
class PlaylistDetail:
    """Playlist together with its songs in playback order."""

    playlist: Playlist
    songs: List[Song] = field(default_factory=list)
