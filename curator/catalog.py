"""
Song catalog management for curator.

Wraps the songs table with the operations the admin views need.
"""

import logging
from pathlib import PurePosixPath
from typing import Any, List, Optional, Union
from urllib.parse import quote

from .database import Database, SongRepository
from .energy import parse_energy_level
from .models import EnergyLevel, Song


class CatalogManager:
    """Manages songs in the catalog."""

    def __init__(self, database: Database):
        """
        Initialize CatalogManager.

        Args:
            database: Database instance for persistence
        """
        self.database = database
        self.repository = SongRepository(database)
        self.logger = logging.getLogger(__name__)

    def add_song(
        self,
        title: str,
        genre: str,
        energy_level: Union[str, EnergyLevel],
        duration_seconds: Optional[int] = None,
        file_location: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        """
        Add a song to the catalog.

        Returns:
            ID of the created song

        Raises:
            ValueError: If energy_level is unknown
        """
        level = parse_energy_level(energy_level)
        song_id = self.repository.add(
            title=title,
            genre=genre,
            energy_level=level,
            duration_seconds=duration_seconds,
            file_location=file_location,
            is_active=is_active,
        )
        self.logger.info(
            "Added song %s (%s, %s) with ID %s", title, genre, level.value, song_id
        )
        return song_id

    def get_song(self, song_id: int) -> Optional[Song]:
        return self.repository.get(song_id)

    def list_songs(self) -> List[Song]:
        """All songs ordered by title, active or not."""
        return self.repository.get_all()

    def list_songs_by_energy(self, energy_level: Union[str, EnergyLevel]) -> List[Song]:
        """Active songs at a single energy level, ordered by title."""
        return self.repository.get_active_by_energy(parse_energy_level(energy_level))

    def update_song(self, song_id: int, **fields: Any) -> Optional[Song]:
        """
        Partially update a song.

        Fields set to None are left unchanged.

        Returns:
            The updated Song, or None if it does not exist
        """
        changes = {key: value for key, value in fields.items() if value is not None}
        if "energy_level" in changes:
            changes["energy_level"] = parse_energy_level(changes["energy_level"])

        if not self.repository.update(song_id, changes):
            return None
        self.logger.info("Updated song %s: %s", song_id, sorted(changes))
        return self.repository.get(song_id)

    def set_active(self, song_id: int, is_active: bool) -> bool:
        return self.repository.update(song_id, {"is_active": is_active})

    def delete_song(self, song_id: int) -> bool:
        """Delete a song. Its playlist entries are removed with it."""
        deleted = self.repository.delete(song_id)
        if deleted:
            self.logger.info("Deleted song %s", song_id)
        return deleted

    def list_genres(self) -> List[str]:
        return self.repository.get_genres()

    @staticmethod
    def file_url(song: Song) -> Optional[str]:
        """Public URL of a song's audio file, served under /songs/<genre>/."""
        if not song.file_location:
            return None
        file_name = PurePosixPath(song.file_location.replace("\\", "/")).name
        return f"/songs/{quote(song.genre, safe='')}/{quote(file_name, safe='')}"
