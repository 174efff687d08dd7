"""
Playlist reads and user playlist management.
"""

import logging
from typing import Dict, List, Optional

from .database import Database, PlaylistRepository
from .models import Playlist, PlaylistDetail, PlaylistSong


class PlaylistManager:
    """Manages playlists and their song associations."""

    def __init__(self, database: Database):
        """
        Initialize PlaylistManager.

        Args:
            database: Database instance for persistence
        """
        self.database = database
        self.repository = PlaylistRepository(database)
        self.logger = logging.getLogger(__name__)

    def list_playlists(self, user_id: Optional[str] = None) -> List[Playlist]:
        """Template playlists plus the ones created by user_id, newest first."""
        return self.repository.get_visible(user_id)

    def list_templates(self, business_type: Optional[str] = None) -> List[Playlist]:
        return self.repository.get_templates(business_type)

    def get_playlist(self, playlist_id: int) -> Optional[Playlist]:
        return self.repository.get(playlist_id)

    def get_playlist_detail(self, playlist_id: int) -> Optional[PlaylistDetail]:
        playlist = self.repository.get(playlist_id)
        if playlist is None:
            return None
        return PlaylistDetail(playlist=playlist, songs=self.repository.get_songs(playlist_id))

    def get_playlist_songs(self, playlist_id: int):
        """Songs of a playlist in playback order."""
        return self.repository.get_songs(playlist_id)

    def get_entries(self, playlist_id: int) -> List[PlaylistSong]:
        return self.repository.get_entries(playlist_id)

    def create_playlist(
        self,
        name: str,
        business_type: str,
        energy_profile: Dict[str, int],
        created_by: str,
    ) -> int:
        """
        Create a user-owned playlist.

        Returns:
            ID of the created playlist
        """
        playlist_id = self.repository.insert(
            name=name,
            business_type=business_type,
            energy_profile=energy_profile,
            is_template=False,
            created_by=created_by,
        )
        self.logger.info("Created playlist %s for %s (ID: %s)", name, created_by, playlist_id)
        return playlist_id

    def update_playlist(
        self,
        playlist_id: int,
        name: Optional[str] = None,
        energy_profile: Optional[Dict[str, int]] = None,
    ) -> Optional[Playlist]:
        """
        Rename a playlist or replace its energy profile.

        Returns:
            The updated Playlist, or None if it does not exist
        """
        if not self.repository.update(playlist_id, name=name, energy_profile=energy_profile):
            return None
        self.logger.info("Updated playlist %s", playlist_id)
        return self.repository.get(playlist_id)

    def add_song(self, playlist_id: int, song_id: int, position: Optional[int] = None) -> int:
        """
        Add a song to a playlist.

        Args:
            playlist_id: Playlist to add to
            song_id: Song to add
            position: Position to store; appended after the last song if None

        Returns:
            The position assigned
        """
        if position is None:
            position = self.repository.next_position(playlist_id)
        self.repository.insert_songs(
            [PlaylistSong(playlist_id=playlist_id, song_id=song_id, position=position)]
        )
        return position

    def remove_song(self, playlist_id: int, song_id: int) -> bool:
        return self.repository.remove_song(playlist_id, song_id)

    def delete_playlist(self, playlist_id: int) -> bool:
        deleted = self.repository.delete(playlist_id)
        if deleted:
            self.logger.info("Deleted playlist %s", playlist_id)
        return deleted
