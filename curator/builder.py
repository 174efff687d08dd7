"""
Template playlist building.

Turns TemplateDefinitions into persisted template playlists. Each build
replaces the previous template playlist for the same business type and runs
as a single transaction, so a template is either fully rebuilt or left
untouched.
"""

import logging
import sqlite3
from typing import Any, Iterable, List, Mapping, Union

from .database import Database, PlaylistRepository
from .energy import resolve_range
from .exceptions import BuildError, CuratorError
from .matcher import DEFAULT_LIMIT, SongMatcher
from .models import BuildResult, Playlist, PlaylistSong, TemplateDefinition
from .validator import validate


class TemplatePlaylistBuilder:
    """Builds template playlists from definitions."""

    def __init__(
        self,
        database: Database,
        matcher: SongMatcher,
        song_limit: int = DEFAULT_LIMIT,
        continue_on_error: bool = True,
    ):
        """
        Initialize TemplatePlaylistBuilder.

        Args:
            database: Database instance for persistence
            matcher: SongMatcher used to pick songs
            song_limit: Maximum number of songs per template playlist
            continue_on_error: Whether build_all_templates keeps going after
                               a template fails
        """
        self.database = database
        self.matcher = matcher
        self.song_limit = song_limit
        self.continue_on_error = continue_on_error
        self.repository = PlaylistRepository(database)
        self.logger = logging.getLogger(__name__)

    def build_template(
        self, definition: Union[TemplateDefinition, Mapping[str, Any]]
    ) -> Playlist:
        """
        Build (or rebuild) the playlist for one template.

        Args:
            definition: TemplateDefinition or raw mapping to validate

        Returns:
            The persisted Playlist, with song_count set

        Raises:
            ValidationError: If the definition is malformed (nothing is written)
            BuildError: If storage fails; the transaction is rolled back
        """
        definition = validate(definition)
        energy_range = resolve_range(definition.song_criteria)

        self.logger.info(
            "Building template %s (%s): energy %s, genres %s",
            definition.name,
            definition.business_type,
            [level.value for level in energy_range],
            list(definition.song_criteria.preferred_genres),
        )

        try:
            with self.database.transaction() as conn:
                playlist_id = self._write_playlist(conn, definition, energy_range)
                playlist = self.repository.get(playlist_id, conn=conn)
        except sqlite3.Error as e:
            self.logger.error(
                "Storage error building template %s: %s", definition.name, e, exc_info=True
            )
            raise BuildError(definition.name, e) from e

        self.logger.info(
            "Built template %s as playlist %s with %s songs",
            definition.name,
            playlist.id,
            playlist.song_count,
        )
        return playlist

    def _write_playlist(self, conn, definition: TemplateDefinition, energy_range) -> int:
        # One template playlist per business type, whatever the template was called before
        removed = self.repository.delete_templates(
            business_type=definition.business_type, conn=conn
        )
        if removed:
            self.logger.debug(
                "Removed %s previous template playlist(s) for %s",
                removed,
                definition.business_type,
            )

        playlist_id = self.repository.insert(
            name=definition.name,
            business_type=definition.business_type,
            energy_profile=definition.energy_profile.to_dict(),
            is_template=True,
            created_by=None,
            conn=conn,
        )

        songs = self.matcher.find_candidates(
            energy_range,
            definition.song_criteria.preferred_genres,
            limit=self.song_limit,
            conn=conn,
        )
        if not songs:
            self.logger.warning(
                "Template %s matched no songs; playlist will be empty", definition.name
            )

        self.repository.insert_songs(
            [
                PlaylistSong(playlist_id=playlist_id, song_id=song.id, position=index)
                for index, song in enumerate(songs)
            ],
            conn=conn,
        )
        return playlist_id

    def build_all_templates(
        self, definitions: Iterable[Union[TemplateDefinition, Mapping[str, Any]]]
    ) -> List[BuildResult]:
        """
        Build each template in turn.

        Failures are captured in the returned BuildResult rather than raised.
        When continue_on_error is False, templates after the first failure
        are not attempted and get no result.

        Returns:
            One BuildResult per attempted definition, in input order
        """
        results = []
        for definition in definitions:
            name, business_type = _describe(definition)
            try:
                playlist = self.build_template(definition)
                results.append(
                    BuildResult(
                        template_name=name, business_type=business_type, playlist=playlist
                    )
                )
            except CuratorError as e:
                self.logger.error("Template %s failed: %s", name, e)
                results.append(
                    BuildResult(template_name=name, business_type=business_type, error=e)
                )
                if not self.continue_on_error:
                    break

        built = sum(1 for result in results if result.ok)
        self.logger.info("Built %s of %s template playlists", built, len(results))
        return results


def _describe(definition) -> tuple:
    """Name and business type of a definition, for reporting before validation."""
    if isinstance(definition, TemplateDefinition):
        return definition.name, definition.business_type
    if isinstance(definition, Mapping):
        business_type = definition.get("businessType", definition.get("business_type"))
        return str(definition.get("name", "<unnamed>")), business_type
    return "<invalid>", None
