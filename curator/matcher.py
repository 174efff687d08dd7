"""
Song matching for template playlists.

Selects a uniform random sample of catalog songs whose energy level and
genre satisfy a template's criteria.
"""

import logging
import random
import sqlite3
from typing import List, Optional, Sequence

from .database import Database, SongRepository
from .models import EnergyLevel, Song

DEFAULT_LIMIT = 50


class SongMatcher:
    """Finds candidate songs for a template."""

    def __init__(self, database: Database, rng: Optional[random.Random] = None):
        """
        Initialize SongMatcher.

        Args:
            database: Database instance holding the catalog
            rng: Random generator used for sampling. Pass a seeded instance
                 for reproducible results; defaults to an unseeded one.
        """
        self.database = database
        self.repository = SongRepository(database)
        self.rng = rng if rng is not None else random.Random()
        self.logger = logging.getLogger(__name__)

    def find_candidates(
        self,
        energy_range: Sequence[EnergyLevel],
        genres: Sequence[str],
        limit: int = DEFAULT_LIMIT,
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[Song]:
        """
        Sample active songs matching the energy range and genres.

        Genre comparison is case-insensitive. No matches is a valid result
        and returns an empty list.

        Args:
            energy_range: Acceptable energy levels
            genres: Preferred genres
            limit: Maximum number of songs to return
            conn: Connection of an enclosing transaction, if any

        Returns:
            Up to ``limit`` distinct songs in random order
        """
        if limit <= 0:
            return []

        ids = self.repository.find_matching_ids(energy_range, genres, conn=conn)
        if not ids:
            self.logger.debug(
                "No songs match energy %s and genres %s",
                [level.value for level in energy_range],
                list(genres),
            )
            return []

        sample = self.rng.sample(ids, min(limit, len(ids)))
        self.logger.debug("Sampled %s of %s matching songs", len(sample), len(ids))
        return self.repository.get_many(sample, conn=conn)
