"""
Database module for curator.

Handles SQLite database initialization, schema creation, connection management,
and the repositories that read and write each table.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from .models import ConfigEntry, EnergyLevel, Playlist, PlaylistSong, Song

SCHEMA = """
    CREATE TABLE IF NOT EXISTS songs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        genre TEXT NOT NULL,
        duration_seconds INTEGER,
        energy_level TEXT NOT NULL
            CHECK (energy_level IN ('low', 'medium', 'high', 'very_high')),
        file_location TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS playlists (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        business_type TEXT NOT NULL,
        energy_profile_json TEXT,
        is_template INTEGER NOT NULL DEFAULT 0,
        created_by TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS playlist_songs (
        playlist_id INTEGER NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
        song_id INTEGER NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (playlist_id, song_id)
    );

    CREATE TABLE IF NOT EXISTS config (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS idx_songs_energy_active
    ON songs(energy_level, is_active);

    CREATE INDEX IF NOT EXISTS idx_playlists_template
    ON playlists(is_template, business_type);

    CREATE INDEX IF NOT EXISTS idx_playlist_songs_position
    ON playlist_songs(playlist_id, position);
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


class Database:
    """Manages SQLite database connection and schema."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses ~/.curator/curator.db
        """
        self.logger = logging.getLogger(__name__)

        if db_path is None:
            curator_dir = Path.home() / ".curator"
            curator_dir.mkdir(exist_ok=True)
            db_path = str(curator_dir / "curator.db")

        self.db_path = db_path
        self._ensure_schema()
        self.logger.info("Database initialized at %s", self.db_path)

    def _ensure_schema(self):
        """Ensure database schema exists."""
        conn = self.get_connection()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        self.logger.debug("Database schema created/verified")

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a new database connection with foreign keys enforced.

        Registers casefold() so SQL can compare genres the same way Python
        does; SQLite's LOWER() only folds ASCII.

        Caller is responsible for closing the connection when done.
        """
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements as one atomic unit.

        Commits when the block exits normally and rolls back on any exception,
        which is re-raised.
        """
        conn = self.get_connection()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                self.logger.debug("Transaction rolled back")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    @contextmanager
    def connection(self, conn: Optional[sqlite3.Connection] = None):
        """
        Yield the given connection, or a short-lived one that commits on exit.

        Lets repository methods either join an outer transaction or run alone.
        """
        if conn is not None:
            yield conn
            return
        own = self.get_connection()
        try:
            yield own
            own.commit()
        finally:
            own.close()

    def close(self):
        """Close database connection (no-op since connections are per-call)."""
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class SongRepository:
    """Reads and writes rows of the songs table."""

    UPDATABLE_FIELDS = ("title", "genre", "energy_level", "is_active", "duration_seconds")

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _row_to_song(row: sqlite3.Row) -> Song:
        return Song(
            id=row["id"],
            title=row["title"],
            genre=row["genre"],
            energy_level=EnergyLevel(row["energy_level"]),
            duration_seconds=row["duration_seconds"],
            file_location=row["file_location"],
            is_active=bool(row["is_active"]),
            created_at=_parse_timestamp(row["created_at"]),
        )

    def add(
        self,
        title: str,
        genre: str,
        energy_level: EnergyLevel,
        duration_seconds: Optional[int] = None,
        file_location: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        with self.database.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO songs
                    (title, genre, duration_seconds, energy_level, file_location, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    title,
                    genre,
                    duration_seconds,
                    energy_level.value,
                    file_location,
                    1 if is_active else 0,
                ),
            )
            return cursor.lastrowid

    def get(self, song_id: int) -> Optional[Song]:
        with self.database.connection() as conn:
            row = conn.execute("SELECT * FROM songs WHERE id = ?", (song_id,)).fetchone()
            return self._row_to_song(row) if row else None

    def get_many(
        self, song_ids: Sequence[int], conn: Optional[sqlite3.Connection] = None
    ) -> List[Song]:
        """Fetch songs by id, preserving the order of song_ids."""
        if not song_ids:
            return []
        placeholders = ", ".join("?" for _ in song_ids)
        with self.database.connection(conn) as c:
            rows = c.execute(
                f"SELECT * FROM songs WHERE id IN ({placeholders})", tuple(song_ids)
            ).fetchall()
        by_id = {row["id"]: self._row_to_song(row) for row in rows}
        return [by_id[song_id] for song_id in song_ids if song_id in by_id]

    def get_all(self) -> List[Song]:
        with self.database.connection() as conn:
            rows = conn.execute("SELECT * FROM songs ORDER BY title ASC, id ASC").fetchall()
            return [self._row_to_song(row) for row in rows]

    def get_active_by_energy(self, energy_level: EnergyLevel) -> List[Song]:
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM songs
                WHERE energy_level = ? AND is_active = 1
                ORDER BY title ASC, id ASC
                """,
                (energy_level.value,),
            ).fetchall()
            return [self._row_to_song(row) for row in rows]

    def find_matching_ids(
        self,
        energy_levels: Sequence[EnergyLevel],
        genres: Iterable[str],
        conn: Optional[sqlite3.Connection] = None,
    ) -> List[int]:
        """
        Ids of active songs in any of energy_levels whose genre matches, case-insensitively.

        Returned in id order so sampling over the result is reproducible.
        """
        levels = [level.value for level in energy_levels]
        folded = sorted({genre.casefold() for genre in genres})
        if not levels or not folded:
            return []

        level_marks = ", ".join("?" for _ in levels)
        genre_marks = ", ".join("?" for _ in folded)
        with self.database.connection(conn) as c:
            rows = c.execute(
                f"""
                SELECT id FROM songs
                WHERE is_active = 1
                  AND energy_level IN ({level_marks})
                  AND casefold(genre) IN ({genre_marks})
                ORDER BY id ASC
                """,
                (*levels, *folded),
            ).fetchall()
        return [row["id"] for row in rows]

    def update(self, song_id: int, fields: Dict[str, Any]) -> bool:
        """Update the given columns. Unknown keys are ignored."""
        updates = {key: value for key, value in fields.items() if key in self.UPDATABLE_FIELDS}
        if not updates:
            return self.get(song_id) is not None

        if "energy_level" in updates:
            updates["energy_level"] = EnergyLevel(updates["energy_level"]).value
        if "is_active" in updates:
            updates["is_active"] = 1 if updates["is_active"] else 0

        assignments = ", ".join(f"{key} = ?" for key in updates)
        with self.database.connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE songs
                SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (*updates.values(), song_id),
            )
            return cursor.rowcount > 0

    def delete(self, song_id: int) -> bool:
        with self.database.connection() as conn:
            cursor = conn.execute("DELETE FROM songs WHERE id = ?", (song_id,))
            return cursor.rowcount > 0

    def get_genres(self) -> List[str]:
        """Distinct genres of active songs, compared case-insensitively."""
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT MIN(genre) AS genre FROM songs
                WHERE is_active = 1
                GROUP BY casefold(genre)
                ORDER BY casefold(genre)
                """
            ).fetchall()
            return [row["genre"] for row in rows]


class PlaylistRepository:
    """Reads and writes playlists and their song associations."""

    def __init__(self, database: Database):
        self.database = database
        self.logger = logging.getLogger(__name__)

    def _row_to_playlist(self, row: sqlite3.Row) -> Playlist:
        profile: Dict[str, int] = {}
        if row["energy_profile_json"]:
            try:
                profile = json.loads(row["energy_profile_json"])
            except json.JSONDecodeError:
                self.logger.warning(
                    "Failed to decode energy profile for playlist %s", row["id"]
                )
        keys = row.keys()
        return Playlist(
            id=row["id"],
            name=row["name"],
            business_type=row["business_type"],
            energy_profile=profile,
            is_template=bool(row["is_template"]),
            created_by=row["created_by"],
            song_count=row["song_count"] if "song_count" in keys else 0,
            created_at=_parse_timestamp(row["created_at"]),
        )

    def insert(
        self,
        name: str,
        business_type: str,
        energy_profile: Dict[str, int],
        is_template: bool = False,
        created_by: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        with self.database.connection(conn) as c:
            cursor = c.execute(
                """
                INSERT INTO playlists
                    (name, business_type, energy_profile_json, is_template, created_by)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    name,
                    business_type,
                    json.dumps(energy_profile),
                    1 if is_template else 0,
                    created_by,
                ),
            )
            return cursor.lastrowid

    def update(
        self,
        playlist_id: int,
        name: Optional[str] = None,
        energy_profile: Optional[Dict[str, int]] = None,
    ) -> bool:
        """Update name and/or energy profile. None leaves a column unchanged."""
        with self.database.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE playlists
                SET name = COALESCE(?, name),
                    energy_profile_json = COALESCE(?, energy_profile_json),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    name,
                    json.dumps(energy_profile) if energy_profile is not None else None,
                    playlist_id,
                ),
            )
            return cursor.rowcount > 0

    def delete_templates(
        self,
        business_type: Optional[str] = None,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """
        Delete template playlists, optionally only those of one business type.

        Song associations go with them through ON DELETE CASCADE.
        """
        clauses = ["is_template = 1"]
        params: List[Any] = []
        if business_type is not None:
            clauses.append("business_type = ?")
            params.append(business_type)

        with self.database.connection(conn) as c:
            cursor = c.execute(
                f"DELETE FROM playlists WHERE {' AND '.join(clauses)}", tuple(params)
            )
            return cursor.rowcount

    def delete(self, playlist_id: int) -> bool:
        with self.database.connection() as conn:
            cursor = conn.execute("DELETE FROM playlists WHERE id = ?", (playlist_id,))
            return cursor.rowcount > 0

    def insert_songs(
        self, rows: Sequence[PlaylistSong], conn: Optional[sqlite3.Connection] = None
    ) -> int:
        """Insert all associations in one batch."""
        if not rows:
            return 0
        with self.database.connection(conn) as c:
            c.executemany(
                """
                INSERT INTO playlist_songs (playlist_id, song_id, position)
                VALUES (?, ?, ?)
                """,
                [(row.playlist_id, row.song_id, row.position) for row in rows],
            )
        return len(rows)

    def remove_song(self, playlist_id: int, song_id: int) -> bool:
        with self.database.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
                (playlist_id, song_id),
            )
            return cursor.rowcount > 0

    def next_position(self, playlist_id: int) -> int:
        with self.database.connection() as conn:
            row = conn.execute(
                """
                SELECT COALESCE(MAX(position) + 1, 0) AS next_position
                FROM playlist_songs WHERE playlist_id = ?
                """,
                (playlist_id,),
            ).fetchone()
            return row["next_position"]

    def get(
        self, playlist_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Playlist]:
        with self.database.connection(conn) as c:
            row = c.execute(
                """
                SELECT p.*, COUNT(ps.song_id) AS song_count
                FROM playlists p
                LEFT JOIN playlist_songs ps ON p.id = ps.playlist_id
                WHERE p.id = ?
                GROUP BY p.id
                """,
                (playlist_id,),
            ).fetchone()
            return self._row_to_playlist(row) if row else None

    def get_visible(self, user_id: Optional[str] = None) -> List[Playlist]:
        """Template playlists plus those created by user_id, newest first."""
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT p.*, COUNT(ps.song_id) AS song_count
                FROM playlists p
                LEFT JOIN playlist_songs ps ON p.id = ps.playlist_id
                WHERE p.is_template = 1 OR (? IS NOT NULL AND p.created_by = ?)
                GROUP BY p.id
                ORDER BY p.created_at DESC, p.id DESC
                """,
                (user_id, user_id),
            ).fetchall()
            return [self._row_to_playlist(row) for row in rows]

    def get_templates(self, business_type: Optional[str] = None) -> List[Playlist]:
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT p.*, COUNT(ps.song_id) AS song_count
                FROM playlists p
                LEFT JOIN playlist_songs ps ON p.id = ps.playlist_id
                WHERE p.is_template = 1 AND (? IS NULL OR p.business_type = ?)
                GROUP BY p.id
                ORDER BY p.id ASC
                """,
                (business_type, business_type),
            ).fetchall()
            return [self._row_to_playlist(row) for row in rows]

    def get_songs(self, playlist_id: int) -> List[Song]:
        """Songs of a playlist in position order."""
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT s.* FROM playlist_songs ps
                JOIN songs s ON s.id = ps.song_id
                WHERE ps.playlist_id = ?
                ORDER BY ps.position ASC
                """,
                (playlist_id,),
            ).fetchall()
            return [SongRepository._row_to_song(row) for row in rows]

    def get_entries(self, playlist_id: int) -> List[PlaylistSong]:
        with self.database.connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM playlist_songs
                WHERE playlist_id = ?
                ORDER BY position ASC
                """,
                (playlist_id,),
            ).fetchall()
            return [
                PlaylistSong(
                    playlist_id=row["playlist_id"],
                    song_id=row["song_id"],
                    position=row["position"],
                    created_at=_parse_timestamp(row["created_at"]),
                )
                for row in rows
            ]


class ConfigRepository:
    """Key/value access to the config table."""

    def __init__(self, database: Database):
        self.database = database

    def initialize_defaults(self, defaults: Dict[str, Optional[str]]):
        """Insert defaults for keys that are not stored yet."""
        with self.database.connection() as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
                [(key, "" if value is None else str(value)) for key, value in defaults.items()],
            )

    def get(self, key: str) -> Optional[ConfigEntry]:
        with self.database.connection() as conn:
            row = conn.execute("SELECT * FROM config WHERE key = ?", (key,)).fetchone()
            if not row:
                return None
            return ConfigEntry(
                key=row["key"],
                value=row["value"],
                updated_at=_parse_timestamp(row["updated_at"]),
            )

    def set(self, key: str, value: str) -> bool:
        with self.database.connection() as conn:
            conn.execute(
                """
                INSERT INTO config (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
        return True

    def get_all(self) -> List[ConfigEntry]:
        with self.database.connection() as conn:
            rows = conn.execute("SELECT * FROM config ORDER BY key").fetchall()
            return [
                ConfigEntry(
                    key=row["key"],
                    value=row["value"],
                    updated_at=_parse_timestamp(row["updated_at"]),
                )
                for row in rows
            ]
