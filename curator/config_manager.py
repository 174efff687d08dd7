"""
Configuration management using database storage.

Provides access to configuration values with defaults and type conversion.
The CONFIG_SCHEMA provides metadata for building the admin configuration UI.
"""

import logging
import random
from typing import Any, Dict, Optional

from .database import ConfigRepository, Database

# Configuration groups define the logical sections in the config UI
CONFIG_GROUPS = {
    "catalog": {"label": "Catalog & Storage", "order": 1},
    "templates": {"label": "Template Playlists", "order": 2},
    "security": {"label": "Security", "order": 3},
}

# Schema defining metadata for each editable configuration key
CONFIG_SCHEMA = {
    "song_directory": {
        "group": "catalog",
        "label": "Song Directory",
        "description": "Where uploaded MP3 files are stored and served from under /songs.",
        "control": "text",
        "placeholder": "~/.curator/songs",
    },
    "template_song_limit": {
        "group": "templates",
        "label": "Songs per Template",
        "description": "Maximum number of songs picked for each template playlist.",
        "control": "slider",
        "min": 1,
        "max": 200,
        "step": 1,
    },
    "random_seed": {
        "group": "templates",
        "label": "Random Seed",
        "description": "Fix song sampling for reproducible builds. Leave empty for random picks.",
        "control": "text",
    },
    "continue_on_template_error": {
        "group": "templates",
        "label": "Continue After Failures",
        "description": "Keep building the remaining templates when one of them fails.",
        "control": "toggle",
    },
    "admin_pin": {
        "group": "security",
        "label": "Admin PIN",
        "description": "PIN code required for catalog editing and template builds.",
        "control": "password",
    },
}


class ConfigManager:
    """Manages configuration stored in database."""

    DEFAULTS = {
        "song_directory": None,  # Will default to ~/.curator/songs
        "template_song_limit": "50",
        "random_seed": None,  # Unseeded sampling
        "continue_on_template_error": "true",
        "admin_pin": "1234",
    }

    def __init__(self, database: Database):
        """
        Initialize ConfigManager.

        Args:
            database: Database instance
        """
        self.database = database
        self.repository = ConfigRepository(database)
        self.logger = logging.getLogger(__name__)
        self.repository.initialize_defaults(self.DEFAULTS)

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found (uses DEFAULTS if None)

        Returns:
            Configuration value as string, or None if not found
        """
        if default is None:
            default = self.DEFAULTS.get(key)

        entry = self.repository.get(key)
        if entry:
            return entry.value if entry.value else default
        return default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Get configuration value as integer."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            self.logger.warning("Invalid integer value for %s: %s", key, value)
            return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set (will be converted to string)

        Returns:
            True if successful
        """
        return self.repository.set(key, str(value))

    def get_all(self) -> dict:
        """
        Get all configuration values, with defaults for keys never stored.
        """
        result = dict(self.DEFAULTS)
        result.update({entry.key: entry.value for entry in self.repository.get_all()})
        return result

    def get_full_config(self) -> Dict[str, Any]:
        """
        Get complete configuration data for the UI.

        Returns:
            Dictionary with 'values', 'schema', and 'groups' keys.
            Password values are masked.
        """
        values = self.get_all()
        for key, key_def in CONFIG_SCHEMA.items():
            if key_def["control"] == "password" and values.get(key):
                values[key] = "****"
        return {
            "values": values,
            "schema": {key: dict(key_def) for key, key_def in CONFIG_SCHEMA.items()},
            "groups": CONFIG_GROUPS.copy(),
        }

    def make_rng(self) -> random.Random:
        """Random generator for song sampling, seeded when random_seed is set."""
        seed = self.get_int("random_seed")
        if seed is not None:
            self.logger.info("Using fixed random seed %s for song sampling", seed)
        return random.Random(seed)
