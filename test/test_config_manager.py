"""
Unit tests for ConfigManager.
"""

import os
import tempfile

import pytest

from curator.config_manager import CONFIG_SCHEMA, ConfigManager
from curator.database import Database


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db = Database(db_path=path)
    yield db
    db.close()
    os.unlink(path)


@pytest.fixture
def config_manager(temp_db):
    """Create a ConfigManager instance for testing."""
    return ConfigManager(temp_db)


def test_get_default(config_manager):
    """Test getting default configuration values."""
    assert config_manager.get("admin_pin") == "1234"
    assert config_manager.get("template_song_limit") == "50"
    assert config_manager.get("random_seed") is None
    assert config_manager.get("song_directory") is None


def test_set_and_get(config_manager):
    config_manager.set("admin_pin", "5678")
    assert config_manager.get("admin_pin") == "5678"

    config_manager.set("test_key", "test_value")
    assert config_manager.get("test_key") == "test_value"


def test_get_int(config_manager):
    assert config_manager.get_int("template_song_limit") == 50

    config_manager.set("template_song_limit", "25")
    assert config_manager.get_int("template_song_limit") == 25

    assert config_manager.get_int("nonexistent", default=10) == 10

    config_manager.set("invalid_int", "not_a_number")
    assert config_manager.get_int("invalid_int", default=0) == 0


def test_get_bool(config_manager):
    assert config_manager.get_bool("continue_on_template_error") is True

    config_manager.set("continue_on_template_error", "false")
    assert config_manager.get_bool("continue_on_template_error") is False

    config_manager.set("test_bool", "1")
    assert config_manager.get_bool("test_bool") is True

    assert config_manager.get_bool("nonexistent", default=True) is True


def test_get_all(config_manager):
    config_manager.set("admin_pin", "9999")
    config_manager.set("custom_key", "custom_value")

    all_config = config_manager.get_all()

    assert all_config["admin_pin"] == "9999"
    assert all_config["custom_key"] == "custom_value"
    assert "template_song_limit" in all_config


def test_config_persistence(temp_db):
    """Configuration persists across ConfigManager instances."""
    cm1 = ConfigManager(temp_db)
    cm1.set("admin_pin", "7777")

    cm2 = ConfigManager(temp_db)
    assert cm2.get("admin_pin") == "7777"


def test_full_config_masks_passwords(config_manager):
    full = config_manager.get_full_config()

    assert full["values"]["admin_pin"] == "****"
    assert set(full["schema"]) == set(CONFIG_SCHEMA)
    assert "templates" in full["groups"]


def test_make_rng_seeded(config_manager):
    config_manager.set("random_seed", "99")

    first = config_manager.make_rng()
    second = config_manager.make_rng()
    assert [first.random() for _ in range(3)] == [second.random() for _ in range(3)]


def test_make_rng_unseeded(config_manager):
    rng = config_manager.make_rng()
    assert 0.0 <= rng.random() < 1.0
