"""
Tests for the command-line directives.
"""

import os
import tempfile

import pytest

from curator.catalog import CatalogManager
from curator.database import Database
from curator.main import build_parser, main
from curator.playlists import PlaylistManager


@pytest.fixture
def db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    os.unlink(path)


def test_parser_requires_directive():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_create_schema(db_path, capsys):
    assert main(["--db", db_path, "create-schema"]) == 0
    assert db_path in capsys.readouterr().out


def test_create_templates(db_path, capsys):
    catalog = CatalogManager(Database(db_path))
    catalog.add_song("Pump", "Dance", "high")
    catalog.add_song("Drift", "Lounge", "low")

    assert main(["--db", db_path, "create-templates"]) == 0

    out = capsys.readouterr().out
    assert "Gym Power (gym)" in out
    assert "FAIL" not in out

    templates = PlaylistManager(Database(db_path)).list_templates()
    assert len(templates) == 6
    counts = {p.business_type: p.song_count for p in templates}
    assert counts["gym"] == 1
    assert counts["spa"] == 1


def test_create_templates_twice_replaces(db_path):
    main(["--db", db_path, "create-templates"])
    main(["--db", db_path, "create-templates"])

    assert len(PlaylistManager(Database(db_path)).list_templates()) == 6
