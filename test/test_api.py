"""
API endpoint tests for curator.

Smoke tests for every endpoint plus detailed tests for template builds and
admin gating.
"""

import os
import random
import tempfile

import pytest
from fastapi.testclient import TestClient

from curator.builder import TemplatePlaylistBuilder
from curator.catalog import CatalogManager
from curator.config_manager import ConfigManager
from curator.database import Database
from curator.matcher import SongMatcher
from curator.playlists import PlaylistManager
from curator.templates import BUSINESS_TEMPLATES
from curator.web.server import create_app


@pytest.fixture
def temp_db():
    """Create a temporary database."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db = Database(db_path=path)
    yield db
    db.close()
    os.unlink(path)


@pytest.fixture
def app_components(temp_db):
    """Create all app components against the temporary database."""
    config_manager = ConfigManager(temp_db)
    config_manager.set("admin_pin", "4321")
    catalog = CatalogManager(temp_db)
    playlist_manager = PlaylistManager(temp_db)
    builder = TemplatePlaylistBuilder(temp_db, SongMatcher(temp_db, rng=random.Random(5)))
    return {
        "config": config_manager,
        "catalog": catalog,
        "playlists": playlist_manager,
        "builder": builder,
    }


@pytest.fixture
def client(app_components):
    app = create_app(
        app_components["catalog"],
        app_components["playlists"],
        app_components["builder"],
        app_components["config"],
    )
    return TestClient(app)


@pytest.fixture
def admin_client(client):
    response = client.post("/api/auth/admin", json={"pin": "4321"})
    assert response.status_code == 200
    return client


@pytest.fixture
def songs(app_components):
    catalog = app_components["catalog"]
    return {
        "pump": catalog.add_song("Pump", "Dance", "high", 200, "/music/Dance/pump.mp3"),
        "sprint": catalog.add_song("Sprint", "Dance", "very_high", 180),
        "drift": catalog.add_song("Drift", "Lounge", "low", 240),
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"


class TestAuth:
    def test_wrong_pin(self, client):
        response = client.post("/api/auth/admin", json={"pin": "0000"})
        assert response.status_code == 403

    def test_logout_drops_admin(self, admin_client):
        assert admin_client.get("/api/config").status_code == 200
        admin_client.post("/api/auth/logout")
        assert admin_client.get("/api/config").status_code == 403


class TestSongs:
    def test_list_songs(self, client, songs):
        response = client.get("/api/songs")
        assert response.status_code == 200
        data = response.json()
        assert [song["title"] for song in data] == ["Drift", "Pump", "Sprint"]
        pump = data[1]
        assert pump["energy_level"] == "high"
        assert pump["file_url"] == "/songs/Dance/pump.mp3"

    def test_songs_by_energy(self, client, songs):
        response = client.get("/api/songs/energy/very_high")
        assert response.status_code == 200
        assert [song["title"] for song in response.json()] == ["Sprint"]

    def test_songs_by_unknown_energy(self, client):
        response = client.get("/api/songs/energy/extreme")
        assert response.status_code == 400

    def test_genres(self, client, songs):
        response = client.get("/api/songs/genres")
        assert response.json() == {"genres": ["Dance", "Lounge"]}

    def test_add_song_requires_admin(self, client):
        response = client.post(
            "/api/songs", json={"title": "X", "genre": "Pop", "energy_level": "low"}
        )
        assert response.status_code == 403

    def test_add_song(self, admin_client):
        response = admin_client.post(
            "/api/songs",
            json={"title": "New", "genre": "Pop", "energy_level": "MEDIUM", "duration_seconds": 99},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["id"] > 0
        assert data["energy_level"] == "medium"

    def test_add_song_invalid_energy(self, admin_client):
        response = admin_client.post(
            "/api/songs", json={"title": "New", "genre": "Pop", "energy_level": "loud"}
        )
        assert response.status_code == 400

    def test_update_song(self, admin_client, songs):
        response = admin_client.put(
            f"/api/songs/{songs['drift']}", json={"genre": "Ambient", "is_active": False}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["genre"] == "Ambient"
        assert data["is_active"] is False
        assert data["title"] == "Drift"

    def test_update_missing_song(self, admin_client):
        response = admin_client.put("/api/songs/999", json={"title": "Nope"})
        assert response.status_code == 404

    def test_delete_song(self, admin_client, songs):
        assert admin_client.delete(f"/api/songs/{songs['drift']}").status_code == 200
        assert admin_client.delete(f"/api/songs/{songs['drift']}").status_code == 404


class TestTemplates:
    def test_build_requires_admin(self, client):
        assert client.post("/api/templates/build").status_code == 403

    def test_build_builtin_templates(self, admin_client, songs):
        response = admin_client.post("/api/templates/build")
        assert response.status_code == 200

        results = response.json()["results"]
        assert len(results) == len(BUSINESS_TEMPLATES)
        assert all(result["ok"] for result in results)
        by_type = {result["business_type"]: result for result in results}
        assert by_type["gym"]["song_count"] == 2
        assert by_type["spa"]["song_count"] == 1

    def test_build_custom_templates_reports_failures(self, admin_client, songs):
        templates = [
            {
                "name": "Gym Power",
                "businessType": "gym",
                "energyProfile": {"low": 0, "medium": 0, "high": 50, "very_high": 50},
                "songCriteria": {"minEnergy": "high", "preferredGenres": ["dance"]},
            },
            {
                "name": "Bad Spa",
                "businessType": "spa",
                "energyProfile": {"low": 99},
                "songCriteria": {"maxEnergy": "low", "preferredGenres": ["Lounge"]},
            },
        ]
        response = admin_client.post("/api/templates/build", json={"templates": templates})
        assert response.status_code == 200

        results = response.json()["results"]
        assert results[0]["ok"] is True
        assert results[0]["song_count"] == 2
        assert results[1]["ok"] is False
        assert results[1]["playlist_id"] is None
        assert "sum to 100" in results[1]["error"]

    def test_build_rejects_when_every_template_is_invalid(self, admin_client, songs):
        templates = [
            {"name": "No Criteria", "businessType": "gym", "energyProfile": {"high": 100}},
            {
                "name": "Short Profile",
                "businessType": "spa",
                "energyProfile": {"low": 60},
                "songCriteria": {"maxEnergy": "low", "preferredGenres": ["Lounge"]},
            },
        ]
        response = admin_client.post("/api/templates/build", json={"templates": templates})
        assert response.status_code == 400

        detail = response.json()["detail"]
        assert len(detail) == 2
        assert "No Criteria" in detail[0]
        assert "sum to 100" in detail[1]

    def test_build_rejects_non_mapping_templates(self, admin_client):
        response = admin_client.post("/api/templates/build", json={"templates": ["gym"]})
        assert response.status_code == 422

    def test_list_templates(self, admin_client, songs):
        admin_client.post("/api/templates/build")

        response = admin_client.get("/api/templates")
        assert response.status_code == 200
        data = response.json()
        assert len(data["definitions"]) == len(BUSINESS_TEMPLATES)
        assert len(data["playlists"]) == len(BUSINESS_TEMPLATES)


class TestPlaylists:
    def test_list_playlists_with_counts(self, admin_client, songs, app_components):
        admin_client.post("/api/templates/build")
        own = app_components["playlists"].create_playlist("Mine", "retail", {}, "user-1")

        response = admin_client.get("/api/playlists", params={"user_id": "user-1"})
        assert response.status_code == 200
        data = response.json()
        assert own in [p["id"] for p in data]
        gym = next(p for p in data if p["business_type"] == "gym")
        assert gym["is_template"] is True
        assert gym["created_by"] is None
        assert gym["song_count"] == 2

        anonymous = admin_client.get("/api/playlists").json()
        assert own not in [p["id"] for p in anonymous]

    def test_get_playlist_with_songs(self, admin_client, songs, app_components):
        admin_client.post("/api/templates/build")
        spa = app_components["playlists"].list_templates("spa")[0]

        response = admin_client.get(f"/api/playlists/{spa.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Spa Calm"
        assert [song["title"] for song in data["songs"]] == ["Drift"]

    def test_get_missing_playlist(self, client):
        assert client.get("/api/playlists/999").status_code == 404


class TestPlaylistEditing:
    @pytest.fixture
    def playlist_id(self, app_components):
        return app_components["playlists"].create_playlist(
            "Mine", "retail", {"medium": 100}, "user-1"
        )

    def test_create_requires_admin(self, client):
        response = client.post(
            "/api/playlists",
            json={"name": "Mine", "business_type": "retail", "created_by": "user-1"},
        )
        assert response.status_code == 403

    def test_create_playlist(self, admin_client):
        response = admin_client.post(
            "/api/playlists",
            json={
                "name": "Lunch",
                "business_type": "restaurant",
                "created_by": "user-1",
                "energy_profile": {"low": 50, "medium": 50},
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["id"] > 0
        assert data["is_template"] is False
        assert data["created_by"] == "user-1"
        assert data["energy_profile"] == {"low": 50, "medium": 50}
        assert data["song_count"] == 0

    def test_update_playlist(self, admin_client, playlist_id):
        response = admin_client.put(f"/api/playlists/{playlist_id}", json={"name": "Renamed"})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["energy_profile"] == {"medium": 100}

    def test_update_missing_playlist(self, admin_client):
        response = admin_client.put("/api/playlists/999", json={"name": "Nope"})
        assert response.status_code == 404

    def test_delete_playlist(self, admin_client, playlist_id):
        assert admin_client.delete(f"/api/playlists/{playlist_id}").status_code == 200
        assert admin_client.delete(f"/api/playlists/{playlist_id}").status_code == 404

    def test_add_song(self, admin_client, songs, playlist_id):
        response = admin_client.post(
            f"/api/playlists/{playlist_id}/songs", json={"song_id": songs["pump"]}
        )
        assert response.status_code == 201
        assert response.json()["position"] == 0

        response = admin_client.post(
            f"/api/playlists/{playlist_id}/songs", json={"song_id": songs["drift"]}
        )
        assert response.json()["position"] == 1

        data = admin_client.get(f"/api/playlists/{playlist_id}").json()
        assert [song["title"] for song in data["songs"]] == ["Pump", "Drift"]

    def test_add_song_requires_admin(self, client, songs, playlist_id):
        response = client.post(
            f"/api/playlists/{playlist_id}/songs", json={"song_id": songs["pump"]}
        )
        assert response.status_code == 403

    def test_add_song_twice_conflicts(self, admin_client, songs, playlist_id):
        url = f"/api/playlists/{playlist_id}/songs"
        assert admin_client.post(url, json={"song_id": songs["pump"]}).status_code == 201
        assert admin_client.post(url, json={"song_id": songs["pump"]}).status_code == 409

    def test_add_song_unknown_playlist_or_song(self, admin_client, songs, playlist_id):
        response = admin_client.post("/api/playlists/999/songs", json={"song_id": songs["pump"]})
        assert response.status_code == 404

        response = admin_client.post(f"/api/playlists/{playlist_id}/songs", json={"song_id": 999})
        assert response.status_code == 404

    def test_remove_song(self, admin_client, songs, playlist_id):
        url = f"/api/playlists/{playlist_id}/songs"
        admin_client.post(url, json={"song_id": songs["pump"]})

        assert admin_client.delete(f"{url}/{songs['pump']}").status_code == 200
        assert admin_client.delete(f"{url}/{songs['pump']}").status_code == 404
        assert admin_client.get(f"/api/playlists/{playlist_id}").json()["songs"] == []
