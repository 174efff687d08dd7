"""
FastAPI web server for curator.

Provides the REST API used by the browser client: catalog browsing and
editing, playlist reads and editing, and template playlist builds.
"""

import logging
import sqlite3
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from ..builder import TemplatePlaylistBuilder
from ..catalog import CatalogManager
from ..config_manager import ConfigManager
from ..exceptions import ValidationError
from ..models import Playlist, Song
from ..playlists import PlaylistManager
from ..templates import BUSINESS_TEMPLATES

logger = logging.getLogger(__name__)


# Request models
class AddSongRequest(BaseModel):
    title: str
    genre: str
    energy_level: str
    duration_seconds: Optional[int] = None
    file_location: Optional[str] = None
    is_active: bool = True


class UpdateSongRequest(BaseModel):
    """Request model for partial song updates. Omitted fields stay unchanged."""

    title: Optional[str] = None
    genre: Optional[str] = None
    energy_level: Optional[str] = None
    is_active: Optional[bool] = None
    duration_seconds: Optional[int] = None


class CreatePlaylistRequest(BaseModel):
    name: str
    business_type: str
    created_by: str
    energy_profile: Dict[str, int] = {}


class UpdatePlaylistRequest(BaseModel):
    """Request model for playlist updates. Omitted fields stay unchanged."""

    name: Optional[str] = None
    energy_profile: Optional[Dict[str, int]] = None


class AddPlaylistSongRequest(BaseModel):
    song_id: int
    position: Optional[int] = None


class BuildTemplatesRequest(BaseModel):
    """Optional custom definitions; the built-in business templates are used otherwise."""

    templates: Optional[List[Dict[str, Any]]] = None


class AdminAuthRequest(BaseModel):
    pin: str


# Dependency to get components
def get_catalog(request: Request) -> CatalogManager:
    """Get CatalogManager from app state."""
    return request.app.state.catalog


def get_playlist_manager(request: Request) -> PlaylistManager:
    """Get PlaylistManager from app state."""
    return request.app.state.playlist_manager


def get_builder(request: Request) -> TemplatePlaylistBuilder:
    """Get TemplatePlaylistBuilder from app state."""
    return request.app.state.builder


def get_config_manager(request: Request) -> ConfigManager:
    """Get ConfigManager from app state."""
    return request.app.state.config_manager


def require_admin(request: Request) -> bool:
    """Reject the request unless the session is authenticated as admin."""
    if not request.session.get("admin", False):
        raise HTTPException(status_code=403, detail="Admin access required")
    return True


def song_to_dict(song: Song) -> Dict[str, Any]:
    song_dict = asdict(song)
    song_dict["energy_level"] = song.energy_level.value
    song_dict["file_url"] = CatalogManager.file_url(song)
    return song_dict


def playlist_to_dict(playlist: Playlist) -> Dict[str, Any]:
    return asdict(playlist)


def create_app(
    catalog: CatalogManager,
    playlist_manager: PlaylistManager,
    builder: TemplatePlaylistBuilder,
    config_manager: ConfigManager,
    song_directory: Optional[str] = None,
    session_secret: str = "curator-secret-key-change-in-production",
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        catalog: CatalogManager instance
        playlist_manager: PlaylistManager instance
        builder: TemplatePlaylistBuilder instance
        config_manager: ConfigManager instance
        song_directory: Directory served under /songs (optional)
        session_secret: Secret used to sign session cookies

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="curator", version="1.0.0")

    app.add_middleware(SessionMiddleware, secret_key=session_secret)

    app.state.catalog = catalog
    app.state.playlist_manager = playlist_manager
    app.state.builder = builder
    app.state.config_manager = config_manager

    @app.get("/health")
    async def health():
        return {"status": "OK"}

    # Auth endpoints
    @app.post("/api/auth/admin")
    async def admin_login(
        request_data: AdminAuthRequest,
        request: Request,
        config: ConfigManager = Depends(get_config_manager),
    ):
        """Authenticate the session as admin with the configured PIN."""
        if request_data.pin != config.get("admin_pin"):
            raise HTTPException(status_code=403, detail="Invalid PIN")
        request.session["admin"] = True
        return {"status": "authenticated"}

    @app.post("/api/auth/logout")
    async def admin_logout(request: Request):
        request.session.pop("admin", None)
        return {"status": "logged_out"}

    # Song endpoints
    @app.get("/api/songs")
    async def list_songs(catalog_mgr: CatalogManager = Depends(get_catalog)):
        """Get all songs ordered by title."""
        return [song_to_dict(song) for song in catalog_mgr.list_songs()]

    @app.get("/api/songs/genres")
    async def list_genres(catalog_mgr: CatalogManager = Depends(get_catalog)):
        return {"genres": catalog_mgr.list_genres()}

    @app.get("/api/songs/energy/{level}")
    async def songs_by_energy(level: str, catalog_mgr: CatalogManager = Depends(get_catalog)):
        """Get active songs at one energy level."""
        try:
            songs = catalog_mgr.list_songs_by_energy(level)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return [song_to_dict(song) for song in songs]

    @app.post("/api/songs", status_code=201)
    async def add_song(
        request_data: AddSongRequest,
        catalog_mgr: CatalogManager = Depends(get_catalog),
        _admin: bool = Depends(require_admin),
    ):
        """Add a song to the catalog."""
        try:
            song_id = catalog_mgr.add_song(**request_data.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return song_to_dict(catalog_mgr.get_song(song_id))

    @app.put("/api/songs/{song_id}")
    async def update_song(
        song_id: int,
        request_data: UpdateSongRequest,
        catalog_mgr: CatalogManager = Depends(get_catalog),
        _admin: bool = Depends(require_admin),
    ):
        """Update song information."""
        try:
            song = catalog_mgr.update_song(song_id, **request_data.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if song is None:
            raise HTTPException(status_code=404, detail="Song not found")
        return song_to_dict(song)

    @app.delete("/api/songs/{song_id}")
    async def delete_song(
        song_id: int,
        catalog_mgr: CatalogManager = Depends(get_catalog),
        _admin: bool = Depends(require_admin),
    ):
        if not catalog_mgr.delete_song(song_id):
            raise HTTPException(status_code=404, detail="Song not found")
        return {"status": "deleted"}

    # Playlist endpoints
    @app.get("/api/playlists")
    async def list_playlists(
        user_id: Optional[str] = None,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
    ):
        """Get template playlists plus the user's own playlists, with song counts."""
        return [playlist_to_dict(p) for p in playlist_mgr.list_playlists(user_id)]

    @app.get("/api/playlists/{playlist_id}")
    async def get_playlist(
        playlist_id: int,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
    ):
        """Get a playlist with its songs in playback order."""
        detail = playlist_mgr.get_playlist_detail(playlist_id)
        if detail is None:
            raise HTTPException(status_code=404, detail="Playlist not found")
        result = playlist_to_dict(detail.playlist)
        result["songs"] = [song_to_dict(song) for song in detail.songs]
        return result

    @app.post("/api/playlists", status_code=201)
    async def create_playlist(
        request_data: CreatePlaylistRequest,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
        _admin: bool = Depends(require_admin),
    ):
        """Create a user playlist."""
        playlist_id = playlist_mgr.create_playlist(
            name=request_data.name,
            business_type=request_data.business_type,
            energy_profile=request_data.energy_profile,
            created_by=request_data.created_by,
        )
        return playlist_to_dict(playlist_mgr.get_playlist(playlist_id))

    @app.put("/api/playlists/{playlist_id}")
    async def update_playlist(
        playlist_id: int,
        request_data: UpdatePlaylistRequest,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
        _admin: bool = Depends(require_admin),
    ):
        playlist = playlist_mgr.update_playlist(
            playlist_id,
            name=request_data.name,
            energy_profile=request_data.energy_profile,
        )
        if playlist is None:
            raise HTTPException(status_code=404, detail="Playlist not found")
        return playlist_to_dict(playlist)

    @app.delete("/api/playlists/{playlist_id}")
    async def delete_playlist(
        playlist_id: int,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
        _admin: bool = Depends(require_admin),
    ):
        if not playlist_mgr.delete_playlist(playlist_id):
            raise HTTPException(status_code=404, detail="Playlist not found")
        return {"status": "deleted"}

    @app.post("/api/playlists/{playlist_id}/songs", status_code=201)
    async def add_playlist_song(
        playlist_id: int,
        request_data: AddPlaylistSongRequest,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
        catalog_mgr: CatalogManager = Depends(get_catalog),
        _admin: bool = Depends(require_admin),
    ):
        """Add a song to a playlist, appended at the end unless a position is given."""
        if playlist_mgr.get_playlist(playlist_id) is None:
            raise HTTPException(status_code=404, detail="Playlist not found")
        if catalog_mgr.get_song(request_data.song_id) is None:
            raise HTTPException(status_code=404, detail="Song not found")
        try:
            position = playlist_mgr.add_song(
                playlist_id, request_data.song_id, position=request_data.position
            )
        except sqlite3.IntegrityError:
            raise HTTPException(status_code=409, detail="Song already in playlist")
        return {"playlist_id": playlist_id, "song_id": request_data.song_id, "position": position}

    @app.delete("/api/playlists/{playlist_id}/songs/{song_id}")
    async def remove_playlist_song(
        playlist_id: int,
        song_id: int,
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
        _admin: bool = Depends(require_admin),
    ):
        if not playlist_mgr.remove_song(playlist_id, song_id):
            raise HTTPException(status_code=404, detail="Song not in playlist")
        return {"status": "removed"}

    # Template endpoints
    @app.get("/api/templates")
    async def list_templates(
        playlist_mgr: PlaylistManager = Depends(get_playlist_manager),
    ):
        """Get the built-in template definitions and the currently built template playlists."""
        return {
            "definitions": BUSINESS_TEMPLATES,
            "playlists": [playlist_to_dict(p) for p in playlist_mgr.list_templates()],
        }

    @app.post("/api/templates/build")
    async def build_templates(
        request_data: Optional[BuildTemplatesRequest] = None,
        template_builder: TemplatePlaylistBuilder = Depends(get_builder),
        _admin: bool = Depends(require_admin),
    ):
        """
        Build (or rebuild) template playlists and report the outcome of each.

        Responds 400 when custom definitions were supplied and none of them
        passed validation; otherwise 200 with one result per template.
        """
        definitions = BUSINESS_TEMPLATES
        custom = request_data is not None and request_data.templates is not None
        if custom:
            definitions = request_data.templates

        try:
            results = template_builder.build_all_templates(definitions)
        except Exception as e:
            logger.error("Error building templates: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

        rejected = [r for r in results if isinstance(r.error, ValidationError)]
        if custom and definitions and len(rejected) == len(definitions):
            raise HTTPException(status_code=400, detail=[str(r.error) for r in rejected])

        return {
            "results": [
                {
                    "template_name": result.template_name,
                    "business_type": result.business_type,
                    "ok": result.ok,
                    "playlist_id": result.playlist.id if result.playlist else None,
                    "song_count": result.playlist.song_count if result.playlist else 0,
                    "error": str(result.error) if result.error else None,
                }
                for result in results
            ]
        }

    # Config endpoints
    @app.get("/api/config")
    async def get_config(
        config: ConfigManager = Depends(get_config_manager),
        _admin: bool = Depends(require_admin),
    ):
        return config.get_full_config()

    if song_directory:
        app.mount("/songs", StaticFiles(directory=song_directory, check_dir=False), name="songs")

    return app
