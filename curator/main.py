"""
Main entry point for curator.

Initializes all components and runs one of the directives:
create-schema, create-templates or serve.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import uvicorn

from .builder import TemplatePlaylistBuilder
from .catalog import CatalogManager
from .config_manager import ConfigManager
from .database import Database
from .matcher import SongMatcher
from .models import BuildResult
from .playlists import PlaylistManager
from .templates import load_templates
from .web.server import create_app

logger = logging.getLogger(__name__)


class CuratorServer:
    """Wires the components together around one database."""

    def __init__(self, db_path: Optional[str] = None):
        logger.info("Initializing curator...")

        self.database = Database(db_path)
        self.config_manager = ConfigManager(self.database)

        self.catalog = CatalogManager(self.database)
        self.playlist_manager = PlaylistManager(self.database)
        self.matcher = SongMatcher(self.database, rng=self.config_manager.make_rng())
        self.builder = TemplatePlaylistBuilder(
            self.database,
            self.matcher,
            song_limit=self.config_manager.get_int("template_song_limit", 50),
            continue_on_error=self.config_manager.get_bool("continue_on_template_error", True),
        )

        logger.info("curator initialized")

    def song_directory(self) -> str:
        configured = self.config_manager.get("song_directory")
        if configured:
            return os.path.expanduser(configured)
        return str(Path.home() / ".curator" / "songs")

    def build_templates(self) -> List[BuildResult]:
        return self.builder.build_all_templates(load_templates())

    def run(self, host: str = "0.0.0.0", port: int = 8000):
        """Start the web server."""
        web_app = create_app(
            self.catalog,
            self.playlist_manager,
            self.builder,
            self.config_manager,
            song_directory=self.song_directory(),
        )
        logger.info("=" * 60)
        logger.info("curator is running!")
        logger.info("API: http://%s:%s/api", host, port)
        logger.info("=" * 60)
        uvicorn.run(web_app, host=host, port=port, log_level="info")

    def stop(self):
        if self.database:
            self.database.close()
        logger.info("curator stopped")


def print_results(results: List[BuildResult]) -> None:
    for result in results:
        if result.ok:
            print(
                f"  OK    {result.template_name} ({result.business_type}): "
                f"playlist {result.playlist.id}, {result.playlist.song_count} songs"
            )
        else:
            print(f"  FAIL  {result.template_name}: {result.error}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="curator - music curation for businesses")
    parser.add_argument(
        "--db",
        default=os.environ.get("CURATOR_DB_PATH"),
        help="Path to the SQLite database (default: $CURATOR_DB_PATH or ~/.curator/curator.db)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="directive", required=True)
    subparsers.add_parser("create-schema", help="Create the database schema")
    subparsers.add_parser("create-templates", help="Build all business template playlists")
    serve = subparsers.add_parser("serve", help="Run the web server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    server = CuratorServer(args.db)
    try:
        if args.directive == "create-schema":
            print(f"Schema ready at {server.database.db_path}")
            return 0

        if args.directive == "create-templates":
            results = server.build_templates()
            print_results(results)
            return 0 if all(result.ok for result in results) else 1

        server.run(host=args.host, port=args.port)
        return 0
    except KeyboardInterrupt:
        return 0
    finally:
        server.stop()


if __name__ == "__main__":
    sys.exit(main())
