"""Application configuration backed by Pydantic Settings.

All values can be overridden via environment variables prefixed with ``PDE_``
(e.g. ``PDE_PROJECTS_PATH=/srv/projects``) or via a ``.env`` file in the working
directory.
"""

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_MAX_BACKUPS = 5


class PDESettings(BaseSettings):
    """Central configuration for the PDE dashboard service.

    Values are loaded from environment variables (``PDE_`` prefix), a ``.env``
    file, or fall back to sensible defaults.

    Attributes:
        projects_path: Root directory holding the ``personal``/``professional`` trees.
        metadata_path: JSON file the metadata store reads and writes.
        host: Network interface to bind the HTTP server to.
        port: TCP port for the HTTP server.
        watch_for_changes: Whether to start the filesystem watcher on startup.
        scan_on_startup: Whether to run a full scan when the server starts.
        max_backups: Number of timestamped metadata backups to keep.
        auto_backup: Whether every save backs up the previous metadata file.
        watch_queue_size: Capacity of the filesystem event queue.
        gui_dir: Directory holding the pre-built web UI, mounted when present.
    """

    model_config = {"env_prefix": "PDE_", "env_file": ".env", "extra": "ignore"}

    projects_path: Path = Path("./projects")
    metadata_path: Path = Path("./metadata/pde-metadata.json")
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    watch_for_changes: bool = True
    scan_on_startup: bool = True
    max_backups: int = DEFAULT_MAX_BACKUPS
    auto_backup: bool = True
    watch_queue_size: int = 1000
    gui_dir: Path = Path("./gui/dist")

    @field_validator("port")
    @classmethod
    def _fallback_port(cls, value: int) -> int:
        """Replace an out-of-range port with the default, logging a warning."""
        if value < 1000 or value > 65535:
            logger.warning("Port %d should be between 1000-65535, using default %d", value, DEFAULT_PORT)
            return DEFAULT_PORT
        return value

    @field_validator("max_backups")
    @classmethod
    def _fallback_max_backups(cls, value: int) -> int:
        """Replace an out-of-range backup count with the default, logging a warning."""
        if value < 0 or value > 100:
            logger.warning("max_backups should be 0-100, using default %d", DEFAULT_MAX_BACKUPS)
            return DEFAULT_MAX_BACKUPS
        return value

    @field_validator("watch_queue_size")
    @classmethod
    def _positive_queue_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("watch_queue_size must be at least 1")
        return value
