"""Directory prober -- inspects the immediate children of a directory for project markers.

Both entry points list the directory exactly once and never raise for an
unreadable directory: the failure is logged as a warning and treated as "no
markers found".
"""

import logging
import os
from pathlib import Path

from pde.models import ProjectIndicators

logger = logging.getLogger(__name__)

# Lower-cased child names that make a directory count as a project.
PROJECT_MARKERS: frozenset[str] = frozenset(
    {"package.json", "deno.json", "index.html", "src", "public", ".git", "readme.md"}
)

_FILE_INDICATORS: dict[str, str] = {
    "package.json": "package_json",
    "deno.json": "deno_json",
    "deno.jsonc": "deno_json",
    "index.html": "index_html",
    "readme.md": "readme",
    "readme.txt": "readme",
}

_FOLDER_INDICATORS: dict[str, str] = {
    "node_modules": "node_modules",
    "src": "src_folder",
    "public": "public_folder",
    "build": "build_folder",
    "dist": "build_folder",
    "out": "build_folder",
    ".git": "git_repo",
}


def is_project_directory(path: str | Path) -> bool:
    """Return ``True`` as soon as any child of *path* is a project marker.

    Args:
        path: Directory to inspect.

    Returns:
        ``True`` if a marker file or folder is present, ``False`` otherwise or
        when the directory cannot be listed.
    """
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.name.lower() in PROJECT_MARKERS:
                    return True
    except OSError as exc:
        logger.warning("Could not scan directory %s: %s", path, exc)
    return False


def gather_indicators(path: str | Path) -> ProjectIndicators:
    """Collect the full indicator set for *path* from a single listing.

    Names are compared case-insensitively; file indicators only match files
    and folder indicators only match directories.

    Args:
        path: Directory to inspect.

    Returns:
        A ``ProjectIndicators`` record.  All flags are ``False`` when the
        directory cannot be listed.
    """
    indicators = ProjectIndicators()
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                name = entry.name.lower()
                if name in _FILE_INDICATORS and _is_file(entry):
                    setattr(indicators, _FILE_INDICATORS[name], True)
                elif name in _FOLDER_INDICATORS and _is_dir(entry):
                    setattr(indicators, _FOLDER_INDICATORS[name], True)
    except OSError as exc:
        logger.warning("Could not read directory %s: %s", path, exc)
    return indicators


def _is_file(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False


def _is_dir(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False
