"""Project scanner -- walks the projects root and yields candidate project locations.

The tree follows a fixed convention::

    <root>/<personal|professional>/<domain or container>/<subdomain or project>

Folder names decide what is a project (see ``pde.services.name_classifier``).
A scanner instance owns its state explicitly: a scan guard that admits one scan
at a time, the list of locations from the last successful scan, and an
optional filesystem watcher.
"""

import asyncio
import logging
import os
import threading
import time
from datetime import UTC, datetime
from pathlib import Path

from pde.models import DiscoveredLocation, ProjectCategory, ScanError, ScannerStats, ScanResult
from pde.services.directory_prober import is_project_directory
from pde.services.fs_watcher import EventCallback, FileSystemWatcher
from pde.services.name_classifier import is_domain_like, is_subdomain_like, looks_like_project_folder

logger = logging.getLogger(__name__)

_CATEGORIES = {category.value: category for category in ProjectCategory}


class ScanInProgressError(Exception):
    """Raised when a scan is requested while another one is still running.

    Attributes:
        projects_path: Root of the scan already in flight.
    """

    def __init__(self, projects_path: Path) -> None:
        self.projects_path = projects_path
        super().__init__(f"Scan already in progress for {projects_path}")


class ProjectsRootNotFoundError(Exception):
    """The configured projects root is missing or not a directory."""

    def __init__(self, projects_path: Path) -> None:
        self.projects_path = projects_path
        super().__init__(f"Projects directory not found: {projects_path}")


class ProjectScanner:
    """Discovers project directories under a projects root.

    Attributes:
        projects_path: Absolute path of the projects root.
        watcher: Filesystem watcher bound to the same root.
    """

    def __init__(self, projects_path: Path, watch_queue_size: int = 1000) -> None:
        self.projects_path = Path(projects_path).expanduser().resolve()
        self.watcher = FileSystemWatcher(self.projects_path, queue_size=watch_queue_size)
        self._scan_guard = threading.Lock()
        self._last_discovered: list[DiscoveredLocation] = []
        self._last_scan_time: datetime | None = None

    @property
    def is_scanning(self) -> bool:
        return self._scan_guard.locked()

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan_projects(self) -> ScanResult:
        """Scan the projects root and remember the discovered locations.

        Traversal errors never escape: a missing root produces an unsuccessful
        result, and unreadable folders are reported in ``errors`` while the
        rest of the tree is still scanned.

        Returns:
            A ``ScanResult`` with ``projects_found`` and the elapsed duration.

        Raises:
            ScanInProgressError: If another scan on this instance is running.
        """
        # Atomic check-and-set: a second caller fails instead of queueing.
        if not self._scan_guard.acquire(blocking=False):
            raise ScanInProgressError(self.projects_path)

        started = time.monotonic()
        result = ScanResult(timestamp=datetime.now(tz=UTC))
        try:
            logger.info("Starting scan of %s", self.projects_path)
            locations = await asyncio.to_thread(self._discover_projects, result.errors)

            result.projects_found = len(locations)
            self._last_discovered = locations
            self._last_scan_time = datetime.now(tz=UTC)
            result.success = True
            logger.info("Found %d potential project(s)", len(locations))
        except Exception as exc:
            logger.error("Scan of %s failed: %s", self.projects_path, exc)
            result.errors.append(ScanError(path=str(self.projects_path), error=str(exc)))
        finally:
            result.scan_duration = int((time.monotonic() - started) * 1000)
            self._scan_guard.release()
            logger.info("Scan completed in %dms", result.scan_duration)

        return result

    def get_discovered_projects(self) -> list[DiscoveredLocation]:
        """Return the locations found by the last successful scan.

        Returns:
            A copy of the last scan's list; empty before the first scan.
        """
        return list(self._last_discovered)

    def get_stats(self) -> ScannerStats:
        """Return a snapshot of the scanner's state."""
        return ScannerStats(
            is_scanning=self.is_scanning,
            is_watching=self.watcher.is_active,
            last_scan_time=self._last_scan_time,
            projects_path=str(self.projects_path),
        )

    def _discover_projects(self, errors: list[ScanError]) -> list[DiscoveredLocation]:
        """Blocking traversal of the two-level convention beneath the root.

        Args:
            errors: List that per-directory failures are appended to.

        Returns:
            Every discovered location, in traversal order.

        Raises:
            ProjectsRootNotFoundError: If the root is missing or not a directory.
        """
        if not self.projects_path.is_dir():
            raise ProjectsRootNotFoundError(self.projects_path)

        locations: list[DiscoveredLocation] = []

        for category_dir in _child_dirs(self.projects_path, errors):
            category = _CATEGORIES.get(category_dir.name.lower())
            if category is None:
                logger.warning("Skipping unknown category: %s", category_dir.name)
                continue

            logger.info("Scanning category: %s", category.value)
            for item in _child_dirs(category_dir, errors):
                if is_domain_like(item.name):
                    locations.extend(self._scan_domain(item, category, errors))
                elif looks_like_project_folder(item.name):
                    logger.debug("Skipping project-like folder: %s (not a domain)", item.name)
                else:
                    locations.extend(self._scan_container(item, category, errors))

        return locations

    def _scan_domain(
        self, domain_dir: Path, category: ProjectCategory, errors: list[ScanError]
    ) -> list[DiscoveredLocation]:
        # A domain folder is always a project, even when empty (proposed).
        logger.info("Found domain project: %s", domain_dir.name)
        found = [DiscoveredLocation(path=str(domain_dir), category=category, domain=domain_dir.name)]

        for child in _child_dirs(domain_dir, errors):
            if is_subdomain_like(child.name):
                logger.info("Found subdomain project: %s/%s", domain_dir.name, child.name)
                found.append(
                    DiscoveredLocation(
                        path=str(child),
                        category=category,
                        domain=domain_dir.name,
                        subdomain=child.name,
                    )
                )
            else:
                logger.debug("Skipping non-subdomain folder: %s/%s", domain_dir.name, child.name)
        return found

    def _scan_container(
        self, container: Path, category: ProjectCategory, errors: list[ScanError]
    ) -> list[DiscoveredLocation]:
        logger.debug("Scanning non-domain folder: %s", container.name)
        return [
            DiscoveredLocation(
                path=str(child),
                category=category,
                domain=container.name,
                subdomain=child.name,
            )
            for child in _child_dirs(container, errors)
            if is_project_directory(child)
        ]

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def on_event(self, callback: EventCallback) -> None:
        """Register *callback* for filesystem events under the root."""
        self.watcher.subscribe(callback)

    def remove_event_callback(self, callback: EventCallback) -> None:
        """Unregister a callback previously passed to :meth:`on_event`."""
        self.watcher.unsubscribe(callback)

    async def start_watching(self) -> None:
        """Start the filesystem watcher; a no-op with a warning when already active."""
        await self.watcher.start()

    def stop_watching(self) -> None:
        """Stop the filesystem watcher if it is running."""
        self.watcher.stop()


def _child_dirs(path: Path, errors: list[ScanError]) -> list[Path]:
    """List the immediate sub-directories of *path*, sorted by name.

    An unreadable directory is logged, recorded in *errors* and treated as empty.
    """
    try:
        with os.scandir(path) as entries:
            children = [Path(entry.path) for entry in entries if _entry_is_dir(entry)]
    except OSError as exc:
        logger.warning("Could not scan directory %s: %s", path, exc)
        errors.append(ScanError(path=str(path), error=str(exc)))
        return []
    return sorted(children, key=lambda child: child.name)


def _entry_is_dir(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False
