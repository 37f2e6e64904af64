"""Metadata store -- JSON-backed registry of project records.

The whole ``PDEMetadata`` document is held in memory and rewritten on every
mutation.  When auto-backup is on, the previous file is copied to a timestamped
``<metadata>.backup.<stamp>`` sibling before each save, and only the newest
``max_backups`` copies are kept.
"""

import json
import logging
import shutil
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from pde.models import (
    BackupInfo,
    MetadataSummary,
    PDEMetadata,
    ProjectCategory,
    ProjectInfo,
    ProjectStatus,
    ProjectType,
    ScanResult,
)

logger = logging.getLogger(__name__)


class MetadataError(Exception):
    """Raised when the metadata file cannot be read, parsed, or restored.

    Attributes:
        path: File the failure relates to.
    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(message)


def _normalize(path: str) -> str:
    return path.replace("\\", "/").rstrip("/")


class MetadataStore:
    """Durable map from project id to ``ProjectInfo``.

    Attributes:
        metadata_path: JSON file holding the document.
        max_backups: Number of timestamped backups to keep.
        auto_backup: Whether :meth:`save` backs up the previous file first.
    """

    def __init__(self, metadata_path: Path, max_backups: int = 5, auto_backup: bool = True) -> None:
        self.metadata_path = Path(metadata_path)
        self.max_backups = max_backups
        self.auto_backup = auto_backup
        self._metadata: PDEMetadata | None = None

    @property
    def is_loaded(self) -> bool:
        return self._metadata is not None

    @property
    def metadata(self) -> PDEMetadata:
        """The in-memory document, initialising it on first access."""
        if self._metadata is None:
            self.initialize()
        assert self._metadata is not None
        return self._metadata

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def initialize(self, projects_path: str | None = None) -> None:
        """Load the metadata file, or create and save a fresh one.

        Args:
            projects_path: Projects root recorded in a newly created document.
        """
        try:
            self.load()
            logger.info("Loaded existing metadata from %s", self.metadata_path)
        except MetadataError as exc:
            logger.info("Creating new metadata file at %s (%s)", self.metadata_path, exc)
            self._metadata = PDEMetadata()
            if projects_path:
                self._metadata.config.projects_path = projects_path
            self.save()

    def load(self) -> PDEMetadata:
        """Read and validate the metadata file.

        Returns:
            The loaded document.

        Raises:
            MetadataError: If the file is missing, unreadable, or invalid.
        """
        try:
            content = self.metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise MetadataError(self.metadata_path, "Metadata file not found") from exc
        except OSError as exc:
            raise MetadataError(self.metadata_path, f"Failed to load metadata: {exc}") from exc

        self._metadata = self._parse(content)
        return self._metadata

    def save(self) -> None:
        """Write the document to disk, backing up the previous file when enabled."""
        metadata = self.metadata
        if self.auto_backup and self.metadata_path.is_file():
            self.create_backup()

        metadata.last_update = datetime.now(tz=UTC)
        metadata.total_projects = len(metadata.projects)
        self.metadata_path.parent.mkdir(parents=True, exist_ok=True)
        self.metadata_path.write_text(self.export_metadata(), encoding="utf-8")
        logger.debug("Saved metadata to %s", self.metadata_path)

    # ------------------------------------------------------------------
    # Project records
    # ------------------------------------------------------------------

    def add_or_update_project(self, project: ProjectInfo) -> bool:
        """Insert *project*, or merge it over the existing record with the same id.

        Fields the new record leaves unset (``None``) keep their stored value,
        so hand-edited data such as ``notes`` survives a rescan.

        Args:
            project: Record to store.

        Returns:
            ``True`` if the record was new, ``False`` if it replaced one.
        """
        projects = self.metadata.projects
        existing = projects.get(project.id)
        now = datetime.now(tz=UTC)

        if existing is None:
            stored = project.model_copy(update={"last_scanned": now})
        else:
            merged = existing.model_dump()
            merged.update(project.model_dump(exclude_none=True))
            if not project.tags:
                merged["tags"] = existing.tags
            # A clean rescan clears the previous error.
            merged["last_error"] = project.last_error.model_dump() if project.last_error else None
            merged["last_scanned"] = now
            stored = ProjectInfo.model_validate(merged)

        projects[project.id] = stored
        self._recalculate_stats()
        self.save()
        logger.info("%s project: %s", "Added" if existing is None else "Updated", project.name)
        return existing is None

    def remove_project(self, project_id: str) -> bool:
        """Delete the record with *project_id*.

        Returns:
            ``True`` if a record was removed, ``False`` if none matched.
        """
        project = self.metadata.projects.pop(project_id, None)
        if project is None:
            return False
        self._recalculate_stats()
        self.save()
        logger.info("Removed project: %s", project.name)
        return True

    def get_all_projects(self) -> list[ProjectInfo]:
        return list(self.metadata.projects.values())

    def get_project(self, project_id: str) -> ProjectInfo | None:
        return self.metadata.projects.get(project_id)

    def get_project_by_path(self, project_path: str) -> ProjectInfo | None:
        """Find the record whose path matches *project_path* (slash-normalised)."""
        wanted = _normalize(project_path)
        for project in self.metadata.projects.values():
            if _normalize(project.path) == wanted:
                return project
        return None

    def find_projects(
        self,
        category: ProjectCategory | None = None,
        project_type: ProjectType | None = None,
        status: ProjectStatus | None = None,
        domain: str | None = None,
        search: str | None = None,
    ) -> list[ProjectInfo]:
        """Filter the stored records.

        Every given criterion must match.  ``search`` is a case-insensitive
        substring match over name, display name, domain, subdomain, notes and tags.

        Returns:
            Matching records in storage order.
        """
        matches = []
        needle = search.lower() if search else None
        for project in self.metadata.projects.values():
            if category and project.category != category:
                continue
            if project_type and project.type != project_type:
                continue
            if status and project.status != status:
                continue
            if domain and project.domain != domain:
                continue
            if needle:
                haystack = " ".join(
                    value
                    for value in (
                        project.name,
                        project.display_name,
                        project.domain,
                        project.subdomain,
                        project.notes,
                        *project.tags,
                    )
                    if value
                ).lower()
                if needle not in haystack:
                    continue
            matches.append(project)
        return matches

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def update_scan_results(self, result: ScanResult) -> None:
        """Fold one scan's duration into the running statistics and save."""
        stats = self.metadata.stats
        stats.total_scans += 1
        stats.last_scan_duration = result.scan_duration
        total = stats.average_scan_duration * (stats.total_scans - 1) + result.scan_duration
        stats.average_scan_duration = round(total / stats.total_scans)
        self.save()

    def get_stats(self) -> MetadataSummary | None:
        """Return aggregate statistics, or ``None`` before the store is loaded."""
        if self._metadata is None:
            return None
        return MetadataSummary(
            **self._metadata.stats.model_dump(),
            total_projects=len(self._metadata.projects),
            last_update=self._metadata.last_update,
        )

    def _recalculate_stats(self) -> None:
        metadata = self.metadata
        by_type: dict[str, int] = {}
        by_category: dict[str, int] = {}
        by_status: dict[str, int] = {}
        for project in metadata.projects.values():
            by_type[project.type.value] = by_type.get(project.type.value, 0) + 1
            by_category[project.category.value] = by_category.get(project.category.value, 0) + 1
            by_status[project.status.value] = by_status.get(project.status.value, 0) + 1
        metadata.stats.projects_by_type = by_type
        metadata.stats.projects_by_category = by_category
        metadata.stats.projects_by_status = by_status
        metadata.total_projects = len(metadata.projects)

    # ------------------------------------------------------------------
    # Import / export / backup
    # ------------------------------------------------------------------

    def export_metadata(self) -> str:
        """Serialise the document as pretty-printed JSON."""
        return json.dumps(self.metadata.model_dump(mode="json"), indent=2)

    def import_metadata(self, json_data: str, merge: bool = False) -> None:
        """Replace (or merge into) the stored document from a JSON string.

        Args:
            json_data: A serialised ``PDEMetadata`` document.
            merge: Keep existing records and overlay the imported ones.

        Raises:
            MetadataError: If *json_data* is not a valid document.
        """
        imported = self._parse(json_data)
        if merge and self._metadata is not None:
            self._metadata.projects.update(imported.projects)
        else:
            self._metadata = imported
        self._recalculate_stats()
        self.save()
        logger.info("Imported metadata (%d project(s))", len(self.metadata.projects))

    def create_backup(self) -> Path:
        """Copy the current metadata file to a timestamped backup.

        Returns:
            Path of the backup file.
        """
        metadata = self.metadata
        stamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S%fZ")
        backup_path = self.metadata_path.with_name(f"{self.metadata_path.name}.backup.{stamp}")
        shutil.copy2(self.metadata_path, backup_path)

        metadata.backup = BackupInfo(
            last_backup=datetime.now(tz=UTC),
            backup_count=(metadata.backup.backup_count if metadata.backup else 0) + 1,
            auto_backup_enabled=self.auto_backup,
        )
        self._cleanup_old_backups()
        logger.debug("Created backup %s", backup_path)
        return backup_path

    def list_backups(self) -> list[Path]:
        """Backup files, newest first."""
        pattern = f"{self.metadata_path.name}.backup.*"
        return sorted(self.metadata_path.parent.glob(pattern), key=lambda p: p.name, reverse=True)

    def restore_from_backup(self, backup_path: Path) -> None:
        """Replace the metadata file with *backup_path* and reload it.

        Raises:
            MetadataError: If the backup cannot be copied or is invalid.
        """
        try:
            shutil.copy2(backup_path, self.metadata_path)
        except OSError as exc:
            raise MetadataError(Path(backup_path), f"Failed to restore from backup: {exc}") from exc
        self.load()
        logger.info("Restored metadata from backup %s", backup_path)

    def _cleanup_old_backups(self) -> None:
        for stale in self.list_backups()[self.max_backups :]:
            try:
                stale.unlink()
            except OSError as exc:
                logger.warning("Could not remove old backup %s: %s", stale, exc)

    def _parse(self, content: str) -> PDEMetadata:
        try:
            return PDEMetadata.model_validate_json(content)
        except ValidationError as exc:
            raise MetadataError(self.metadata_path, f"Invalid metadata format: {exc}") from exc
