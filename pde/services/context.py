"""Shared service objects handed to every router by the app factory."""

from dataclasses import dataclass

from pde.config import PDESettings
from pde.services.detector import ProjectDetector
from pde.services.metadata_store import MetadataStore
from pde.services.scanner import ProjectScanner


@dataclass
class PDEServices:
    """Application-wide singletons.

    Attributes:
        settings: Loaded configuration.
        scanner: Scanner bound to ``settings.projects_path``.
        detector: Detector using the same projects root.
        store: Metadata store at ``settings.metadata_path``.
    """

    settings: PDESettings
    scanner: ProjectScanner
    detector: ProjectDetector
    store: MetadataStore

    @classmethod
    def from_settings(cls, settings: PDESettings) -> "PDEServices":
        scanner = ProjectScanner(settings.projects_path, watch_queue_size=settings.watch_queue_size)
        return cls(
            settings=settings,
            scanner=scanner,
            detector=ProjectDetector(projects_root=scanner.projects_path),
            store=MetadataStore(
                settings.metadata_path,
                max_backups=settings.max_backups,
                auto_backup=settings.auto_backup,
            ),
        )
