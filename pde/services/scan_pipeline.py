"""Scan pipeline -- runs scanner, detector, and metadata store in sequence.

``sync_projects`` is what ``POST /api/scan`` and the startup scan call: discover
locations, classify them concurrently, then upsert the records one by one so
the JSON file is never written from two places at once.
"""

import asyncio
import logging
from pathlib import Path

from pde.models import DiscoveredLocation, ProjectCategory, ProjectDetection, ProjectInfo, ScanError, ScanResult
from pde.services.detector import ProjectDetector
from pde.services.metadata_store import MetadataStore
from pde.services.scanner import ProjectScanner

logger = logging.getLogger(__name__)


def resolve_project_id(
    category: ProjectCategory,
    name: str,
    domain: str | None = None,
    subdomain: str | None = None,
) -> str:
    """Return the stable id for a project.

    Precedence: subdomain name, then domain name, then ``<category>-<name>``.
    """
    if subdomain:
        return subdomain
    if domain:
        return domain
    return f"{category.value}-{name}"


def build_project_info(
    detection: ProjectDetection,
    location: DiscoveredLocation | None = None,
    projects_root: Path | None = None,
) -> ProjectInfo:
    """Turn a detection into a storable record.

    Labels assigned by the scanner take precedence over the ones the detector
    derived from the path.

    Args:
        detection: Detector output for the directory.
        location: Scanner output for the same directory, when available.
        projects_root: Root used to compute ``relative_path``.

    Returns:
        A ``ProjectInfo`` with ``id`` and ``relative_path`` resolved.
    """
    fields = detection.model_dump()
    if location is not None:
        fields.update(
            path=location.path,
            category=location.category,
            domain=location.domain,
            subdomain=location.subdomain,
        )
    if not fields["name"]:
        fields["name"] = Path(fields["path"]).name or "Unknown Project"

    relative_path = ""
    if projects_root is not None:
        try:
            relative_path = Path(fields["path"]).resolve().relative_to(projects_root).as_posix()
        except ValueError:
            relative_path = ""

    project_id = resolve_project_id(
        ProjectCategory(fields["category"]),
        fields["name"],
        fields["domain"],
        fields["subdomain"],
    )
    return ProjectInfo(**fields, id=project_id, relative_path=relative_path)


async def sync_projects(scanner: ProjectScanner, detector: ProjectDetector, store: MetadataStore) -> ScanResult:
    """Scan the projects root and record every discovered project.

    Args:
        scanner: Scanner bound to the projects root.
        detector: Detector used to classify each location.
        store: Metadata store receiving the records.

    Returns:
        The scan result with ``projects_added``/``projects_updated`` filled in.

    Raises:
        ScanInProgressError: If a scan is already running.
    """
    result = await scanner.scan_projects()

    if result.success and result.projects_found > 0:
        locations = scanner.get_discovered_projects()
        logger.info("Processing %d discovered project(s)", len(locations))

        detections = await asyncio.gather(
            *(detector.detect_project(location.path) for location in locations),
            return_exceptions=True,
        )

        for location, detection in zip(locations, detections, strict=True):
            if isinstance(detection, BaseException):
                logger.warning("Failed to process project %s: %s", location.path, detection)
                result.errors.append(ScanError(path=location.path, error=str(detection)))
                continue
            try:
                project = build_project_info(detection, location, scanner.projects_path)
                is_new = store.add_or_update_project(project)
            except Exception as exc:
                logger.warning("Failed to process project %s: %s", location.path, exc)
                result.errors.append(ScanError(path=location.path, error=str(exc)))
                continue

            if is_new:
                result.projects_added += 1
            else:
                result.projects_updated += 1

        logger.info("Scan processed: %d added, %d updated", result.projects_added, result.projects_updated)

    store.update_scan_results(result)
    return result


def remove_orphaned_projects(store: MetadataStore) -> list[ProjectInfo]:
    """Drop records whose directory no longer exists.

    Returns:
        The removed records.
    """
    removed = []
    for project in store.get_all_projects():
        if Path(project.path).exists():
            continue
        logger.info("Removing orphaned project: %s (%s)", project.name, project.path)
        if store.remove_project(project.id):
            removed.append(project)
    return removed
