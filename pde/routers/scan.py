"""Scan and detection endpoints.

``POST /api/scan`` runs the full pipeline (scan, detect, store).  Only one scan
runs at a time; a concurrent request gets a 409 instead of waiting.
``POST /api/detect/{path}`` classifies a single directory without storing it.
"""

import logging

from fastapi import APIRouter, HTTPException

from pde.models import ProjectDetection, ScanResult
from pde.services.context import PDEServices
from pde.services.scan_pipeline import sync_projects
from pde.services.scanner import ScanInProgressError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["scan"])

_services: PDEServices | None = None


def set_services(services: PDEServices) -> None:
    """Wire the shared ``PDEServices`` into this router module.

    Args:
        services: The application-wide services.
    """
    global _services
    _services = services


def _get_services() -> PDEServices:
    if _services is None:
        raise HTTPException(status_code=503, detail="Services not initialised")
    return _services


@router.post("/scan", response_model=ScanResult)
async def scan() -> ScanResult:
    """Scan the projects root and update the metadata store.

    Returns:
        The ``ScanResult``.  A missing projects root is reported inside the
        result (``success`` is ``False``), not as an HTTP error.

    Raises:
        HTTPException: 409 if a scan is already running.
    """
    services = _get_services()
    logger.info("Starting project scan")
    try:
        return await sync_projects(services.scanner, services.detector, services.store)
    except ScanInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/detect/{project_path:path}", response_model=ProjectDetection)
async def detect(project_path: str) -> ProjectDetection:
    """Classify one directory.

    Args:
        project_path: Directory to analyse; relative paths resolve against the
            projects root.

    Returns:
        The ``ProjectDetection`` for the directory.
    """
    services = _get_services()
    path = services.scanner.projects_path / project_path
    logger.info("Detecting project: %s", path)
    return await services.detector.detect_project(path)
