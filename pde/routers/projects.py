"""Project listing, creation, deletion, statistics, and cleanup endpoints.

Records come from the metadata store.  New projects are scaffolded from a
template under the configured projects root, classified by the detector, and
stored straight away so they appear without a rescan.
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from pde.models import (
    CleanupResponse,
    CreateProjectRequest,
    CreateProjectResponse,
    DeleteProjectResponse,
    MetadataSummary,
    ProjectCategory,
    ProjectInfo,
    ProjectStatus,
    ProjectType,
    RemovedProject,
)
from pde.services.context import PDEServices
from pde.services.scan_pipeline import build_project_info, remove_orphaned_projects, resolve_project_id
from pde.services.templates import ProjectExistsError, TemplateNotFoundError, create_project_files

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])

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


@router.get("/projects", response_model=list[ProjectInfo])
async def list_projects(
    category: ProjectCategory | None = Query(default=None, description="Only this category"),
    type: ProjectType | None = Query(default=None, description="Only this project type"),
    status: ProjectStatus | None = Query(default=None, description="Only this status"),
    domain: str | None = Query(default=None, description="Only this domain folder"),
    search: str | None = Query(default=None, description="Substring match on name, domain, notes, and tags"),
) -> list[ProjectInfo]:
    """List stored project records, optionally filtered.

    Returns:
        Matching ``ProjectInfo`` records.
    """
    store = _get_services().store
    return store.find_projects(category=category, project_type=type, status=status, domain=domain, search=search)


@router.post("/projects", response_model=CreateProjectResponse)
async def create_project(request: CreateProjectRequest) -> CreateProjectResponse:
    """Create a project folder from a template and register it.

    Args:
        request: Name, category, template, and optional domain/subdomain.

    Returns:
        A ``CreateProjectResponse`` with the stored record.

    Raises:
        HTTPException: 400 for an unknown template or invalid name, 409 when
            the target folder already has content.
    """
    services = _get_services()
    logger.info("Creating new project: %s", request.name)

    try:
        project_dir = create_project_files(services.scanner.projects_path, request)
    except TemplateNotFoundError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProjectExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    # Label the record the way a scan will see the folder, so a rescan
    # updates it instead of adding a second record.
    subdomain = f"{request.subdomain}.{request.domain}" if request.domain and request.subdomain else None

    detection = await services.detector.detect_project(project_dir)
    project = build_project_info(detection, projects_root=services.scanner.projects_path)
    project = project.model_copy(
        update={
            "id": resolve_project_id(request.category, request.name, request.domain, subdomain),
            "name": request.name,
            "category": request.category,
            "domain": request.domain,
            "subdomain": subdomain,
        }
    )
    services.store.add_or_update_project(project)

    return CreateProjectResponse(
        message=f"Project '{request.name}' created successfully",
        path=str(project_dir),
        project=project,
    )


@router.delete("/projects/{project_id}", response_model=DeleteProjectResponse)
async def delete_project(project_id: str) -> DeleteProjectResponse:
    """Remove a project from the dashboard.

    The id is tried first; records with a broken id are then matched by name,
    ``<category>-<name>``, or a path containing *project_id*.  Files on disk
    are never touched, and a missing record still counts as deleted.

    Args:
        project_id: Identifier (or name) of the project to remove.

    Returns:
        A ``DeleteProjectResponse``; ``success`` is always ``True``.
    """
    store = _get_services().store
    removed_name = project_id

    removed = store.remove_project(project_id)
    if not removed:
        fallback = next(
            (
                project
                for project in store.get_all_projects()
                if project.name == project_id
                or f"{project.category.value}-{project.name}" == project_id
                or project_id in project.path
            ),
            None,
        )
        if fallback is not None:
            logger.info("Found project by fallback search: %s (id %s)", fallback.name, fallback.id)
            removed = store.remove_project(fallback.id)
            removed_name = fallback.name

    if removed:
        logger.info("Deleted project from metadata: %s", removed_name)
    else:
        logger.info("Project not found in metadata: %s", project_id)

    return DeleteProjectResponse(message=f"Project '{removed_name}' removed from dashboard")


@router.get("/stats", response_model=MetadataSummary | None)
async def get_stats() -> MetadataSummary | None:
    """Return aggregate metadata statistics."""
    return _get_services().store.get_stats()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup() -> CleanupResponse:
    """Remove records whose project directory no longer exists.

    Returns:
        A ``CleanupResponse`` listing what was removed.
    """
    removed = remove_orphaned_projects(_get_services().store)
    logger.info("Cleanup completed: removed %d orphaned entries", len(removed))
    return CleanupResponse(
        message=f"Cleanup completed: removed {len(removed)} orphaned metadata entries",
        removed_count=len(removed),
        removed_projects=[RemovedProject(id=p.id, name=p.name, path=p.path) for p in removed],
    )
