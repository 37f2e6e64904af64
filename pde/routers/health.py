"""Health-check endpoint.

Reports scanner state and how many projects the metadata store holds.  This is
the first endpoint the web UI hits to verify connectivity.
"""

import logging

from fastapi import APIRouter, HTTPException

from pde.models import HealthResponse
from pde.services.context import PDEServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

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


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return service status, scanner statistics, and the stored project count.

    Returns:
        A ``HealthResponse``.
    """
    services = _get_services()
    return HealthResponse(
        status="ok",
        scanner=services.scanner.get_stats(),
        metadata_loaded=services.store.is_loaded,
        projects=len(services.store.get_all_projects()),
    )
