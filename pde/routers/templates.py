"""Template catalogue endpoint."""

import logging

from fastapi import APIRouter, Query

from pde.models import TemplateCategory, TemplatesResponse
from pde.services.templates import PROJECT_TEMPLATES, get_templates_by_category

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["templates"])


@router.get("/templates", response_model=TemplatesResponse)
async def list_templates(
    category: TemplateCategory | None = Query(default=None, description="Only templates in this category"),
) -> TemplatesResponse:
    """List the project templates available for creation.

    Args:
        category: Optional category filter.

    Returns:
        A ``TemplatesResponse`` with total and filtered counts.
    """
    templates = get_templates_by_category(category) if category else list(PROJECT_TEMPLATES)
    return TemplatesResponse(
        templates=templates,
        total_count=len(PROJECT_TEMPLATES),
        filtered_count=len(templates),
    )
