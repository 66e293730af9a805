"""Administrative endpoints triggering legacy field migration."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from docfields.core.exceptions import NotFoundError
from docfields.dependencies import get_field_facade
from docfields.schemas.fields import MigrationResult, MigrationStatus
from docfields.services.field_facade import FieldFacade
from docfields.utils.logging import get_logger
from docfields.utils.responses import http_error_from

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/templates",
    response_model=MigrationResult,
    summary="Migrate all legacy templates",
    operation_id="migrate_all_templates",
)
async def migrate_all_templates(
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> MigrationResult:
    """Convert every template's legacy field blob; safe to re-run."""
    LOGGER.info("Template migration triggered via API")
    return await facade.migrate_all_templates()


@router.post(
    "/templates/{template_id}",
    response_model=MigrationStatus,
    summary="Migrate one legacy template",
    operation_id="migrate_template",
)
async def migrate_template(
    request: Request,
    template_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> MigrationStatus:
    try:
        return await facade.migrate_template(template_id)
    except NotFoundError as e:
        raise http_error_from(e, request)


@router.post(
    "/documents",
    response_model=MigrationResult,
    summary="Migrate legacy document values",
    operation_id="migrate_all_documents",
)
async def migrate_all_documents(
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> MigrationResult:
    """Copy legacy values into value rows for documents that have none yet."""
    LOGGER.info("Document value migration triggered via API")
    return await facade.migrate_all_documents()
