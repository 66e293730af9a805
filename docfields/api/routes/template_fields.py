"""Template field API endpoints."""

from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from docfields.core.exceptions import AppError
from docfields.dependencies import get_field_facade
from docfields.schemas.fields import (
    TemplateFieldCreate,
    TemplateFieldResponse,
    TemplateFieldUpdate,
)
from docfields.services.field_facade import FieldFacade
from docfields.utils.logging import get_logger
from docfields.utils.responses import create_error_detail, http_error_from

LOGGER = get_logger(__name__)

router = APIRouter()


async def _require_template_field(
    facade: FieldFacade, template_id: UUID, field_id: UUID, request: Request
) -> None:
    """404 unless the field exists and belongs to the template in the path."""
    field = await facade.get_field(field_id)
    if field is None or field.template_id != template_id:
        error_detail = create_error_detail(
            title="Template Field Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=f"Template {template_id} has no field {field_id}",
            request=request,
        )
        raise HTTPException(status_code=404, detail=error_detail.model_dump(mode="json"))


@router.get(
    "/{template_id}/fields",
    response_model=List[TemplateFieldResponse],
    summary="List template fields",
    operation_id="list_template_fields",
)
async def list_fields(
    template_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> List[TemplateFieldResponse]:
    """List a template's fields in creation order."""
    fields = await facade.list_fields(template_id)
    return [TemplateFieldResponse.model_validate(field) for field in fields]


@router.get(
    "/{template_id}/fields/required",
    response_model=List[TemplateFieldResponse],
    summary="List required template fields",
    operation_id="list_required_template_fields",
)
async def list_required_fields(
    template_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> List[TemplateFieldResponse]:
    fields = await facade.list_required_fields(template_id)
    return [TemplateFieldResponse.model_validate(field) for field in fields]


@router.post(
    "/{template_id}/fields",
    response_model=TemplateFieldResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a template field",
    operation_id="create_template_field",
)
async def create_field(
    request: Request,
    template_id: UUID,
    payload: TemplateFieldCreate,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> TemplateFieldResponse:
    """Create a field with page-ratio geometry on a template."""
    try:
        field = await facade.create_field(
            template_id=template_id,
            field_key=payload.field_key,
            label=payload.label,
            required=payload.required,
            page=payload.page,
            x=payload.x,
            y=payload.y,
            width=payload.width,
            height=payload.height,
        )
    except AppError as e:
        raise http_error_from(e, request)
    return TemplateFieldResponse.model_validate(field)


@router.put(
    "/{template_id}/fields/{field_id}",
    response_model=TemplateFieldResponse,
    summary="Update a template field",
    operation_id="update_template_field",
)
async def update_field(
    request: Request,
    template_id: UUID,
    field_id: UUID,
    payload: TemplateFieldUpdate,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> TemplateFieldResponse:
    """Edit label, required flag and geometry of a field."""
    await _require_template_field(facade, template_id, field_id, request)
    try:
        field = await facade.update_field(
            field_id=field_id,
            label=payload.label,
            required=payload.required,
            x=payload.x,
            y=payload.y,
            width=payload.width,
            height=payload.height,
        )
    except AppError as e:
        raise http_error_from(e, request)
    return TemplateFieldResponse.model_validate(field)


@router.delete(
    "/{template_id}/fields/{field_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a template field",
    operation_id="delete_template_field",
)
async def delete_field(
    request: Request,
    template_id: UUID,
    field_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> Response:
    """Delete a field and every value documents stored for it."""
    await _require_template_field(facade, template_id, field_id, request)
    try:
        await facade.delete_field(field_id)
    except AppError as e:
        raise http_error_from(e, request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{template_id}/fields",
    summary="Delete all fields of a template",
    operation_id="delete_all_template_fields",
)
async def delete_all_fields(
    request: Request,
    template_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> dict:
    try:
        removed = await facade.delete_all_fields_for_template(template_id)
    except AppError as e:
        raise http_error_from(e, request)
    LOGGER.info(f"Template fields reset via API: template_id={template_id}, removed={removed}")
    return {"templateId": str(template_id), "deleted": removed}
