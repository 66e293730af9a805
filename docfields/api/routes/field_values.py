"""Document field value API endpoints."""

from typing import Annotated, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status

from docfields.core.exceptions import AppError
from docfields.dependencies import get_autosave_queue, get_field_facade
from docfields.schemas.fields import CompletionInfo, FieldValueResponse, FieldValueUpsert
from docfields.services.autosave import AutosaveQueue
from docfields.services.field_facade import FieldFacade
from docfields.utils.logging import get_logger
from docfields.utils.responses import create_error_detail, http_error_from

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "/{document_id}/field-values",
    response_model=List[FieldValueResponse],
    summary="List a document's field values",
    operation_id="list_document_field_values",
)
async def list_values(
    request: Request,
    document_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> List[FieldValueResponse]:
    """List stored values in template field order."""
    try:
        rows = await facade.list_values(document_id)
    except AppError as e:
        raise http_error_from(e, request)
    return [FieldValueResponse.from_row(row) for row in rows]


@router.post(
    "/{document_id}/field-values",
    response_model=FieldValueResponse,
    summary="Save a field value",
    operation_id="upsert_document_field_value",
)
async def upsert_value(
    request: Request,
    document_id: UUID,
    payload: FieldValueUpsert,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> FieldValueResponse:
    """Insert or overwrite the value of one field on a document."""
    try:
        row = await facade.upsert_value(
            document_id, payload.template_field_id, payload.value, payload.value_raw
        )
    except AppError as e:
        raise http_error_from(e, request)
    return FieldValueResponse.from_row(row)


@router.post(
    "/{document_id}/field-values/autosave",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue a debounced field value save",
    operation_id="autosave_document_field_value",
)
async def autosave_value(
    document_id: UUID,
    payload: FieldValueUpsert,
    queue: Annotated[AutosaveQueue, Depends(get_autosave_queue)],
) -> dict:
    """Accept an in-progress edit; only the latest value per field is written."""
    queue.submit(document_id, payload.template_field_id, payload.value, payload.value_raw)
    return {
        "documentId": str(document_id),
        "templateFieldId": str(payload.template_field_id),
        "pending": queue.pending_count(),
    }


@router.get(
    "/{document_id}/field-values/map",
    response_model=Dict[str, str],
    summary="Get field values keyed by field key",
    operation_id="get_document_field_value_map",
)
async def get_value_map(
    request: Request,
    document_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> Dict[str, str]:
    try:
        return await facade.get_value_map(document_id)
    except AppError as e:
        raise http_error_from(e, request)


@router.get(
    "/{document_id}/field-values/completion",
    response_model=CompletionInfo,
    summary="Get required-field completion",
    operation_id="get_document_completion",
)
async def get_completion(
    request: Request,
    document_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> CompletionInfo:
    """Report how many required fields of the document are filled."""
    try:
        return await facade.get_completion(document_id)
    except AppError as e:
        raise http_error_from(e, request)


@router.get(
    "/{document_id}/field-values/{template_field_id}",
    response_model=FieldValueResponse,
    summary="Get one field value",
    operation_id="get_document_field_value",
)
async def get_value(
    request: Request,
    document_id: UUID,
    template_field_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> FieldValueResponse:
    row = await facade.get_value(document_id, template_field_id)
    if row is None:
        error_detail = create_error_detail(
            title="Field Value Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=f"No value stored for field {template_field_id} on document {document_id}",
            request=request,
        )
        raise HTTPException(status_code=404, detail=error_detail.model_dump(mode="json"))
    return FieldValueResponse.from_row(row)


@router.delete(
    "/{document_id}/field-values",
    summary="Delete all field values of a document",
    operation_id="delete_document_field_values",
)
async def delete_all_values(
    request: Request,
    document_id: UUID,
    facade: Annotated[FieldFacade, Depends(get_field_facade)],
) -> dict:
    try:
        removed = await facade.delete_all_values_for_document(document_id)
    except AppError as e:
        raise http_error_from(e, request)
    LOGGER.info(f"Document field values reset via API: document_id={document_id}, removed={removed}")
    return {"documentId": str(document_id), "deleted": removed}
