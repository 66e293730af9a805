from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException, Request, status

from docfields.core.exceptions import (
    AppError,
    DuplicateKeyError,
    FieldTemplateMismatchError,
    InvalidGeometryError,
    NotFoundError,
    ParseFailureError,
    ValidationError,
)
from docfields.schemas.fields import ErrorDetail

# Most specific classes first: InvalidGeometryError is a ValidationError
_STATUS_BY_ERROR = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (DuplicateKeyError, status.HTTP_409_CONFLICT, "Duplicate Field Key"),
    (InvalidGeometryError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid Geometry"),
    (FieldTemplateMismatchError, status.HTTP_400_BAD_REQUEST, "Field Template Mismatch"),
    (ParseFailureError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Parse Failure"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error"),
]


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    instance: Optional[str] = None
) -> ErrorDetail:
    """Create a standardized error detail (RFC 7807)."""
    request_id = str(uuid4())
    if request and hasattr(request.state, "request_id"):
        request_id = request.state.request_id

    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance or (request.url.path if request else None),
        request_id=request_id,
        timestamp=datetime.now(timezone.utc)
    )


def http_error_from(error: AppError, request: Optional[Request] = None) -> HTTPException:
    """Translate a domain error into an HTTPException carrying an ErrorDetail."""
    for error_type, status_code, title in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            break
    else:
        status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error"

    error_detail = create_error_detail(title, status_code, str(error), request)
    if isinstance(error, InvalidGeometryError) and error.bound:
        error_detail.extra = {"bound": error.bound}
    return HTTPException(status_code=status_code, detail=error_detail.model_dump(mode="json"))
