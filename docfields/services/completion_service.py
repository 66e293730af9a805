"""Required-field completion of a document."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from docfields.core.exceptions import NotFoundError
from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.document_repository import DocumentRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.schemas.fields import CompletionInfo
from docfields.services.base_service import BaseService
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


def is_filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


class CompletionService(BaseService):
    """Compares a template's required fields with a document's saved values.

    A required field counts as filled when its value is non-blank after
    trimming. Fields with no saved value, or a blank one, are reported as
    missing in field order.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.document_repo = DocumentRepository(session)
        self.field_repo = TemplateFieldRepository(session)
        self.value_repo = DocumentFieldValueRepository(session)

    async def run(self, document_id: UUID) -> CompletionInfo:
        template_id = await self.document_repo.get_template_id(document_id)
        if template_id is None:
            raise NotFoundError(f"Document not found: {document_id}")

        required_fields = await self.field_repo.list_required_by_template(template_id)
        values = {
            row.template_field_id: row.value
            for row in await self.value_repo.list_by_document(document_id)
        }

        filled = 0
        missing = []
        for field in required_fields:
            if is_filled(values.get(field.id)):
                filled += 1
            else:
                missing.append(field.label)

        total = len(required_fields)
        LOGGER.info(
            f"Document completion checked: document_id={document_id}, filled={filled}, total={total}"
        )
        return CompletionInfo(
            document_id=document_id,
            filled_required=filled,
            total_required=total,
            is_complete=filled >= total,
            missing_labels=missing,
        )

    async def get_completion(self, document_id: UUID) -> CompletionInfo:
        return await self.execute(document_id)
