"""Per-document field values with upsert semantics."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from docfields.core.exceptions import AppError, FieldTemplateMismatchError, NotFoundError
from docfields.database.models import DocumentFieldValue
from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.document_repository import DocumentRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.services.base_service import BaseService
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentFieldValueService(BaseService):
    """Service for saving and reading the values a document holds.

    At most one value row exists per (document, field); saving again
    replaces the previous value.
    """

    def __init__(self, session: AsyncSession, auto_commit: bool = True):
        super().__init__(session, auto_commit)
        self.value_repo = DocumentFieldValueRepository(session)
        self.document_repo = DocumentRepository(session)
        self.field_repo = TemplateFieldRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        """Route to appropriate handler based on action."""
        action = kwargs.pop("action", None)

        if action == "upsert_value":
            return await self._upsert_value_logic(**kwargs)
        elif action == "delete_all_values":
            return await self._delete_all_values_logic(**kwargs)
        else:
            raise AppError(f"Unknown action: {action}")

    async def upsert_value(
        self,
        document_id: UUID,
        template_field_id: UUID,
        value: Optional[str],
        value_raw: Any = None,
    ) -> DocumentFieldValue:
        """Save the value of a field on a document.

        Safe to call repeatedly and concurrently for the same key: the row is
        written by a single atomic upsert.

        Raises:
            NotFoundError: Document or field does not exist
            FieldTemplateMismatchError: Field belongs to another template
        """
        return await self.execute(
            action="upsert_value",
            document_id=document_id,
            template_field_id=template_field_id,
            value=value,
            value_raw=value_raw,
        )

    async def delete_all_values_for_document(self, document_id: UUID) -> int:
        return await self.execute(action="delete_all_values", document_id=document_id)

    async def list_values(self, document_id: UUID) -> List[DocumentFieldValue]:
        """List a document's values in field order."""
        await self._require_document(document_id)
        return await self.value_repo.list_by_document(document_id)

    async def get_value_map(self, document_id: UUID) -> Dict[str, str]:
        """Return ``{field_key: value}`` for a document; null values map to ``""``."""
        values = await self.list_values(document_id)
        return {
            row.template_field.field_key: row.value if row.value is not None else ""
            for row in values
        }

    async def get_value(
        self, document_id: UUID, template_field_id: UUID
    ) -> Optional[DocumentFieldValue]:
        return await self.value_repo.get_by_document_and_field(document_id, template_field_id)

    async def _upsert_value_logic(
        self,
        document_id: UUID,
        template_field_id: UUID,
        value: Optional[str],
        value_raw: Any = None,
    ) -> DocumentFieldValue:
        document = await self._require_document(document_id)

        field = await self.field_repo.get_by_id(template_field_id)
        if field is None:
            raise NotFoundError(f"Template field not found: {template_field_id}")

        if field.template_id != document.template_id:
            raise FieldTemplateMismatchError(
                f"Template field {template_field_id} does not belong to the template "
                f"of document {document_id}"
            )

        row = await self.value_repo.upsert(document_id, template_field_id, value, value_raw)
        await self._commit()

        LOGGER.info(
            f"Document field value saved: document_id={document_id}, "
            f"field_key={field.field_key}, length={len(value) if value else 0}"
        )
        return row

    async def _delete_all_values_logic(self, document_id: UUID) -> int:
        await self._require_document(document_id)
        removed = await self.value_repo.delete_by_document(document_id)
        await self._commit()
        LOGGER.info(f"All field values deleted: document_id={document_id}, removed={removed}")
        return removed

    async def _require_document(self, document_id: UUID):
        document = await self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return document
