import uuid
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docfields.core.exceptions import DatabaseError
from docfields.database.models import DocumentFieldValue, TemplateField, utcnow
from docfields.repositories.base_repository import BaseRepository
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentFieldValueRepository(BaseRepository[DocumentFieldValue]):
    """Repository for DocumentFieldValue records.

    The ``(document_id, template_field_id)`` unique constraint is the only
    guard against duplicate value rows; writes go through a single
    ``INSERT ... ON CONFLICT DO UPDATE`` statement.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentFieldValue)

    def _dialect_insert(self):
        dialect_name = self.session.get_bind().dialect.name
        if dialect_name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect_name == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise DatabaseError(f"Upsert is not supported on dialect '{dialect_name}'")
        return insert

    async def upsert(
        self,
        document_id: UUID,
        template_field_id: UUID,
        value: Optional[str],
        value_raw: Any = None,
    ) -> DocumentFieldValue:
        """Insert or update the value of a field for a document.

        A concurrent insert on the same key resolves to an update of the row
        that won the race.

        Returns:
            The persisted value row, freshly loaded
        """
        insert = self._dialect_insert()
        now = utcnow()

        stmt = insert(DocumentFieldValue).values(
            id=uuid.uuid4(),
            document_id=document_id,
            template_field_id=template_field_id,
            value=value,
            value_raw=value_raw,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["document_id", "template_field_id"],
            set_={
                "value": stmt.excluded.value,
                "value_raw": stmt.excluded.value_raw,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error upserting value for document {document_id}, field {template_field_id}: {str(e)}",
                exc_info=True,
            )
            raise

        row = await self.get_by_document_and_field(
            document_id, template_field_id, refresh=True
        )
        if row is None:
            raise DatabaseError(
                f"Upserted value for document {document_id}, field {template_field_id} not found"
            )
        return row

    async def get_by_document_and_field(
        self, document_id: UUID, template_field_id: UUID, refresh: bool = False
    ) -> Optional[DocumentFieldValue]:
        """Get the value row for a document/field pair."""
        query = select(DocumentFieldValue).where(
            DocumentFieldValue.document_id == document_id,
            DocumentFieldValue.template_field_id == template_field_id,
        )
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.unique().scalar_one_or_none()

    async def list_by_document(self, document_id: UUID) -> List[DocumentFieldValue]:
        """List a document's values ordered by their field's creation order."""
        query = (
            select(DocumentFieldValue)
            .join(TemplateField, DocumentFieldValue.template_field_id == TemplateField.id)
            .where(DocumentFieldValue.document_id == document_id)
            .order_by(TemplateField.position, TemplateField.created_at)
        )
        result = await self.session.execute(query)
        return list(result.unique().scalars().all())

    async def count_by_document(self, document_id: UUID) -> int:
        return await self.count(filters={"document_id": document_id})

    async def delete_by_document(self, document_id: UUID) -> int:
        """Delete all values of a document. Returns the number of rows removed."""
        return await self._delete_where(DocumentFieldValue.document_id == document_id)

    async def delete_by_template_field(self, template_field_id: UUID) -> int:
        """Delete all values that reference a template field."""
        return await self._delete_where(
            DocumentFieldValue.template_field_id == template_field_id
        )

    async def delete_by_template_fields(self, template_field_ids: Sequence[UUID]) -> int:
        """Delete all values that reference any of the given template fields."""
        if not template_field_ids:
            return 0
        return await self._delete_where(
            DocumentFieldValue.template_field_id.in_(list(template_field_ids))
        )

    async def _delete_where(self, condition) -> int:
        try:
            result = await self.session.execute(
                delete(DocumentFieldValue)
                .where(condition)
                .execution_options(synchronize_session="fetch")
            )
            await self.session.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            LOGGER.error(f"Error deleting document field values: {str(e)}", exc_info=True)
            raise
