from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docfields.database.models import Document
from docfields.repositories.base_repository import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    """Repository for Document records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def get_template_id(self, document_id: UUID) -> Optional[UUID]:
        """Return the template id of a document, or None if it does not exist."""
        result = await self.session.execute(
            select(Document.template_id).where(Document.id == document_id)
        )
        return result.scalar_one_or_none()

    async def list_ids(self) -> List[UUID]:
        """Return every document id ordered by creation time."""
        result = await self.session.execute(
            select(Document.id).order_by(Document.created_at, Document.id)
        )
        return list(result.scalars().all())
