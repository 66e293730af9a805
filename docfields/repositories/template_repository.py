from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docfields.database.models import Template
from docfields.repositories.base_repository import BaseRepository
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemplateRepository(BaseRepository[Template]):
    """Repository for Template records.

    Templates are owned by the surrounding application; this repository only
    reads them and takes row locks for migration.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Template)

    async def get_for_update(self, template_id: UUID) -> Optional[Template]:
        """Load a template and lock its row until the transaction ends.

        Backends without row locks (SQLite) ignore the ``FOR UPDATE`` clause.
        """
        try:
            query = (
                select(Template)
                .where(Template.id == template_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error locking template {template_id}: {str(e)}", exc_info=True)
            raise

    async def list_ids(self) -> List[UUID]:
        """Return every template id ordered by creation time."""
        result = await self.session.execute(
            select(Template.id).order_by(Template.created_at, Template.id)
        )
        return list(result.scalars().all())
