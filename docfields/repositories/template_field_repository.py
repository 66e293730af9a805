from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docfields.database.models import TemplateField
from docfields.repositories.base_repository import BaseRepository
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemplateFieldRepository(BaseRepository[TemplateField]):
    """Repository for TemplateField records.

    Fields are returned in creation order (``position``, then ``created_at``).
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, TemplateField)

    async def get_by_template_and_key(
        self, template_id: UUID, field_key: str
    ) -> Optional[TemplateField]:
        """Get a field by its key within a template."""
        query = select(TemplateField).where(
            TemplateField.template_id == template_id,
            TemplateField.field_key == field_key,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_template(self, template_id: UUID) -> List[TemplateField]:
        """List all fields of a template in creation order."""
        query = (
            select(TemplateField)
            .where(TemplateField.template_id == template_id)
            .order_by(TemplateField.position, TemplateField.created_at)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_required_by_template(self, template_id: UUID) -> List[TemplateField]:
        """List required fields of a template in creation order."""
        query = (
            select(TemplateField)
            .where(
                TemplateField.template_id == template_id,
                TemplateField.required.is_(True),
            )
            .order_by(TemplateField.position, TemplateField.created_at)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_template(self, template_id: UUID) -> int:
        """Count fields defined on a template."""
        return await self.count(filters={"template_id": template_id})

    async def list_ids_by_template(self, template_id: UUID) -> List[UUID]:
        """Return the ids of all fields of a template."""
        result = await self.session.execute(
            select(TemplateField.id).where(TemplateField.template_id == template_id)
        )
        return list(result.scalars().all())

    async def next_position(self, template_id: UUID) -> int:
        """Return the position a newly created field should take."""
        result = await self.session.execute(
            select(func.max(TemplateField.position)).where(
                TemplateField.template_id == template_id
            )
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def delete_by_template(self, template_id: UUID) -> int:
        """Delete every field of a template.

        Dependent value rows must already be gone.

        Returns:
            Number of deleted fields
        """
        try:
            result = await self.session.execute(
                delete(TemplateField)
                .where(TemplateField.template_id == template_id)
                .execution_options(synchronize_session="fetch")
            )
            await self.session.flush()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error deleting fields of template {template_id}: {str(e)}",
                exc_info=True,
            )
            raise
