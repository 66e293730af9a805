"""Single entry point for callers of the field store.

Controllers and migration jobs talk to ``FieldFacade`` instead of wiring
repositories and services themselves.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docfields.core.exceptions import AppError, NotFoundError
from docfields.database.models import DocumentFieldValue, TemplateField
from docfields.schemas.fields import CompletionInfo, MigrationResult, MigrationStatus
from docfields.services.completion_service import CompletionService
from docfields.services.document_field_value_service import DocumentFieldValueService
from docfields.services.template_field_service import Number, TemplateFieldService
from docfields.services.template_migration_service import CanvasSize, TemplateMigrationService
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class FieldFacade:
    """Orchestrates field CRUD, value writes, completion and migration."""

    def __init__(
        self,
        session: AsyncSession,
        session_factory: Optional[async_sessionmaker] = None,
        canvas: Optional[CanvasSize] = None,
    ):
        """Initialize the facade.

        Args:
            session: Request-scoped session for CRUD and reads
            session_factory: Factory for migration's per-template transactions
            canvas: Reference canvas for legacy pixel coordinates
        """
        self.session = session
        self.fields = TemplateFieldService(session)
        self.values = DocumentFieldValueService(session)
        self.completion = CompletionService(session)
        self.migration = TemplateMigrationService(session_factory, canvas=canvas)

    # Template fields

    async def create_field(
        self,
        template_id: UUID,
        field_key: str,
        label: str,
        required: bool,
        page: int,
        x: Number,
        y: Number,
        width: Number,
        height: Number,
    ) -> TemplateField:
        return await self.fields.create_field(
            template_id, field_key, label, required, page, x, y, width, height
        )

    async def update_field(
        self,
        field_id: UUID,
        label: str,
        required: bool,
        x: Number,
        y: Number,
        width: Number,
        height: Number,
    ) -> TemplateField:
        return await self.fields.update_field(field_id, label, required, x, y, width, height)

    async def delete_field(self, field_id: UUID) -> None:
        await self.fields.delete_field(field_id)

    async def delete_all_fields_for_template(self, template_id: UUID) -> int:
        return await self.fields.delete_all_fields_for_template(template_id)

    async def get_field(self, field_id: UUID) -> Optional[TemplateField]:
        return await self.fields.get_field(field_id)

    async def list_fields(self, template_id: UUID) -> List[TemplateField]:
        return await self.fields.list_fields(template_id)

    async def list_required_fields(self, template_id: UUID) -> List[TemplateField]:
        return await self.fields.list_required_fields(template_id)

    # Document values

    async def upsert_value(
        self,
        document_id: UUID,
        template_field_id: UUID,
        value: Optional[str],
        value_raw: Any = None,
    ) -> DocumentFieldValue:
        return await self.values.upsert_value(document_id, template_field_id, value, value_raw)

    async def list_values(self, document_id: UUID) -> List[DocumentFieldValue]:
        return await self.values.list_values(document_id)

    async def get_value_map(self, document_id: UUID) -> Dict[str, str]:
        return await self.values.get_value_map(document_id)

    async def get_value(
        self, document_id: UUID, template_field_id: UUID
    ) -> Optional[DocumentFieldValue]:
        return await self.values.get_value(document_id, template_field_id)

    async def delete_all_values_for_document(self, document_id: UUID) -> int:
        return await self.values.delete_all_values_for_document(document_id)

    async def get_completion(self, document_id: UUID) -> CompletionInfo:
        return await self.completion.get_completion(document_id)

    # Migration

    async def migrate_all_templates(self) -> MigrationResult:
        return await self.migration.migrate_all()

    async def migrate_template(self, template_id: UUID) -> MigrationStatus:
        """Migrate one template and report the outcome instead of raising.

        Raises:
            NotFoundError: Template does not exist
        """
        try:
            migrated = await self.migration.migrate_template(template_id)
        except NotFoundError:
            raise
        except AppError as e:
            LOGGER.error(f"Single template migration failed: {template_id}: {e}")
            return MigrationStatus(
                template_id=template_id,
                success=False,
                migrated=False,
                message=f"Migration failed: {e}",
            )

        return MigrationStatus(
            template_id=template_id,
            success=True,
            migrated=migrated,
            message=(
                "Migration completed successfully"
                if migrated
                else "Template already migrated or no fields to migrate"
            ),
        )

    async def migrate_all_documents(self) -> MigrationResult:
        return await self.migration.migrate_all_documents()

    async def migrate_document_values(self, document_id: UUID) -> bool:
        return await self.migration.migrate_document_values(document_id)
