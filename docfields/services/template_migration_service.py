"""Conversion of legacy ``coordinateFields`` blobs into normalized rows.

Legacy templates store their fields as a JSON array of pixel-positioned
objects drawn on a fixed reference canvas (800x1000 by default). Migration
turns each element into a ``TemplateField`` with page-ratio coordinates:

    x      = clamp(x / canvas_width,       0,    1)
    y      = clamp(y / canvas_height,      0,    1)
    width  = clamp(width / canvas_width,   0.01, 1)
    height = clamp(height / canvas_height, 0.01, 1)

Each template is migrated in its own transaction. A template that already has
normalized fields is never migrated again, so every entry point can be
re-triggered safely.
"""

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docfields.config import Settings, settings as default_settings
from docfields.core.exceptions import AppError, DatabaseError, NotFoundError
from docfields.database.base import async_session_maker
from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.document_repository import DocumentRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.repositories.template_repository import TemplateRepository
from docfields.schemas.fields import MigrationResult
from docfields.services.base_service import BaseService
from docfields.services.coordinate_validator import RATIO_QUANTUM
from docfields.services.legacy_fields import (
    LegacyField,
    TableField,
    load_legacy_array,
    parse_legacy_elements,
)
from docfields.services.template_field_service import TemplateFieldService
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True)
class CanvasSize:
    """Pixel size of the canvas legacy coordinates were drawn on."""

    width: Decimal
    height: Decimal

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Canvas width and height must be positive")

    @classmethod
    def of(cls, width: float, height: float) -> "CanvasSize":
        return cls(Decimal(str(width)), Decimal(str(height)))

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "CanvasSize":
        return cls.of(config.legacy_canvas_width, config.legacy_canvas_height)


@dataclass(frozen=True)
class ConvertedField:
    """A legacy element expressed in normalized field terms."""

    field_key: str
    label: str
    required: bool
    page: int
    x: Decimal
    y: Decimal
    width: Decimal
    height: Decimal


def pixel_to_ratio(pixels: float, extent: Decimal, floor: Decimal = ZERO) -> Decimal:
    """Divide a pixel length by the canvas extent and clamp to ``[floor, 1]``.

    Rounds down so that ``x + width`` never exceeds 1 after rounding.
    """
    ratio = Decimal(str(pixels)) / extent
    ratio = max(floor, min(ONE, ratio))
    return ratio.quantize(RATIO_QUANTUM, rounding=ROUND_FLOOR)


class TemplateMigrationService(BaseService):
    """Migrates legacy template fields and document values into Field Store rows."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        canvas: Optional[CanvasSize] = None,
        min_size_ratio: Optional[float] = None,
    ):
        """Initialize migration service.

        Args:
            session_factory: Factory for the per-template sessions
            canvas: Reference canvas of the legacy pixel coordinates
            min_size_ratio: Lower clamp for width/height ratios
        """
        super().__init__()
        self.session_factory = session_factory or async_session_maker
        self.canvas = canvas or CanvasSize.from_settings()
        self.min_size_ratio = Decimal(
            str(min_size_ratio if min_size_ratio is not None else default_settings.legacy_min_size_ratio)
        )

    async def run(self, *args, **kwargs) -> Any:
        """Route to appropriate handler based on action."""
        action = kwargs.pop("action", None)

        if action == "migrate_all":
            return await self._migrate_all_logic()
        elif action == "migrate_all_documents":
            return await self._migrate_all_documents_logic()
        else:
            raise AppError(f"Unknown action: {action}")

    async def migrate_all(self) -> MigrationResult:
        """Migrate every template; per-template failures are collected, not raised."""
        return await self.execute(action="migrate_all")

    async def migrate_all_documents(self) -> MigrationResult:
        """Copy legacy values of every document into value rows."""
        return await self.execute(action="migrate_all_documents")

    def convert_element(
        self, element: LegacyField, canvas: Optional[CanvasSize] = None
    ) -> ConvertedField:
        """Map a legacy element onto a normalized field definition."""
        canvas = canvas or self.canvas
        return ConvertedField(
            field_key=element.field_key,
            label=element.display_label,
            required=element.required,
            page=element.page,
            x=pixel_to_ratio(element.x, canvas.width),
            y=pixel_to_ratio(element.y, canvas.height),
            width=pixel_to_ratio(element.width, canvas.width, self.min_size_ratio),
            height=pixel_to_ratio(element.height, canvas.height, self.min_size_ratio),
        )

    async def migrate_template(
        self, template_id: UUID, canvas: Optional[CanvasSize] = None
    ) -> bool:
        """Migrate one template's legacy blob.

        Returns:
            True if fields were created; False when the template already has
            fields, has no blob, its blob is not a JSON array, or holds only
            table elements

        Raises:
            NotFoundError: Template does not exist
            ParseFailureError: Blob is not valid JSON or an element is malformed
            AppError: Any field failed to convert; nothing is committed
        """
        async with self.session_factory() as session:
            try:
                migrated = await self._migrate_template_in_session(session, template_id, canvas)
                if migrated:
                    await session.commit()
                else:
                    await session.rollback()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Template migration failed: {template_id}", original_error=e)
            except Exception:
                await session.rollback()
                raise
            return migrated

    async def _migrate_template_in_session(
        self, session: AsyncSession, template_id: UUID, canvas: Optional[CanvasSize]
    ) -> bool:
        template = await TemplateRepository(session).get_for_update(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")

        # Re-read under the row lock so concurrent runs cannot both insert
        field_repo = TemplateFieldRepository(session)
        if await field_repo.count_by_template(template_id) > 0:
            LOGGER.debug(f"Template {template_id} already has normalized fields")
            return False

        items = load_legacy_array(template.coordinate_fields)
        if items is None:
            if template.coordinate_fields and template.coordinate_fields.strip():
                LOGGER.warning(f"Template {template_id} coordinateFields is not a JSON array")
            else:
                LOGGER.debug(f"Template {template_id} has no coordinateFields")
            return False

        elements = parse_legacy_elements(items)
        field_service = TemplateFieldService(session, auto_commit=False)

        created = 0
        for element in elements:
            if isinstance(element, TableField):
                LOGGER.info(
                    f"Skipping table element {element.field_key} (index {element.index}) "
                    f"of template {template_id}"
                )
                continue

            converted = self.convert_element(element, canvas)
            try:
                await field_service.create_field(
                    template_id=template_id,
                    field_key=converted.field_key,
                    label=converted.label,
                    required=converted.required,
                    page=converted.page,
                    x=converted.x,
                    y=converted.y,
                    width=converted.width,
                    height=converted.height,
                )
            except AppError:
                LOGGER.error(
                    f"Field conversion failed - template_id={template_id}, index={element.index}",
                    exc_info=True,
                )
                raise
            created += 1

        LOGGER.info(f"Template {template_id} migrated - {created} field(s) converted")
        return created > 0

    async def _migrate_all_logic(self) -> MigrationResult:
        async with self.session_factory() as session:
            template_ids = await TemplateRepository(session).list_ids()

        result = MigrationResult(total_templates=len(template_ids))
        LOGGER.info(f"Template migration started - {len(template_ids)} template(s)")

        for template_id in template_ids:
            try:
                if await self.migrate_template(template_id):
                    result.migrated_count += 1
                else:
                    result.skipped_count += 1
                    LOGGER.info(f"Template migration skipped: {template_id}")
            except Exception as e:
                result.errors.append(f"Template ID {template_id}: {e}")
                LOGGER.error(f"Template migration failed: {template_id}", exc_info=True)

        LOGGER.info(
            f"Template migration finished - total: {result.total_templates}, "
            f"migrated: {result.migrated_count}, skipped: {result.skipped_count}, "
            f"errors: {result.error_count}"
        )
        return result

    async def migrate_document_values(self, document_id: UUID) -> bool:
        """Copy a document's legacy ``data.coordinateFields`` values into value rows.

        Elements are matched to the template's normalized fields by field key;
        table elements keep their cell data in ``value_raw``. Elements without a
        matching field are ignored.

        Returns:
            True if any value was written; False when the document already has
            values, has no legacy array, or its template has no fields

        Raises:
            NotFoundError: Document does not exist
            ParseFailureError: Legacy data is malformed
        """
        async with self.session_factory() as session:
            try:
                written = await self._migrate_document_in_session(session, document_id)
            except Exception:
                await session.rollback()
                raise

            if written:
                await session.commit()
            else:
                await session.rollback()
            return written

    async def _migrate_document_in_session(self, session: AsyncSession, document_id: UUID) -> bool:
        document = await DocumentRepository(session).get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")

        value_repo = DocumentFieldValueRepository(session)
        if await value_repo.count_by_document(document_id) > 0:
            LOGGER.debug(f"Document {document_id} already has field values")
            return False

        legacy = (document.data or {}).get("coordinateFields")
        if isinstance(legacy, str):
            items = load_legacy_array(legacy)
        elif isinstance(legacy, list):
            items = legacy
        else:
            items = None
        if not items:
            return False

        fields = await TemplateFieldRepository(session).list_by_template(document.template_id)
        if not fields:
            LOGGER.debug(f"Template of document {document_id} has no normalized fields")
            return False
        fields_by_key = {field.field_key: field for field in fields}

        written = 0
        for element in parse_legacy_elements(items):
            field = fields_by_key.get(element.field_key)
            if field is None:
                continue
            value_raw = element.table_data if isinstance(element, TableField) else None
            if element.value is None and value_raw is None:
                continue
            await value_repo.upsert(document_id, field.id, element.value, value_raw)
            written += 1

        LOGGER.info(f"Document {document_id} migrated - {written} value(s) copied")
        return written > 0

    async def _migrate_all_documents_logic(self) -> MigrationResult:
        async with self.session_factory() as session:
            document_ids = await DocumentRepository(session).list_ids()

        result = MigrationResult(total_templates=len(document_ids))
        LOGGER.info(f"Document value migration started - {len(document_ids)} document(s)")

        for document_id in document_ids:
            try:
                if await self.migrate_document_values(document_id):
                    result.migrated_count += 1
                else:
                    result.skipped_count += 1
            except Exception as e:
                result.errors.append(f"Document ID {document_id}: {e}")
                LOGGER.error(f"Document value migration failed: {document_id}", exc_info=True)

        LOGGER.info(
            f"Document value migration finished - total: {result.total_templates}, "
            f"migrated: {result.migrated_count}, skipped: {result.skipped_count}, "
            f"errors: {result.error_count}"
        )
        return result
