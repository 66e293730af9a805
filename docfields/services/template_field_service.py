"""Template field store: create, edit, list and delete normalized fields."""

from decimal import Decimal
from typing import Any, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from docfields.core.exceptions import (
    AppError,
    DatabaseError,
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from docfields.database.models import TemplateField
from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.repositories.template_repository import TemplateRepository
from docfields.services import coordinate_validator
from docfields.services.base_service import BaseService
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)

Number = Union[Decimal, int, float, str]


class TemplateFieldService(BaseService):
    """Service owning every write to ``template_fields``.

    Geometry is validated before anything is flushed, so a rejected call
    leaves no row behind. Deleting fields removes their document values
    first.
    """

    def __init__(self, session: AsyncSession, auto_commit: bool = True):
        """Initialize template field service.

        Args:
            session: Database session
            auto_commit: Commit after each successful write. Callers that
                batch several writes into one transaction pass False and
                commit themselves.
        """
        super().__init__(session, auto_commit)
        self.field_repo = TemplateFieldRepository(session)
        self.template_repo = TemplateRepository(session)
        self.value_repo = DocumentFieldValueRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        """Route to appropriate handler based on action."""
        action = kwargs.pop("action", None)

        if action == "create_field":
            return await self._create_field_logic(**kwargs)
        elif action == "update_field":
            return await self._update_field_logic(**kwargs)
        elif action == "delete_field":
            return await self._delete_field_logic(**kwargs)
        elif action == "delete_all_fields":
            return await self._delete_all_fields_logic(**kwargs)
        else:
            raise AppError(f"Unknown action: {action}")

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
        """Create a field on a template.

        Raises:
            NotFoundError: Template does not exist
            DuplicateKeyError: ``field_key`` already used in the template
            InvalidGeometryError: Coordinates or page out of bounds
        """
        return await self.execute(
            action="create_field",
            template_id=template_id,
            field_key=field_key,
            label=label,
            required=required,
            page=page,
            x=x,
            y=y,
            width=width,
            height=height,
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
        """Edit label, required flag and geometry of a field.

        ``field_key`` and ``page`` cannot change after creation.

        Raises:
            NotFoundError: Field does not exist
            InvalidGeometryError: Coordinates out of bounds
        """
        return await self.execute(
            action="update_field",
            field_id=field_id,
            label=label,
            required=required,
            x=x,
            y=y,
            width=width,
            height=height,
        )

    async def delete_field(self, field_id: UUID) -> None:
        """Delete a field together with every document value that references it."""
        await self.execute(action="delete_field", field_id=field_id)

    async def delete_all_fields_for_template(self, template_id: UUID) -> int:
        """Reset a template's fields. Returns the number of fields removed."""
        return await self.execute(action="delete_all_fields", template_id=template_id)

    async def get_field(self, field_id: UUID) -> Optional[TemplateField]:
        return await self.field_repo.get_by_id(field_id)

    async def list_fields(self, template_id: UUID) -> List[TemplateField]:
        return await self.field_repo.list_by_template(template_id)

    async def list_required_fields(self, template_id: UUID) -> List[TemplateField]:
        return await self.field_repo.list_required_by_template(template_id)

    async def _create_field_logic(
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
        template = await self.template_repo.get_by_id(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")

        if field_key is None or not field_key.strip():
            raise ValidationError("Field key must not be empty")
        if label is None:
            raise ValidationError("Field label must not be null")

        existing = await self.field_repo.get_by_template_and_key(template_id, field_key)
        if existing is not None:
            raise DuplicateKeyError(f"Field key already exists in this template: {field_key}")

        coordinate_validator.validate(x, y, width, height)
        coordinate_validator.validate_page(page)

        position = await self.field_repo.next_position(template_id)
        try:
            field = await self.field_repo.create(
                template_id=template_id,
                field_key=field_key,
                label=label,
                required=bool(required),
                page=page,
                x=coordinate_validator.to_ratio(x, "x"),
                y=coordinate_validator.to_ratio(y, "y"),
                width=coordinate_validator.to_ratio(width, "width"),
                height=coordinate_validator.to_ratio(height, "height"),
                position=position,
            )
        except IntegrityError as e:
            # Lost a race against a concurrent insert of the same key
            await self.session.rollback()
            raise DuplicateKeyError(
                f"Field key already exists in this template: {field_key}", original_error=e
            )

        await self._commit()
        LOGGER.info(
            f"Template field created: template_id={template_id}, field_key={field_key}, label={label}"
        )
        return field

    async def _update_field_logic(
        self,
        field_id: UUID,
        label: str,
        required: bool,
        x: Number,
        y: Number,
        width: Number,
        height: Number,
    ) -> TemplateField:
        field = await self.field_repo.get_by_id(field_id)
        if field is None:
            raise NotFoundError(f"Template field not found: {field_id}")
        if label is None:
            raise ValidationError("Field label must not be null")

        coordinate_validator.validate(x, y, width, height)

        field.label = label
        field.required = bool(required)
        field.x = coordinate_validator.to_ratio(x, "x")
        field.y = coordinate_validator.to_ratio(y, "y")
        field.width = coordinate_validator.to_ratio(width, "width")
        field.height = coordinate_validator.to_ratio(height, "height")

        try:
            await self.session.flush()
        except StaleDataError as e:
            await self.session.rollback()
            raise DatabaseError(
                f"Template field {field_id} was modified concurrently", original_error=e
            )

        await self._commit()
        LOGGER.info(f"Template field updated: field_id={field_id}, label={label}")
        return field

    async def _delete_field_logic(self, field_id: UUID) -> None:
        field = await self.field_repo.get_by_id(field_id)
        if field is None:
            raise NotFoundError(f"Template field not found: {field_id}")

        removed_values = await self.value_repo.delete_by_template_field(field_id)
        await self.field_repo.delete(field_id)
        await self._commit()
        LOGGER.info(
            f"Template field deleted: field_id={field_id}, field_key={field.field_key}, "
            f"values_removed={removed_values}"
        )

    async def _delete_all_fields_logic(self, template_id: UUID) -> int:
        template = await self.template_repo.get_by_id(template_id)
        if template is None:
            raise NotFoundError(f"Template not found: {template_id}")

        field_ids = await self.field_repo.list_ids_by_template(template_id)
        removed_values = await self.value_repo.delete_by_template_fields(field_ids)
        removed_fields = await self.field_repo.delete_by_template(template_id)
        await self._commit()
        LOGGER.info(
            f"All template fields deleted: template_id={template_id}, "
            f"fields_removed={removed_fields}, values_removed={removed_values}"
        )
        return removed_fields
