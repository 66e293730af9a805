import uuid
from types import SimpleNamespace
from decimal import Decimal

import pytest

from docfields.core.exceptions import (
    DuplicateKeyError,
    InvalidGeometryError,
    NotFoundError,
    ValidationError,
)
from docfields.repositories.document_field_value_repository import DocumentFieldValueRepository
from docfields.repositories.template_field_repository import TemplateFieldRepository
from docfields.services.template_field_service import TemplateFieldService


@pytest.fixture
def field_service(session) -> TemplateFieldService:
    return TemplateFieldService(session)


async def _create(service, template, field_key="tenant_name", **overrides):
    params = dict(
        template_id=template.id,
        field_key=field_key,
        label="Tenant Name",
        required=True,
        page=1,
        x=Decimal("0.1"),
        y=Decimal("0.2"),
        width=Decimal("0.3"),
        height=Decimal("0.05"),
    )
    params.update(overrides)
    return await service.create_field(**params)


class TestCreateField:

    @pytest.mark.asyncio
    async def test_creates_field(self, field_service, make_template):
        template = await make_template()

        field = await _create(field_service, template)

        assert field.id is not None
        assert field.template_id == template.id
        assert field.field_key == "tenant_name"
        assert field.x == Decimal("0.1")
        assert field.page == 1

    @pytest.mark.asyncio
    async def test_fields_listed_in_creation_order(self, field_service, make_template):
        template = await make_template()
        for key in ("zeta", "alpha", "mid"):
            await _create(field_service, template, field_key=key, required=key != "mid")

        fields = await field_service.list_fields(template.id)
        required = await field_service.list_required_fields(template.id)

        assert [f.field_key for f in fields] == ["zeta", "alpha", "mid"]
        assert [f.field_key for f in required] == ["zeta", "alpha"]

    @pytest.mark.asyncio
    async def test_duplicate_key_rejected(self, field_service, make_template, session):
        template = await make_template()
        await _create(field_service, template)

        with pytest.raises(DuplicateKeyError):
            await _create(field_service, template, label="Other")

        assert await TemplateFieldRepository(session).count_by_template(template.id) == 1

    @pytest.mark.asyncio
    async def test_same_key_on_other_template_allowed(self, field_service, make_template):
        first = await make_template(name="First")
        second = await make_template(name="Second")

        await _create(field_service, first)
        field = await _create(field_service, second)

        assert field.template_id == second.id

    @pytest.mark.asyncio
    async def test_invalid_geometry_persists_nothing(self, field_service, make_template, session):
        template = await make_template()

        with pytest.raises(InvalidGeometryError) as exc_info:
            await _create(field_service, template, x=Decimal("0.8"), width=Decimal("0.3"))

        assert exc_info.value.bound == "x+width"
        assert await TemplateFieldRepository(session).count_by_template(template.id) == 0

    @pytest.mark.asyncio
    async def test_geometry_checked_at_stored_precision(
        self, field_service, make_template, session
    ):
        template = await make_template()

        with pytest.raises(InvalidGeometryError) as exc_info:
            await _create(
                field_service,
                template,
                x=Decimal("0.333333335"),
                width=Decimal("0.666666665"),
            )

        assert exc_info.value.bound == "x+width"
        assert await TemplateFieldRepository(session).count_by_template(template.id) == 0

    @pytest.mark.asyncio
    async def test_stored_coordinates_match_validated_values(
        self, field_service, make_template, session_factory
    ):
        template = await make_template()
        field = await _create(
            field_service,
            template,
            x=Decimal("0.123456789"),
            width=Decimal("0.876543205"),
        )

        async with session_factory() as fresh:
            stored = await TemplateFieldRepository(fresh).get_by_id(field.id)

        assert stored.x == Decimal("0.12345679")
        assert stored.width == Decimal("0.87654321")
        assert stored.x + stored.width <= 1
        assert (stored.x, stored.width) == (field.x, field.width)

    @pytest.mark.asyncio
    async def test_invalid_page(self, field_service, make_template):
        template = await make_template()
        with pytest.raises(InvalidGeometryError):
            await _create(field_service, template, page=0)

    @pytest.mark.asyncio
    async def test_empty_key(self, field_service, make_template):
        template = await make_template()
        with pytest.raises(ValidationError):
            await _create(field_service, template, field_key="  ")

    @pytest.mark.asyncio
    async def test_unknown_template(self, field_service):
        template = SimpleNamespace(id=uuid.uuid4())
        with pytest.raises(NotFoundError):
            await _create(field_service, template)


class TestUpdateField:

    @pytest.mark.asyncio
    async def test_updates_label_and_geometry(self, field_service, make_template):
        template = await make_template()
        field = await _create(field_service, template)

        updated = await field_service.update_field(
            field.id, "Full Name", False, Decimal("0"), Decimal("0"), Decimal("1"), Decimal("0.1")
        )

        assert updated.label == "Full Name"
        assert updated.required is False
        assert updated.width == Decimal("1")
        assert updated.field_key == "tenant_name"

    @pytest.mark.asyncio
    async def test_invalid_geometry_leaves_field_untouched(
        self, field_service, make_template, session
    ):
        template = await make_template()
        field = await _create(field_service, template)

        with pytest.raises(InvalidGeometryError):
            await field_service.update_field(field.id, "X", True, 0, 0.99, 0.1, 0.1)

        stored = await TemplateFieldRepository(session).get_by_id(field.id)
        assert stored.label == "Tenant Name"
        assert stored.y == Decimal("0.2")

    @pytest.mark.asyncio
    async def test_unknown_field(self, field_service):
        with pytest.raises(NotFoundError):
            await field_service.update_field(uuid.uuid4(), "X", False, 0, 0, 0.1, 0.1)


class TestDeleteFields:

    @pytest.mark.asyncio
    async def test_delete_field_removes_its_values(
        self, field_service, make_template, make_document, session
    ):
        template = await make_template()
        field = await _create(field_service, template)
        document = await make_document(template)
        value_repo = DocumentFieldValueRepository(session)
        await value_repo.upsert(document.id, field.id, "Jane")
        await session.commit()

        await field_service.delete_field(field.id)

        assert await TemplateFieldRepository(session).get_by_id(field.id) is None
        assert await value_repo.count_by_document(document.id) == 0

    @pytest.mark.asyncio
    async def test_delete_all_fields_for_template(self, field_service, make_template, session):
        template = await make_template()
        other = await make_template(name="Other")
        await _create(field_service, template, field_key="a")
        await _create(field_service, template, field_key="b")
        await _create(field_service, other, field_key="a")

        removed = await field_service.delete_all_fields_for_template(template.id)

        repo = TemplateFieldRepository(session)
        assert removed == 2
        assert await repo.count_by_template(template.id) == 0
        assert await repo.count_by_template(other.id) == 1

    @pytest.mark.asyncio
    async def test_delete_unknown_field(self, field_service):
        with pytest.raises(NotFoundError):
            await field_service.delete_field(uuid.uuid4())


class TestGetField:

    @pytest.mark.asyncio
    async def test_get_field(self, field_service, make_template):
        template = await make_template()
        field = await _create(field_service, template)

        found = await field_service.get_field(field.id)

        assert found.id == field.id
        assert found.template_id == template.id
        assert await field_service.get_field(uuid.uuid4()) is None
