"""Tests for the template field, field value and migration endpoints."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from docfields.core.exceptions import (
    DuplicateKeyError,
    FieldTemplateMismatchError,
    InvalidGeometryError,
    NotFoundError,
)
from docfields.dependencies import get_autosave_queue, get_field_facade
from docfields.main import app
from docfields.schemas.fields import CompletionInfo, MigrationResult, MigrationStatus


def _field(template_id, field_key="tenant_name", required=True):
    now = datetime.now(timezone.utc)
    return SimpleNamespace(
        id=uuid.uuid4(),
        template_id=template_id,
        field_key=field_key,
        label="Tenant Name",
        required=required,
        page=1,
        x=Decimal("0.1"),
        y=Decimal("0.2"),
        width=Decimal("0.3"),
        height=Decimal("0.05"),
        created_at=now,
        updated_at=now,
    )


def _value_row(document_id, field, value):
    return SimpleNamespace(
        id=uuid.uuid4(),
        document_id=document_id,
        template_field_id=field.id,
        template_field=field,
        value=value,
        value_raw=None,
        updated_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def mock_facade() -> AsyncMock:
    facade = AsyncMock()
    app.dependency_overrides[get_field_facade] = lambda: facade
    return facade


class TestTemplateFieldEndpoints:

    def test_create_field(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        mock_facade.create_field.return_value = _field(template_id)

        response = test_client.post(
            f"/api/v1/templates/{template_id}/fields",
            json={"fieldKey": "tenant_name", "label": "Tenant Name", "required": True,
                  "page": 1, "x": 0.1, "y": 0.2, "width": 0.3, "height": 0.05},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["fieldKey"] == "tenant_name"
        assert data["templateId"] == str(template_id)
        kwargs = mock_facade.create_field.call_args.kwargs
        assert kwargs["field_key"] == "tenant_name"
        assert float(kwargs["x"]) == 0.1

    def test_duplicate_key_is_conflict(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.create_field.side_effect = DuplicateKeyError(
            "Field key already exists in this template: tenant_name"
        )

        response = test_client.post(
            f"/api/v1/templates/{uuid.uuid4()}/fields",
            json={"fieldKey": "tenant_name", "label": "Tenant Name",
                  "x": 0.1, "y": 0.2, "width": 0.3, "height": 0.05},
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["status"] == 409
        assert "tenant_name" in detail["detail"]

    def test_invalid_geometry_names_bound(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        field = _field(template_id)
        mock_facade.get_field.return_value = field
        mock_facade.update_field.side_effect = InvalidGeometryError(
            "X + Width must not exceed 1", bound="x+width"
        )

        response = test_client.put(
            f"/api/v1/templates/{template_id}/fields/{field.id}",
            json={"label": "Name", "x": 0.8, "y": 0, "width": 0.3, "height": 0.1},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["extra"] == {"bound": "x+width"}

    def test_list_fields(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        mock_facade.list_fields.return_value = [
            _field(template_id, "a"), _field(template_id, "b", required=False)
        ]

        response = test_client.get(f"/api/v1/templates/{template_id}/fields")

        assert response.status_code == 200
        assert [f["fieldKey"] for f in response.json()] == ["a", "b"]

    def test_list_required_fields(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        mock_facade.list_required_fields.return_value = [_field(template_id, "a")]

        response = test_client.get(f"/api/v1/templates/{template_id}/fields/required")

        assert response.status_code == 200
        mock_facade.list_required_fields.assert_awaited_once_with(template_id)

    def test_update_field(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        field = _field(template_id)
        mock_facade.get_field.return_value = field
        mock_facade.update_field.return_value = field

        response = test_client.put(
            f"/api/v1/templates/{template_id}/fields/{field.id}",
            json={"label": "Tenant Name", "x": 0.1, "y": 0.2, "width": 0.3, "height": 0.05},
        )

        assert response.status_code == 200
        assert mock_facade.update_field.call_args.kwargs["field_id"] == field.id

    def test_update_field_of_other_template(
        self, test_client: TestClient, mock_facade: AsyncMock
    ) -> None:
        field = _field(uuid.uuid4())
        mock_facade.get_field.return_value = field

        response = test_client.put(
            f"/api/v1/templates/{uuid.uuid4()}/fields/{field.id}",
            json={"label": "Name", "x": 0.1, "y": 0, "width": 0.3, "height": 0.1},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Template Field Not Found"
        mock_facade.update_field.assert_not_awaited()

    def test_delete_field(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        field = _field(template_id)
        mock_facade.get_field.return_value = field

        response = test_client.delete(f"/api/v1/templates/{template_id}/fields/{field.id}")

        assert response.status_code == 204
        mock_facade.delete_field.assert_awaited_once_with(field.id)

    def test_delete_field_of_other_template(
        self, test_client: TestClient, mock_facade: AsyncMock
    ) -> None:
        field = _field(uuid.uuid4())
        mock_facade.get_field.return_value = field

        response = test_client.delete(f"/api/v1/templates/{uuid.uuid4()}/fields/{field.id}")

        assert response.status_code == 404
        mock_facade.delete_field.assert_not_awaited()

    def test_delete_unknown_field(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.get_field.return_value = None

        response = test_client.delete(f"/api/v1/templates/{uuid.uuid4()}/fields/{uuid.uuid4()}")

        assert response.status_code == 404
        mock_facade.delete_field.assert_not_awaited()

    def test_delete_all_fields(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.delete_all_fields_for_template.return_value = 3

        response = test_client.delete(f"/api/v1/templates/{uuid.uuid4()}/fields")

        assert response.status_code == 200
        assert response.json()["deleted"] == 3


class TestFieldValueEndpoints:

    def test_upsert_value(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        document_id = uuid.uuid4()
        field = _field(uuid.uuid4())
        mock_facade.upsert_value.return_value = _value_row(document_id, field, "Jane")

        response = test_client.post(
            f"/api/v1/documents/{document_id}/field-values",
            json={"templateFieldId": str(field.id), "value": "Jane"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["value"] == "Jane"
        assert data["fieldKey"] == "tenant_name"
        mock_facade.upsert_value.assert_awaited_once_with(document_id, field.id, "Jane", None)

    def test_autosave_queues_value(self, test_client: TestClient) -> None:
        queue = Mock()
        queue.pending_count.return_value = 1
        app.dependency_overrides[get_autosave_queue] = lambda: queue
        document_id, field_id = uuid.uuid4(), uuid.uuid4()

        response = test_client.post(
            f"/api/v1/documents/{document_id}/field-values/autosave",
            json={"templateFieldId": str(field_id), "value": "Jan"},
        )

        assert response.status_code == 202
        assert response.json() == {
            "documentId": str(document_id),
            "templateFieldId": str(field_id),
            "pending": 1,
        }
        queue.submit.assert_called_once_with(document_id, field_id, "Jan", None)

    def test_mismatched_field_is_bad_request(
        self, test_client: TestClient, mock_facade: AsyncMock
    ) -> None:
        mock_facade.upsert_value.side_effect = FieldTemplateMismatchError("wrong template")

        response = test_client.post(
            f"/api/v1/documents/{uuid.uuid4()}/field-values",
            json={"templateFieldId": str(uuid.uuid4()), "value": "Jane"},
        )

        assert response.status_code == 400

    def test_value_map(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.get_value_map.return_value = {"tenant_name": "Jane", "notes": ""}

        response = test_client.get(f"/api/v1/documents/{uuid.uuid4()}/field-values/map")

        assert response.status_code == 200
        assert response.json() == {"tenant_name": "Jane", "notes": ""}

    def test_completion(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        document_id = uuid.uuid4()
        mock_facade.get_completion.return_value = CompletionInfo(
            document_id=document_id,
            filled_required=2,
            total_required=3,
            is_complete=False,
            missing_labels=["Signature"],
        )

        response = test_client.get(f"/api/v1/documents/{document_id}/field-values/completion")

        assert response.status_code == 200
        data = response.json()
        assert data["filledRequired"] == 2
        assert data["isComplete"] is False
        assert data["missingLabels"] == ["Signature"]

    def test_missing_value_is_not_found(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.get_value.return_value = None

        response = test_client.get(
            f"/api/v1/documents/{uuid.uuid4()}/field-values/{uuid.uuid4()}"
        )

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Field Value Not Found"

    def test_list_values_unknown_document(
        self, test_client: TestClient, mock_facade: AsyncMock
    ) -> None:
        mock_facade.list_values.side_effect = NotFoundError("Document not found")

        response = test_client.get(f"/api/v1/documents/{uuid.uuid4()}/field-values")

        assert response.status_code == 404


class TestMigrationEndpoints:

    def test_migrate_all_templates(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.migrate_all_templates.return_value = MigrationResult(
            total_templates=5, migrated_count=3, skipped_count=1, errors=["Template ID x: bad"]
        )

        response = test_client.post("/api/v1/admin/migration/templates")

        assert response.status_code == 200
        data = response.json()
        assert data["totalTemplates"] == 5
        assert data["errorCount"] == 1
        assert data["isSuccessful"] is False

    def test_migrate_single_template(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        template_id = uuid.uuid4()
        mock_facade.migrate_template.return_value = MigrationStatus(
            template_id=template_id,
            success=True,
            migrated=True,
            message="Migration completed successfully",
        )

        response = test_client.post(f"/api/v1/admin/migration/templates/{template_id}")

        assert response.status_code == 200
        assert response.json()["templateId"] == str(template_id)

    def test_migrate_unknown_template(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.migrate_template.side_effect = NotFoundError("Template not found")

        response = test_client.post(f"/api/v1/admin/migration/templates/{uuid.uuid4()}")

        assert response.status_code == 404

    def test_migrate_documents(self, test_client: TestClient, mock_facade: AsyncMock) -> None:
        mock_facade.migrate_all_documents.return_value = MigrationResult(total_templates=0)

        response = test_client.post("/api/v1/admin/migration/documents")

        assert response.status_code == 200
        assert response.json()["successRate"] == 1.0


def test_root(test_client: TestClient) -> None:
    response = test_client.get("/")
    assert response.status_code == 200
    assert response.json()["health"] == "/health"


def test_health_reports_degraded_database(test_client: TestClient, monkeypatch) -> None:
    from docfields.database.client import db_client

    monkeypatch.setattr(
        db_client,
        "health_check",
        AsyncMock(return_value={"status": "unhealthy", "connected": False, "error": "refused"}),
    )

    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
