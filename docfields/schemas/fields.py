"""Request/response schemas for template fields, values, completion and migration."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TemplateFieldCreate(BaseModel):
    """Payload for creating a template field."""

    field_key: str = Field(..., alias="fieldKey", min_length=1, description="Key unique within the template")
    label: str = Field(..., description="Label shown to the person filling the document")
    required: bool = Field(default=False)
    page: int = Field(default=1, description="1-based page number")
    x: Decimal = Field(..., description="Left edge as a fraction of page width")
    y: Decimal = Field(..., description="Top edge as a fraction of page height")
    width: Decimal = Field(..., description="Width as a fraction of page width")
    height: Decimal = Field(..., description="Height as a fraction of page height")

    model_config = ConfigDict(populate_by_name=True)


class TemplateFieldUpdate(BaseModel):
    """Payload for editing a template field. ``fieldKey`` and ``page`` are fixed."""

    label: str
    required: bool = False
    x: Decimal
    y: Decimal
    width: Decimal
    height: Decimal


class TemplateFieldResponse(BaseModel):
    id: UUID
    template_id: UUID = Field(..., serialization_alias="templateId")
    field_key: str = Field(..., serialization_alias="fieldKey")
    label: str
    required: bool
    page: int
    x: Decimal
    y: Decimal
    width: Decimal
    height: Decimal
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class FieldValueUpsert(BaseModel):
    """Payload for saving the value of one field on a document."""

    template_field_id: UUID = Field(..., alias="templateFieldId")
    value: Optional[str] = None
    value_raw: Optional[Any] = Field(default=None, alias="valueRaw")

    model_config = ConfigDict(populate_by_name=True)


class FieldValueResponse(BaseModel):
    id: UUID
    document_id: UUID = Field(..., serialization_alias="documentId")
    template_field_id: UUID = Field(..., serialization_alias="templateFieldId")
    field_key: str = Field(..., serialization_alias="fieldKey")
    label: str
    required: bool
    value: Optional[str] = None
    value_raw: Optional[Any] = Field(default=None, serialization_alias="valueRaw")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")

    @classmethod
    def from_row(cls, row: Any) -> "FieldValueResponse":
        field = row.template_field
        return cls(
            id=row.id,
            document_id=row.document_id,
            template_field_id=row.template_field_id,
            field_key=field.field_key,
            label=field.label,
            required=field.required,
            value=row.value,
            value_raw=row.value_raw,
            updated_at=row.updated_at,
        )


class CompletionInfo(BaseModel):
    """Required-field completion of a document.

    Reported only; gating workflow transitions on it is up to the caller.
    """

    document_id: UUID = Field(..., serialization_alias="documentId")
    filled_required: int = Field(..., serialization_alias="filledRequired")
    total_required: int = Field(..., serialization_alias="totalRequired")
    is_complete: bool = Field(..., serialization_alias="isComplete")
    missing_labels: List[str] = Field(default_factory=list, serialization_alias="missingLabels")


class MigrationResult(BaseModel):
    """Outcome of a batch migration run."""

    total_templates: int = Field(default=0, serialization_alias="totalTemplates")
    migrated_count: int = Field(default=0, serialization_alias="migratedCount")
    skipped_count: int = Field(default=0, serialization_alias="skippedCount")
    errors: List[str] = Field(default_factory=list)

    @computed_field(alias="errorCount")
    @property
    def error_count(self) -> int:
        return len(self.errors)

    @computed_field(alias="isSuccessful")
    @property
    def is_successful(self) -> bool:
        return self.error_count == 0

    @computed_field(alias="successRate")
    @property
    def success_rate(self) -> float:
        if self.total_templates == 0:
            return 1.0
        return (self.migrated_count + self.skipped_count) / self.total_templates


class MigrationStatus(BaseModel):
    """Outcome of migrating a single template."""

    template_id: UUID = Field(..., serialization_alias="templateId")
    success: bool
    migrated: bool
    message: str


class ErrorDetail(BaseModel):
    """RFC 7807 style error body."""

    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime
    extra: Optional[Dict[str, Any]] = None
