"""SQLAlchemy models for all database tables."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docfields.database.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Page-ratio coordinates: 0.00000000 .. 1.00000000
RatioType = Numeric(10, 8, asdecimal=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Template(Base):
    """Reusable PDF-backed form definition.

    ``coordinate_fields`` holds the legacy freeform JSON array of field
    descriptors that predates the normalized ``template_fields`` table.
    """

    __tablename__ = "templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    pdf_file_path: Mapped[str | None] = mapped_column(String, nullable=True)
    coordinate_fields: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class Document(Base):
    """A filled-in instance of a template moving through editing/review/complete."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="editing"
    )  # editing | review | complete
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (Index("ix_documents_template_id", "template_id"),)


class TemplateField(Base):
    """Normalized input slot positioned on a template page by ratios."""

    __tablename__ = "template_fields"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False
    )
    field_key: Mapped[str] = mapped_column(String, nullable=False)
    label: Mapped[str] = mapped_column(String, nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    page: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    x: Mapped[Decimal] = mapped_column(RatioType, nullable=False)
    y: Mapped[Decimal] = mapped_column(RatioType, nullable=False)
    width: Mapped[Decimal] = mapped_column(RatioType, nullable=False)
    height: Mapped[Decimal] = mapped_column(RatioType, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("template_id", "field_key", name="uq_template_field_key"),
        Index("ix_template_fields_template_position", "template_id", "position"),
    )
    __mapper_args__ = {"version_id_col": version_id}


class DocumentFieldValue(Base):
    """Value held by one document for one template field."""

    __tablename__ = "document_field_values"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    template_field_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("template_fields.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_raw: Mapped[Any] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    template_field: Mapped["TemplateField"] = relationship("TemplateField", lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "document_id", "template_field_id", name="uq_document_field_value"
        ),
    )
