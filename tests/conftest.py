"""Pytest configuration and shared fixtures."""

import json
import os

# Must be set before docfields builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docfields.database import models  # noqa: F401
from docfields.database.base import Base
from docfields.database.models import Document, Template, TemplateField
from docfields.main import app


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with foreign keys enforced.

    A file rather than ``:memory:`` so that every session sees the same
    database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'docfields.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_template(session):
    """Persist a template, optionally with a legacy ``coordinateFields`` blob."""

    async def _make(
        coordinate_fields: Any = None,
        name: str = "Lease Agreement",
    ) -> Template:
        if isinstance(coordinate_fields, list):
            coordinate_fields = json.dumps(coordinate_fields)
        template = Template(name=name, coordinate_fields=coordinate_fields)
        session.add(template)
        await session.commit()
        return template

    return _make


@pytest.fixture
def make_document(session):
    async def _make(template: Template, data: Optional[Dict[str, Any]] = None) -> Document:
        document = Document(template_id=template.id, title="Draft", data=data)
        session.add(document)
        await session.commit()
        return document

    return _make


@pytest.fixture
def make_field(session):
    """Persist a template field directly, bypassing the service."""

    async def _make(
        template: Template,
        field_key: str,
        label: Optional[str] = None,
        required: bool = False,
        position: int = 0,
    ) -> TemplateField:
        field = TemplateField(
            template_id=template.id,
            field_key=field_key,
            label=label or field_key.title(),
            required=required,
            page=1,
            x=Decimal("0.1"),
            y=Decimal("0.1"),
            width=Decimal("0.2"),
            height=Decimal("0.05"),
            position=position,
        )
        session.add(field)
        await session.commit()
        return field

    return _make


@pytest.fixture
def legacy_elements() -> List[Dict[str, Any]]:
    """Legacy designer output: two inputs, a date and a table.

    Returns:
        List of raw coordinateFields elements
    """
    return [
        {"id": "tenant_name", "label": "Tenant Name", "type": "text",
         "x": 400, "y": 500, "width": 200, "height": 50, "required": True, "page": 1},
        {"label": "Start Date", "type": "date", "x": 80, "y": 100, "page": 1},
        {"id": "rent_table", "type": "table", "x": 0, "y": 600, "width": 800, "height": 200,
         "tableData": {"rows": [["Month", "Amount"]]}},
        {"id": "signature", "label": "Signature", "type": "signature",
         "x": 560, "y": 900, "width": 200, "height": 60, "required": "true", "page": 2},
    ]
