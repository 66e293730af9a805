"""Database module for SQLAlchemy models and session management."""

from docfields.database.base import Base, engine
from docfields.database.client import DatabaseClient, db_client, init_database, close_database
from docfields.database.models import (
    Document,
    DocumentFieldValue,
    Template,
    TemplateField,
)
from docfields.database.session import get_async_session

__all__ = [
    "Base",
    "engine",
    "get_async_session",
    "DatabaseClient",
    "db_client",
    "init_database",
    "close_database",
    "Template",
    "Document",
    "TemplateField",
    "DocumentFieldValue",
]
