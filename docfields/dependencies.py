"""Centralized dependency injection for FastAPI application."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docfields.database.base import async_session_maker
from docfields.database.session import get_async_session
from docfields.services.autosave import AutosaveQueue
from docfields.services.field_facade import FieldFacade
from docfields.services.template_migration_service import CanvasSize


def get_session_factory() -> async_sessionmaker:
    """Session factory used for migration's per-template transactions."""
    return async_session_maker


async def get_field_facade(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    session_factory: Annotated[async_sessionmaker, Depends(get_session_factory)],
) -> FieldFacade:
    """Get field facade instance.

    Args:
        db_session: Database session from dependency injection
        session_factory: Factory for independent migration transactions

    Returns:
        FieldFacade: Entry point for field, value, completion and migration operations
    """
    return FieldFacade(db_session, session_factory=session_factory, canvas=CanvasSize.from_settings())


def get_autosave_queue(request: Request) -> AutosaveQueue:
    """Application-wide autosave queue created at startup."""
    return request.app.state.autosave_queue
