"""SQLAlchemy declarative base, engine and session factory."""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from docfields.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def build_engine_options(database_url: str) -> Dict[str, Any]:
    """Build engine keyword arguments for the given database URL.

    Pool sizing only applies to server databases; SQLite URLs get the
    defaults of their own pool class.

    Args:
        database_url: SQLAlchemy async database URL

    Returns:
        Keyword arguments for ``create_async_engine``
    """
    options: Dict[str, Any] = {"echo": settings.database_echo, "future": True}

    if database_url.startswith("sqlite"):
        return options

    options.update(
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if database_url.startswith("postgresql+asyncpg"):
        # Disable prepared statement cache for PgBouncer compatibility
        options["connect_args"] = {"statement_cache_size": 0}
    return options


# Create async engine
engine = create_async_engine(
    settings.database_url,
    **build_engine_options(settings.database_url),
)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

