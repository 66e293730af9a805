"""Database client for the field store schema."""

from typing import List

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

from docfields.database.base import Base, engine
from docfields.utils.logging import get_logger

# Register all tables on Base.metadata before create_all runs
from docfields.database import models  # noqa: F401

LOGGER = get_logger(__name__)


class DatabaseClient:
    """Connection checks and schema management for the field store tables."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @property
    def expected_tables(self) -> List[str]:
        return sorted(Base.metadata.tables.keys())

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            LOGGER.info(f"Database connection successful ({self.engine.dialect.name})")
            return True

        except Exception:
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def disconnect(self) -> None:
        """Dispose the engine's connection pool."""
        try:
            await self.engine.dispose()
            LOGGER.info("Database connection closed")
        except Exception as e:
            LOGGER.error(
                "Error closing database connection",
                exc_info=True,
                extra={"error": str(e)}
            )

    async def missing_tables(self) -> List[str]:
        """Field store tables that do not exist yet."""
        async with self.engine.connect() as conn:
            existing = await conn.run_sync(
                lambda sync_conn: set(inspect(sync_conn).get_table_names())
            )
        return [name for name in self.expected_tables if name not in existing]

    async def create_tables(self) -> List[str]:
        """Create missing field store tables; existing ones are left alone.

        Returns:
            Names of the tables that were created
        """
        missing = await self.missing_tables()
        if not missing:
            LOGGER.info("Field store tables already present")
            return []

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            LOGGER.error(
                "Failed to create field store tables",
                exc_info=True,
                extra={"error": str(e)}
            )
            raise

        LOGGER.info(f"Field store tables created: {', '.join(missing)}")
        return missing

    async def drop_tables(self) -> None:
        """Drop every field store table, including its data."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            LOGGER.error(
                "Failed to drop field store tables",
                exc_info=True,
                extra={"error": str(e)}
            )
            raise

        LOGGER.warning("All field store tables dropped")

    async def health_check(self) -> dict:
        """Report reachability and whether the schema is complete."""
        try:
            missing = await self.missing_tables()
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e),
            }

        health = {
            "status": "healthy" if not missing else "degraded",
            "connected": True,
            "database": self.engine.dialect.name,
            "missing_tables": missing,
        }
        if missing:
            health["error"] = f"Missing tables: {', '.join(missing)}"
        return health


db_client = DatabaseClient(engine)


async def init_database(auto_migrate: bool = True, drop_existing: bool = False) -> None:
    """Connect and, when ``auto_migrate`` is set, create missing tables.

    Args:
        auto_migrate: Create missing tables on startup
        drop_existing: Drop all tables first (data loss)
    """
    await db_client.connect()

    if auto_migrate:
        if drop_existing:
            await db_client.drop_tables()
        await db_client.create_tables()
    else:
        missing = await db_client.missing_tables()
        if missing:
            LOGGER.warning(
                f"Field store tables missing, run alembic upgrade head: {', '.join(missing)}"
            )

    LOGGER.info("Database initialization completed")


async def close_database() -> None:
    await db_client.disconnect()
