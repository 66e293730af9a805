from typing import Optional, Any
from abc import ABC, abstractmethod

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docfields.core.exceptions import AppError, DatabaseError
from docfields.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for field store services.

    Write operations go through ``execute(action=...)``, which dispatches to
    ``run`` and maps unexpected failures onto the ``AppError`` hierarchy.
    """

    def __init__(self, session: Optional[AsyncSession] = None, auto_commit: bool = True):
        """Initialize the service.

        Args:
            session: Database session the service writes through
            auto_commit: Commit after each successful write. Callers that
                batch several writes into one transaction pass False and
                commit themselves.
        """
        self.session = session
        self.auto_commit = auto_commit
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        """Run one service action.

        Raises:
            AppError: Domain errors pass through unchanged
            DatabaseError: The database rejected the operation
        """
        service = self.__class__.__name__
        self.logger.debug(f"{service} running action={kwargs.get('action')}")
        try:
            return await self.run(*args, **kwargs)

        except AppError:
            raise

        except SQLAlchemyError as e:
            self.logger.error(
                f"Database operation failed: {str(e)}",
                exc_info=True,
                extra={"service": service}
            )
            raise DatabaseError(f"Database operation failed: {str(e)}", original_error=e)

        except Exception as e:
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": service}
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

    async def _commit(self) -> None:
        if self.auto_commit and self.session is not None:
            await self.session.commit()

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Run the core service logic.

        Must be implemented by subclasses.
        """
        pass
