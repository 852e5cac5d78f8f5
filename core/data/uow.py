"""Unit of Work pattern for atomic transactions."""

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.value_objects import ExecutionID
from stepwise_sdk.logging import get_logger

from .repositories.execution_repository_impl import SqlAlchemyExecutionRepository

logger = get_logger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern for atomic transactions.

    Responsibilities:
    1. Manage SQLAlchemy session lifecycle
    2. Propagate ExecutionID across all operations
    3. Atomic commit/rollback of all repository operations
    4. Lazy initialization of repositories

    A UnitOfWork is also the transaction scope used by transactional
    workflows: the engine enters it, commits on success and rolls it back
    on failure. Anything left uncommitted is discarded on exit.

    Usage:
        async with UnitOfWork(session_factory) as uow:
            uow.session.add(model)
            await uow.commit()
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        """Initialize Unit of Work.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
        self._execution_id: Optional[ExecutionID] = None

        # Lazy-loaded repositories
        self._execution_repository: Optional[SqlAlchemyExecutionRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        """Start transaction scope."""
        self._session = self._session_factory()
        self._execution_id = ExecutionID.generate()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Roll back on exception, then release the session."""
        if exc_type is not None:
            logger.error(f"Transaction failed: {exc_val}")
            await self._session.rollback()
        await self._session.close()
        self._session = None
        self._execution_repository = None

    @property
    def execution_id(self) -> ExecutionID:
        """Get current execution ID for tracing.

        Returns:
            ExecutionID value object
        """
        if self._execution_id is None:
            raise RuntimeError("UnitOfWork not initialized. Use async context manager.")
        return self._execution_id

    @property
    def session(self) -> AsyncSession:
        """Session bound to this unit of work."""
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use async context manager.")
        return self._session

    @property
    def executions(self) -> SqlAlchemyExecutionRepository:
        """Lazy-load execution repository.

        Returns:
            SqlAlchemyExecutionRepository instance
        """
        if self._execution_repository is None:
            self._execution_repository = SqlAlchemyExecutionRepository(self.session)
        return self._execution_repository

    async def commit(self) -> None:
        """Commit all pending changes."""
        try:
            await self.session.commit()
            logger.info("Transaction committed")
        except Exception as e:
            logger.error(f"Commit failed: {e}")
            await self.rollback()
            raise

    async def rollback(self) -> None:
        """Rollback all pending changes."""
        await self.session.rollback()
        logger.warning("Transaction rolled back")


def create_uow(session_factory: async_sessionmaker) -> UnitOfWork:
    """Create a new Unit of Work instance.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        UnitOfWork instance
    """
    return UnitOfWork(session_factory)


def uow_factory(session_factory: async_sessionmaker) -> Callable[[], UnitOfWork]:
    """Return a zero-argument factory usable as a workflow transaction factory.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        Callable creating a fresh UnitOfWork per workflow run
    """
    return lambda: create_uow(session_factory)
