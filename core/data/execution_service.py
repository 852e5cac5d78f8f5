"""SQLAlchemy-backed ExecutionService."""

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.commands.execution_commands import RecordExecutionCommand
from core.application.dtos.execution_dto import ExecutionDTO
from core.application.services.execution_service import ExecutionService

from .mappers import ExecutionMapper
from .uow import create_uow


class SqlAlchemyExecutionService(ExecutionService):
    """
    Records workflow runs in the database.

    Each record is written in its own unit of work, so a run whose
    transaction was rolled back is still recorded.
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        """Initialize execution service.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory

    async def record_execution(self, command: RecordExecutionCommand) -> ExecutionDTO:
        """Persist one workflow run.

        Args:
            command: Record execution command

        Returns:
            ExecutionDTO of the stored row
        """
        uow = create_uow(self._session_factory)
        async with uow:
            model = await uow.executions.save(command)
            dto = ExecutionMapper.to_dto(model)
            await uow.commit()
            return dto
