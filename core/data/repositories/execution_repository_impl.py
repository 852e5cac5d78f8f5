"""SQLAlchemy repository for recorded workflow runs."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.application.commands.execution_commands import RecordExecutionCommand
from core.domain.value_objects import ExecutionID

from ..mappers import ExecutionMapper
from ..models.execution_model import ExecutionModel


class SqlAlchemyExecutionRepository:
    """Persists workflow runs in the workflow_executions table."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with SQLAlchemy session.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    async def save(self, command: RecordExecutionCommand) -> ExecutionModel:
        """Insert or update the record for ``command.execution_id``.

        Args:
            command: RecordExecutionCommand

        Returns:
            The flushed ExecutionModel
        """
        existing = await self._find_model(command.execution_id)

        if existing:
            ExecutionMapper.update_persistence(command, existing)
            model = existing
        else:
            model = ExecutionMapper.to_persistence(command)

        self._session.add(model)
        await self._session.flush()  # Propagate to DB without committing
        return model

    async def find_by_id(self, execution_id: ExecutionID) -> Optional[ExecutionModel]:
        """Retrieve a run by its execution id.

        Args:
            execution_id: ExecutionID of the run

        Returns:
            ExecutionModel if found, None otherwise
        """
        return await self._find_model(execution_id)

    async def find_by_workflow(self, workflow: str, limit: int = 100) -> List[ExecutionModel]:
        """List the most recent runs of one workflow.

        Args:
            workflow: Workflow name
            limit: Maximum number of rows to return

        Returns:
            List of ExecutionModel, newest first
        """
        result = await self._session.execute(
            select(ExecutionModel)
            .where(ExecutionModel.workflow == workflow)
            .order_by(ExecutionModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _find_model(self, execution_id: ExecutionID) -> Optional[ExecutionModel]:
        result = await self._session.execute(
            select(ExecutionModel).where(ExecutionModel.execution_id == str(execution_id))
        )
        return result.scalar_one_or_none()
