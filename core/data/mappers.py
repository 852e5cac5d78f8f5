"""Static mappers between execution commands, ORM models and DTOs."""

from core.application.commands.execution_commands import RecordExecutionCommand
from core.application.dtos.execution_dto import ExecutionDTO

from .models.execution_model import ExecutionModel


class ExecutionMapper:
    """Static mapper for RecordExecutionCommand ↔ ExecutionModel ↔ ExecutionDTO."""

    @staticmethod
    def to_persistence(command: RecordExecutionCommand) -> ExecutionModel:
        """Convert a record command to a new ORM model.

        Args:
            command: RecordExecutionCommand

        Returns:
            ExecutionModel instance (not yet added to a session)
        """
        return ExecutionModel(
            execution_id=str(command.execution_id),
            workflow=command.workflow,
            status=command.status,
            steps_executed=list(command.steps_executed),
            steps_skipped=list(command.steps_skipped),
            failed_step=command.failed_step,
            error_message=command.error_message,
            duration_ms=command.duration_ms,
            started_at=command.started_at,
            finished_at=command.finished_at,
        )

    @staticmethod
    def update_persistence(command: RecordExecutionCommand, model: ExecutionModel) -> None:
        """Overwrite the mutable columns of an existing model."""
        model.status = command.status
        model.steps_executed = list(command.steps_executed)
        model.steps_skipped = list(command.steps_skipped)
        model.failed_step = command.failed_step
        model.error_message = command.error_message
        model.duration_ms = command.duration_ms
        model.finished_at = command.finished_at

    @staticmethod
    def to_dto(model: ExecutionModel) -> ExecutionDTO:
        """Convert ORM model to DTO.

        Args:
            model: ExecutionModel instance

        Returns:
            ExecutionDTO
        """
        return ExecutionDTO.model_validate(model)
