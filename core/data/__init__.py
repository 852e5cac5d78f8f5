"""Data layer - infrastructure persistence and mapping."""

from .execution_service import SqlAlchemyExecutionService
from .mappers import ExecutionMapper
from .models import Base, ExecutionModel
from .repositories import SqlAlchemyExecutionRepository
from .uow import UnitOfWork, create_uow, uow_factory

__all__ = [
    "Base",
    "create_uow",
    "ExecutionMapper",
    "ExecutionModel",
    "SqlAlchemyExecutionRepository",
    "SqlAlchemyExecutionService",
    "UnitOfWork",
    "uow_factory",
]
