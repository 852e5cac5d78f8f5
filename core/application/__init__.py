"""Application layer - service contract, commands and DTOs."""

from .commands import RecordExecutionCommand
from .dtos import ExecutionDTO
from .services import BaseService, ExecutionService, ServiceResult

__all__ = [
    # Commands
    "RecordExecutionCommand",
    # DTOs
    "ExecutionDTO",
    # Services
    "BaseService",
    "ExecutionService",
    "ServiceResult",
]
