"""Application services."""
from .base import BaseService, ServiceResult
from .execution_service import ExecutionService

__all__ = ["BaseService", "ExecutionService", "ServiceResult"]
