"""Domain layer - pure domain types shared by the application and data layers."""

from .enums import ExecutionStatus
from .value_objects import ExecutionID

__all__ = ["ExecutionID", "ExecutionStatus"]
