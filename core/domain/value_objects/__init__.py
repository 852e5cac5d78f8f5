"""Domain value objects."""

from .execution_id import ExecutionID

__all__ = ["ExecutionID"]
