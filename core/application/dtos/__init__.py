"""Application DTOs."""

from .execution_dto import ExecutionDTO

__all__ = ["ExecutionDTO"]
