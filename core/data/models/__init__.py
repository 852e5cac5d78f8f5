"""Database models."""

from .base import Base
from .execution_model import ExecutionModel

__all__ = ["Base", "ExecutionModel"]
