from .database import DatabaseSettings
from .workflow import WorkflowSettings

__all__ = ["DatabaseSettings", "WorkflowSettings"]
