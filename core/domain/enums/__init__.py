from .execution_status import ExecutionStatus

__all__ = ["ExecutionStatus"]
