from .execution_commands import RecordExecutionCommand

__all__ = ["RecordExecutionCommand"]
