"""
Execution Status Enum.

Lifecycle states of a single workflow run.
"""
from enum import Enum


class ExecutionStatus(str, Enum):
    """Workflow run states.

    NOT_STARTED -> RUNNING -> COMPLETED | FAILED | ROLLED_BACK
    """

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ExecutionStatus.COMPLETED,
            ExecutionStatus.FAILED,
            ExecutionStatus.ROLLED_BACK,
        )
