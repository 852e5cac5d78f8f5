"""Orchestration models - StepOutcome, WorkflowMetadata, WorkflowSuccess, WorkflowFailure."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from core.domain.enums.execution_status import ExecutionStatus

from .context import WorkflowContext
from .errors import ErrorCode, WorkflowRuntimeError


class StepStatus(str, Enum):
    """How a single step ended."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    OPTIONAL_FAILURE = "optional_failure"


@dataclass
class StepOutcome:
    """Result of a workflow step execution."""

    name: str
    status: StepStatus
    output: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status is StepStatus.SUCCEEDED

    @property
    def skipped(self) -> bool:
        return self.status is StepStatus.SKIPPED

    @property
    def optional_failure(self) -> bool:
        return self.status is StepStatus.OPTIONAL_FAILURE


@dataclass
class WorkflowMetadata:
    """Bookkeeping collected while a workflow runs."""

    workflow: str
    execution_id: str
    state: ExecutionStatus = ExecutionStatus.NOT_STARTED
    steps_executed: List[str] = field(default_factory=list)
    steps_skipped: List[str] = field(default_factory=list)
    optional_failures: List[str] = field(default_factory=list)
    branch_decisions: Dict[str, str] = field(default_factory=dict)
    duration_ms: Optional[float] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    failed_step: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        if self.failed_step is None:
            del data["failed_step"]
        return data


@dataclass
class WorkflowSuccess:
    """Result of a workflow whose steps all completed."""

    context: WorkflowContext
    metadata: WorkflowMetadata
    message: str = "Workflow completed successfully"

    success = True

    @property
    def state(self) -> ExecutionStatus:
        return self.metadata.state

    @property
    def steps_executed(self) -> List[str]:
        return self.metadata.steps_executed

    @property
    def steps_skipped(self) -> List[str]:
        return self.metadata.steps_skipped

    @property
    def branch_decisions(self) -> Dict[str, str]:
        return self.metadata.branch_decisions


@dataclass
class WorkflowFailure:
    """
    Result of a workflow that halted.

    ``error`` is the surfaced error: a RollbackError when compensation
    itself failed (its ``original_error`` is the step failure), otherwise
    the step or workflow failure.
    """

    error: WorkflowRuntimeError
    context: WorkflowContext
    metadata: WorkflowMetadata
    rollback_succeeded: Optional[bool] = None

    success = False

    @property
    def kind(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.context.errors.get("message") or self.error.message

    @property
    def errors(self) -> Dict[str, Any]:
        return self.context.errors

    @property
    def state(self) -> ExecutionStatus:
        return self.metadata.state

    @property
    def failed_step(self) -> Optional[str]:
        return self.metadata.failed_step

    @property
    def steps_executed(self) -> List[str]:
        return self.metadata.steps_executed

    @property
    def steps_skipped(self) -> List[str]:
        return self.metadata.steps_skipped

    @property
    def branch_decisions(self) -> Dict[str, str]:
        return self.metadata.branch_decisions

    def raise_error(self) -> None:
        """Raise the surfaced error, for callers preferring exceptions."""
        raise self.error


WorkflowResult = Union[WorkflowSuccess, WorkflowFailure]
