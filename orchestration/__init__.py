"""Orchestration layer - workflow definitions, the engine and its eventing."""

from .base import Workflow
from .branch import Branch, BranchGroup
from .bus import ALL_EVENTS, EventBusProtocol, InMemoryEventBus
from .callbacks import CallbackRegistry
from .context import WorkflowContext
from .errors import (
    ConditionEvaluationError,
    DuplicateStepError,
    ErrorCode,
    InvalidStepError,
    RollbackError,
    StepExecutionError,
    StepNotFoundError,
    UndefinedKeyError,
    WorkflowDefinitionError,
    WorkflowError,
    WorkflowExecutionError,
    WorkflowRuntimeError,
    WorkflowStateError,
)
from .events import Event, EventMetadata
from .models import StepOutcome, StepStatus, WorkflowFailure, WorkflowMetadata, WorkflowResult, WorkflowSuccess
from .orchestrator import Orchestrator
from .step import Step
from .transaction import TransactionFactory, TransactionScope
from .workflow import WorkflowDefinition, branch, on, otherwise, step

__all__ = [
    "Branch",
    "BranchGroup",
    "CallbackRegistry",
    "ConditionEvaluationError",
    "DuplicateStepError",
    "ErrorCode",
    "ALL_EVENTS",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "InMemoryEventBus",
    "InvalidStepError",
    "Orchestrator",
    "RollbackError",
    "Step",
    "StepExecutionError",
    "StepNotFoundError",
    "StepOutcome",
    "StepStatus",
    "TransactionFactory",
    "TransactionScope",
    "UndefinedKeyError",
    "Workflow",
    "WorkflowContext",
    "WorkflowDefinition",
    "WorkflowDefinitionError",
    "WorkflowError",
    "WorkflowExecutionError",
    "WorkflowFailure",
    "WorkflowMetadata",
    "WorkflowResult",
    "WorkflowRuntimeError",
    "WorkflowStateError",
    "WorkflowSuccess",
    "branch",
    "on",
    "otherwise",
    "step",
]
