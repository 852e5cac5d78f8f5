"""Workflow errors - definition-time and runtime error hierarchy."""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from stepwise_sdk.utils.datetime import utc_now


class ErrorCode(str, Enum):
    """Machine readable error codes."""

    CONFIGURATION_ERROR = "configuration_error"
    DUPLICATE_STEP = "duplicate_step"
    STEP_NOT_FOUND = "step_not_found"
    INVALID_STEP = "invalid_step"
    EXECUTION_ERROR = "execution_error"
    WORKFLOW_FAILED = "workflow_failed"
    STEP_FAILED = "step_failed"
    ROLLBACK_FAILED = "rollback_failed"
    CONDITION_FAILED = "condition_failed"
    UNDEFINED_KEY = "undefined_key"
    INVALID_STATE = "invalid_state"


class WorkflowError(Exception):
    """Base class for every error raised by the orchestration layer."""

    default_code = ErrorCode.EXECUTION_ERROR

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[ErrorCode] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.original_error = original_error
        self.context: Dict[str, Any] = dict(context or {})
        self.timestamp = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Serializable description of the error."""
        data: Dict[str, Any] = {
            "error_class": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }
        if self.original_error is not None:
            data["original_error"] = {
                "class": type(self.original_error).__name__,
                "message": str(self.original_error),
            }
        return data

    def detailed_message(self) -> str:
        parts = [self.message, f"Code: {self.code.value}"]
        if self.context:
            parts.append(f"Context: {self.context!r}")
        if self.original_error is not None:
            parts.append(f"Original: {type(self.original_error).__name__}: {self.original_error}")
        return " | ".join(parts)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.detailed_message()}>"


# =============================================================================
# DEFINITION ERRORS (raised while a workflow is being declared)
# =============================================================================

class WorkflowDefinitionError(WorkflowError):
    """Structural problem in a workflow definition."""

    default_code = ErrorCode.CONFIGURATION_ERROR


class DuplicateStepError(WorkflowDefinitionError):
    """Two steps (or two forks) share a name."""

    default_code = ErrorCode.DUPLICATE_STEP


class StepNotFoundError(WorkflowDefinitionError):
    """A step requires a step that is not declared before it."""

    default_code = ErrorCode.STEP_NOT_FOUND


class InvalidStepError(WorkflowDefinitionError):
    """A step or fork was declared with invalid arguments."""

    default_code = ErrorCode.INVALID_STEP


# =============================================================================
# RUNTIME ERRORS
# =============================================================================

class WorkflowRuntimeError(WorkflowError):
    """Failure while a workflow is running."""


class StepExecutionError(WorkflowRuntimeError):
    """A required step's service raised or returned a failure."""

    default_code = ErrorCode.STEP_FAILED

    def __init__(
        self,
        step: str,
        message: str,
        *,
        errors: Optional[Dict[str, Any]] = None,
        steps_executed: Sequence[str] = (),
        branch: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.step = step
        self.errors: Dict[str, Any] = dict(errors or {})
        self.steps_executed: List[str] = list(steps_executed)
        self.branch = branch
        context: Dict[str, Any] = {
            "step": step,
            "steps_executed": self.steps_executed,
            "errors": self.errors,
        }
        if branch is not None:
            context["branch"] = branch
        super().__init__(
            f"Step {step} failed: {message}",
            original_error=original_error,
            context=context,
        )
        self.reason = message

    def with_steps_executed(self, steps_executed: Sequence[str]) -> "StepExecutionError":
        """Attach the steps that ran before the failure."""
        self.steps_executed = list(steps_executed)
        self.context["steps_executed"] = self.steps_executed
        return self


class RollbackError(WorkflowRuntimeError):
    """
    One or more rollback actions raised while compensating for a failure.

    Supersedes the original failure as the surfaced error but keeps it in
    ``original_error`` and in ``context["failed_at_step"]``.
    """

    default_code = ErrorCode.ROLLBACK_FAILED

    def __init__(
        self,
        original_error: WorkflowRuntimeError,
        failures: Sequence[Tuple[str, BaseException]],
        *,
        failed_at_step: Optional[str] = None,
    ) -> None:
        self.failures: List[Tuple[str, BaseException]] = list(failures)
        self.failed_at_step = failed_at_step
        self.rollback_failed_at_step = self.failures[0][0]
        first_step, first_error = self.failures[0]
        super().__init__(
            f"Rollback failed for step {first_step}: {first_error} "
            f"(while compensating for: {original_error.message})",
            original_error=original_error,
            context={
                "failed_at_step": failed_at_step,
                "rollback_failed_at_step": self.rollback_failed_at_step,
                "rollback_failures": [
                    {"step": name, "error": str(error)} for name, error in self.failures
                ],
                "original_message": original_error.message,
            },
        )


class WorkflowExecutionError(WorkflowRuntimeError):
    """Unexpected failure outside a step's service call (a hook raised, ...)."""

    default_code = ErrorCode.WORKFLOW_FAILED


class WorkflowStateError(WorkflowRuntimeError):
    """A workflow instance was used in a state that does not allow it."""

    default_code = ErrorCode.INVALID_STATE


class ConditionEvaluationError(WorkflowRuntimeError):
    """A step condition or branch guard raised. Never surfaced to callers."""

    default_code = ErrorCode.CONDITION_FAILED


class UndefinedKeyError(WorkflowRuntimeError, KeyError):
    """A context key was read before it was ever set."""

    default_code = ErrorCode.UNDEFINED_KEY

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Undefined context key: {key!r}", context={"key": key})

    def __str__(self) -> str:
        return self.message
