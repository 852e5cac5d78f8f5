"""Workflow step - one service invocation inside a workflow."""

import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple, Union

from core.application.services.base import ServiceResult
from stepwise_sdk.logging import get_logger
from stepwise_sdk.utils.awaitables import maybe_await

from .context import WorkflowContext
from .errors import ConditionEvaluationError, InvalidStepError, StepExecutionError
from .models import StepOutcome, StepStatus

logger = get_logger("orchestration.step")

# Callables receiving the context; plain functions or coroutine functions
Condition = Callable[[WorkflowContext], Union[bool, Awaitable[bool]]]
InputMapper = Callable[[WorkflowContext], Union[Mapping, Awaitable[Mapping]]]
RollbackAction = Callable[[WorkflowContext], Union[None, Awaitable[None]]]
ServiceFactory = Callable[[Any, Dict[str, Any]], Any]


async def evaluate_condition(
    condition: Condition, context: WorkflowContext, label: str
) -> bool:
    """Evaluate a condition against the context.

    Raises:
        ConditionEvaluationError: If the condition itself raised
    """
    try:
        return bool(await maybe_await(condition(context)))
    except Exception as exc:
        raise ConditionEvaluationError(
            f"Condition of {label} raised: {exc}",
            original_error=exc,
            context={"target": label},
        ) from exc


class Step:
    """
    A single step in a workflow.

    Wraps a service class and describes how data flows into it, whether a
    failure halts the workflow, when it runs and how to compensate for it.

    Usage:
        Step(
            "create_order",
            CreateOrderService,
            input_mapper=lambda ctx: {"items": ctx.get("cart_items")},
            condition=lambda ctx: bool(ctx.get("cart_items")),
            rollback=lambda ctx: ctx.get("create_order").delete(),
        )
    """

    def __init__(
        self,
        name: str,
        service: ServiceFactory,
        *,
        input_mapper: Optional[InputMapper] = None,
        optional: bool = False,
        condition: Optional[Condition] = None,
        rollback: Optional[RollbackAction] = None,
        requires: Sequence[str] = (),
    ) -> None:
        if not isinstance(name, str) or not name:
            raise InvalidStepError(
                "Step name must be a non-empty string", context={"name": repr(name)}
            )
        if not callable(service):
            raise InvalidStepError(
                f"Step {name}: service must be a service class or factory",
                context={"step": name},
            )
        for label, value in (("input", input_mapper), ("condition", condition), ("rollback", rollback)):
            if value is not None and not callable(value):
                raise InvalidStepError(
                    f"Step {name}: {label} must be callable", context={"step": name}
                )

        self._name = name
        self.service = service
        self.input_mapper = input_mapper
        self.optional = optional
        self.condition = condition
        self.rollback_action = rollback
        self.requires: Tuple[str, ...] = tuple(requires)

    @property
    def name(self) -> str:
        return self._name

    @property
    def error_key(self) -> str:
        """Context key holding this step's error when it is optional."""
        return f"{self._name}_error"

    @property
    def has_rollback(self) -> bool:
        return self.rollback_action is not None

    async def should_skip(self, context: WorkflowContext) -> bool:
        """True when a condition is set and does not hold.

        A condition that raises counts as not met.
        """
        if self.condition is None:
            return False
        try:
            return not await evaluate_condition(self.condition, context, f"step {self._name}")
        except ConditionEvaluationError as exc:
            logger.warning(f"{exc.message}; skipping step")
            return True

    async def build_input(
        self, context: WorkflowContext, base_params: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Params for the service: the mapper's result, else ``base_params``."""
        if self.input_mapper is None:
            return dict(base_params)
        return dict(await maybe_await(self.input_mapper(context)) or {})

    async def execute(
        self, context: WorkflowContext, user: Any, base_params: Mapping[str, Any]
    ) -> StepOutcome:
        """
        Execute the step.

        Args:
            context: The workflow context
            user: The user the workflow runs for
            base_params: The workflow's initial params

        Returns:
            StepOutcome (succeeded, skipped or optional failure)

        Raises:
            StepExecutionError: If a required step's service failed
        """
        if await self.should_skip(context):
            logger.info(f"Step {self._name} skipped due to condition")
            return StepOutcome(name=self._name, status=StepStatus.SKIPPED)

        started = time.perf_counter()
        try:
            params = await self.build_input(context, base_params)
            result = await maybe_await(self.service(user, params).call())
        except Exception as exc:
            return self._handle_failure(context, str(exc) or type(exc).__name__, {}, exc, started)

        if not _is_success(result):
            message, errors = _failure_details(result)
            return self._handle_failure(context, message, errors, None, started)

        output = _extract_output(result)
        context.add(self._name, output)
        return StepOutcome(
            name=self._name,
            status=StepStatus.SUCCEEDED,
            output=output,
            duration_ms=_elapsed_ms(started),
        )

    async def rollback(self, context: WorkflowContext) -> None:
        """Run the rollback action, if any. Exceptions propagate."""
        if self.rollback_action is None:
            return
        await maybe_await(self.rollback_action(context))

    def _handle_failure(
        self,
        context: WorkflowContext,
        message: str,
        errors: Dict[str, Any],
        exc: Optional[BaseException],
        started: float,
    ) -> StepOutcome:
        if not self.optional:
            raise StepExecutionError(
                self._name, message, errors=errors, original_error=exc
            )

        logger.warning(f"Optional step {self._name} failed but continuing: {message}")
        context.add(self.error_key, {"message": message, **errors})
        return StepOutcome(
            name=self._name,
            status=StepStatus.OPTIONAL_FAILURE,
            error=message,
            duration_ms=_elapsed_ms(started),
        )

    def __repr__(self) -> str:
        return f"<Step name={self._name!r} optional={self.optional}>"


# =============================================================================
# SERVICE RESULT HELPERS
# =============================================================================

def _is_success(result: Any) -> bool:
    if isinstance(result, ServiceResult):
        return result.success
    if isinstance(result, Mapping):
        return bool(result.get("success"))
    return bool(getattr(result, "success", False))


def _failure_details(result: Any) -> Tuple[str, Dict[str, Any]]:
    if isinstance(result, Mapping):
        message = result.get("message") or result.get("error")
        errors = result.get("errors") or {}
    elif hasattr(result, "success"):
        message = getattr(result, "message", None)
        errors = getattr(result, "errors", None) or {}
    else:
        return f"Service returned an invalid result: {result!r}", {}
    if not isinstance(errors, Mapping):
        errors = {"errors": errors}
    return message or "Service call failed", dict(errors)


def _extract_output(result: Any) -> Any:
    if isinstance(result, ServiceResult):
        return result.output()
    if isinstance(result, Mapping):
        if "resource" in result:
            return result["resource"]
        if "items" in result:
            return result["items"]
    return result


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
