"""Orchestrator - the workflow engine: runs steps, forks, hooks, transactions and rollback."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from core.application.commands.execution_commands import RecordExecutionCommand
from core.application.services.execution_service import ExecutionService
from core.domain.enums.execution_status import ExecutionStatus
from core.domain.value_objects import ExecutionID
from core.settings import get_app_settings
from stepwise_sdk.logging import get_logger
from stepwise_sdk.utils.datetime import utc_now

from . import events
from .branch import BranchGroup
from .bus import EventBusProtocol
from .context import WorkflowContext
from .errors import (
    RollbackError,
    StepExecutionError,
    WorkflowExecutionError,
    WorkflowRuntimeError,
    WorkflowStateError,
)
from .events import Event, EventMetadata
from .models import StepOutcome, StepStatus, WorkflowFailure, WorkflowMetadata, WorkflowResult, WorkflowSuccess
from .step import Step
from .transaction import TransactionFactory, default_transaction_factory
from .workflow import WorkflowDefinition


@dataclass
class _Run:
    """Mutable state of one run."""

    execution_id: ExecutionID
    context: WorkflowContext
    user: Any
    params: Dict[str, Any]
    metadata: WorkflowMetadata
    executed: List[Step] = field(default_factory=list)
    compensated: bool = False
    compensation_attempted: bool = False
    rollback_succeeded: Optional[bool] = None


class Orchestrator:
    """
    Workflow engine.

    Runs a WorkflowDefinition for one user and set of params:
    before hooks, then every step and fork in order (each step wrapped by
    the around hooks), then after hooks. A failing required step halts the
    run and the steps that already ran are rolled back in reverse order.
    With ``use_transaction`` the whole run happens inside one transaction
    scope that is committed on success and rolled back on failure.

    ``run`` never raises for runtime failures: it returns a WorkflowSuccess
    or a WorkflowFailure.
    """

    def __init__(
        self,
        definition: WorkflowDefinition,
        *,
        transaction_factory: Optional[TransactionFactory] = None,
        event_bus: Optional[EventBusProtocol] = None,
        execution_service: Optional[ExecutionService] = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            definition: Workflow to run
            transaction_factory: Creates the transaction scope of a run
                (defaults to a unit of work on the configured database)
            event_bus: Receives lifecycle events
            execution_service: Records every run
        """
        self._definition = definition
        self._transaction_factory = transaction_factory
        self._event_bus = event_bus
        self._execution_service = execution_service
        self._settings = get_app_settings().workflow
        self._logger = get_logger("orchestration.orchestrator")

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    async def run(
        self,
        user: Any,
        params: Optional[Mapping[str, Any]] = None,
        context: Optional[WorkflowContext] = None,
    ) -> WorkflowResult:
        """
        Run the workflow.

        Args:
            user: The user the workflow runs for
            params: Initial params (copied into the context)
            context: Context to run against (created when omitted)

        Returns:
            WorkflowSuccess or WorkflowFailure

        Raises:
            WorkflowStateError: If the context was already used for a run
        """
        params = dict(params or {})
        if context is None:
            context = WorkflowContext(user, params)
        if context.called:
            raise WorkflowStateError(
                f"Workflow {self._definition.name} was already called",
                context={"workflow": self._definition.name},
            )
        context.mark_called()

        execution_id = ExecutionID.generate()
        run = _Run(
            execution_id=execution_id,
            context=context,
            user=user,
            params=params,
            metadata=WorkflowMetadata(
                workflow=self._definition.name,
                execution_id=str(execution_id),
                state=ExecutionStatus.RUNNING,
                started_at=utc_now(),
            ),
        )

        self._logger.info(
            f"[{execution_id}] Workflow {self._definition.name} starting "
            f"(steps={len(self._definition.step_names)}, "
            f"transaction={self._definition.transactional})"
        )
        await self._publish(run, events.WORKFLOW_STARTED, {"workflow": self._definition.name})

        started = time.perf_counter()
        if self._definition.transactional:
            result = await self._run_in_transaction(run)
        else:
            result = await self._run_workflow(run)

        metadata = run.metadata
        metadata.duration_ms = round((time.perf_counter() - started) * 1000, 2)
        metadata.finished_at = utc_now()
        metadata.state = self._final_state(run, result)

        if result.success:
            self._logger.info(
                f"[{execution_id}] Workflow {self._definition.name} completed "
                f"in {metadata.duration_ms}ms (executed={metadata.steps_executed}, "
                f"skipped={metadata.steps_skipped})"
            )
        else:
            self._logger.warning(
                f"[{execution_id}] Workflow {self._definition.name} {metadata.state.value}: "
                f"{result.error.message}"
            )

        await self._record(run, result)
        await self._publish(
            run,
            events.WORKFLOW_FINISHED,
            {
                "workflow": self._definition.name,
                "status": metadata.state.value,
                "steps_executed": list(metadata.steps_executed),
                "duration_ms": metadata.duration_ms,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run_in_transaction(self, run: _Run) -> WorkflowResult:
        """Run inside one transaction scope: commit on success, roll back on failure."""
        factory = self._transaction_factory or default_transaction_factory()
        result: Optional[WorkflowResult] = None
        try:
            async with factory() as scope:
                run.context.bind_transaction(scope)
                result = await self._run_workflow(run)
                if result.success:
                    await scope.commit()
                    self._logger.info(f"[{run.execution_id}] Transaction committed")
                else:
                    await scope.rollback()
                    self._logger.warning(f"[{run.execution_id}] Transaction rolled back")
        except Exception as exc:
            self._logger.error(f"[{run.execution_id}] Transaction failed: {exc}", exc_info=True)
            error = WorkflowExecutionError(
                f"Transaction failed: {exc}",
                original_error=exc,
                context={"workflow": self._definition.name},
            )
            if result is not None and not result.success:
                # Compensation already ran; keep the run's own failure
                return result
            run.context.fail(error.message)
            result = await self._rollback(run, error)
        finally:
            run.context.bind_transaction(None)
        return result

    async def _run_workflow(self, run: _Run) -> WorkflowResult:
        context = run.context
        callbacks = self._definition.callbacks

        try:
            await callbacks.run_before_workflow(context)
        except Exception as exc:
            error = WorkflowExecutionError(
                f"before_workflow hook failed: {exc}",
                original_error=exc,
                context={"workflow": self._definition.name},
            )
            context.fail(error.message)
            return self._failure(run, error)

        if context.failure:
            message = context.errors.get("message") or "Workflow halted by before_workflow hook"
            self._logger.info(f"[{run.execution_id}] Halted by before_workflow hook: {message}")
            return self._failure(
                run,
                WorkflowExecutionError(message, context={"workflow": self._definition.name}),
            )

        try:
            for item in self._definition.steps:
                if isinstance(item, BranchGroup):
                    await item.call(
                        context,
                        run.user,
                        run.params,
                        run_step=lambda s: self._run_step(run, s),
                        decisions=run.metadata.branch_decisions,
                    )
                else:
                    await self._run_step(run, item)

            await callbacks.run_after_workflow(context)
        except StepExecutionError as exc:
            exc.with_steps_executed(run.metadata.steps_executed)
            run.metadata.failed_step = exc.step
            context.fail(exc.message, exc.errors, failed_step=exc.step)
            return await self._rollback(run, exc)
        except Exception as exc:
            self._logger.error(f"[{run.execution_id}] Workflow error: {exc}", exc_info=True)
            error = WorkflowExecutionError(
                f"Workflow execution failed: {exc}",
                original_error=exc,
                context={
                    "workflow": self._definition.name,
                    "steps_executed": list(run.metadata.steps_executed),
                    "steps_skipped": list(run.metadata.steps_skipped),
                },
            )
            context.fail(error.message)
            return await self._rollback(run, error)

        return WorkflowSuccess(context=context, metadata=run.metadata)

    async def _run_step(self, run: _Run, step: Step) -> Optional[StepOutcome]:
        """Run one step through the around hooks and record its outcome."""

        async def execute() -> StepOutcome:
            try:
                outcome = await step.execute(run.context, run.user, run.params)
            except StepExecutionError as exc:
                self._logger.warning(f"[{run.execution_id}] Step {step.name} failed: {exc.reason}")
                await self._publish(
                    run, events.STEP_FAILED, {"step_name": step.name, "error": exc.reason}
                )
                raise
            await self._track(run, step, outcome)
            return outcome

        outcome = await self._definition.callbacks.run_around_step(step, run.context, execute)
        if outcome is None:
            self._logger.info(f"[{run.execution_id}] Step {step.name} bypassed by around_step hook")
            run.metadata.steps_skipped.append(step.name)
            await self._publish(run, events.STEP_SKIPPED, {"step_name": step.name})
        return outcome

    async def _track(self, run: _Run, step: Step, outcome: StepOutcome) -> None:
        metadata = run.metadata
        if outcome.status is StepStatus.SUCCEEDED:
            run.executed.append(step)
            metadata.steps_executed.append(step.name)
            await self._publish(
                run,
                events.STEP_SUCCEEDED,
                {"step_name": step.name, "duration_ms": outcome.duration_ms},
            )
        elif outcome.status is StepStatus.SKIPPED:
            metadata.steps_skipped.append(step.name)
            await self._publish(run, events.STEP_SKIPPED, {"step_name": step.name})
        else:
            metadata.optional_failures.append(step.name)

    # ------------------------------------------------------------------
    # Rollback
    # ------------------------------------------------------------------

    async def _rollback(self, run: _Run, error: WorkflowRuntimeError) -> WorkflowFailure:
        """
        Roll back executed steps in reverse order.

        Every rollback action is attempted even when an earlier one raised.
        If any raised, the surfaced error is a RollbackError wrapping
        ``error``.
        """
        if run.compensated:
            return self._failure(run, error)
        run.compensated = True

        failures = []
        for step in reversed(run.executed):
            if not step.has_rollback:
                continue
            run.compensation_attempted = True
            self._logger.info(f"[{run.execution_id}] Rolling back step {step.name}")
            try:
                await step.rollback(run.context)
            except Exception as exc:
                self._logger.error(
                    f"[{run.execution_id}] Rollback failed for step {step.name}: {exc}",
                    exc_info=True,
                )
                failures.append((step.name, exc))
                await self._publish(
                    run, events.ROLLBACK_FAILED, {"step_name": step.name, "error": str(exc)}
                )

        if run.compensation_attempted:
            run.rollback_succeeded = not failures

        if not failures:
            return self._failure(run, error)

        rollback_error = RollbackError(error, failures, failed_at_step=run.metadata.failed_step)
        run.context.fail(
            rollback_error.message,
            failed_at_step=run.metadata.failed_step,
            rollback_failed_at_step=rollback_error.rollback_failed_at_step,
            rollback_errors=rollback_error.context["rollback_failures"],
            original_error=error.message,
        )
        return self._failure(run, rollback_error)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _failure(self, run: _Run, error: WorkflowRuntimeError) -> WorkflowFailure:
        return WorkflowFailure(
            error=error,
            context=run.context,
            metadata=run.metadata,
            rollback_succeeded=run.rollback_succeeded,
        )

    def _final_state(self, run: _Run, result: WorkflowResult) -> ExecutionStatus:
        if result.success:
            return ExecutionStatus.COMPLETED
        if run.executed and (run.compensation_attempted or self._definition.transactional):
            return ExecutionStatus.ROLLED_BACK
        return ExecutionStatus.FAILED

    async def _record(self, run: _Run, result: WorkflowResult) -> None:
        """Record the run through the execution service, if any."""
        if self._execution_service is None or not self._settings.record_executions:
            return

        metadata = run.metadata
        command = RecordExecutionCommand(
            execution_id=run.execution_id,
            workflow=self._definition.name,
            status=metadata.state.value,
            started_at=metadata.started_at,
            finished_at=metadata.finished_at,
            steps_executed=list(metadata.steps_executed),
            steps_skipped=list(metadata.steps_skipped),
            failed_step=metadata.failed_step,
            error_message=None if result.success else result.error.message,
            duration_ms=metadata.duration_ms,
        )
        try:
            await self._execution_service.record_execution(command)
        except Exception as exc:
            # The run already finished; its result stands
            self._logger.error(
                f"[{run.execution_id}] Failed to record execution: {exc}", exc_info=True
            )

    async def _publish(self, run: _Run, name: str, payload: Dict[str, Any]) -> None:
        """Publish a lifecycle event when an event bus is configured."""
        if self._event_bus is None:
            return
        metadata = EventMetadata(
            execution_id=str(run.execution_id),
            workflow=self._definition.name,
            service=self._settings.service_name,
            timestamp=utc_now(),
        )
        await self._event_bus.publish(Event(name=name, payload=payload, metadata=metadata))
