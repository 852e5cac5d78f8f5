"""Tests for Orchestrator - running workflows end to end."""

from datetime import datetime, timezone

import pytest

from core.application.commands.execution_commands import RecordExecutionCommand
from core.application.dtos.execution_dto import ExecutionDTO
from core.application.services.base import BaseService, ServiceResult
from core.domain.enums.execution_status import ExecutionStatus
from orchestration.base import Workflow
from orchestration.context import WorkflowContext
from orchestration.errors import (
    ErrorCode,
    StepExecutionError,
    WorkflowExecutionError,
    WorkflowStateError,
)
from orchestration.models import WorkflowFailure, WorkflowSuccess
from orchestration.orchestrator import Orchestrator
from orchestration.workflow import WorkflowDefinition, branch, on, otherwise, step


class FakeExecutionService:
    """Fake ExecutionService for testing."""

    def __init__(self) -> None:
        """Initialize fake service."""
        self.commands: list[RecordExecutionCommand] = []

    async def record_execution(self, command: RecordExecutionCommand) -> ExecutionDTO:
        """Record execution and store command."""
        self.commands.append(command)
        now = datetime.now(timezone.utc)
        return ExecutionDTO(
            id=len(self.commands),
            execution_id=str(command.execution_id),
            workflow=command.workflow,
            status=ExecutionStatus(command.status),
            created_at=now,
            updated_at=now,
        )


class BrokenExecutionService:
    async def record_execution(self, command: RecordExecutionCommand) -> ExecutionDTO:
        raise ConnectionError("database unavailable")


class FakeEventBus:
    """Fake EventBus for testing."""

    def __init__(self) -> None:
        """Initialize fake event bus."""
        self.events: list[object] = []

    async def publish(self, event: object) -> None:
        """Store event."""
        self.events.append(event)

    def subscribe(self, event_name: str, handler: object) -> None:
        """Subscribe handler (no-op for fake)."""
        pass


def recording(name, calls, result=None):
    """Build a service class that logs its name and params into ``calls``."""

    class RecordingService(BaseService):
        async def call(self) -> ServiceResult:
            calls.append((name, dict(self.params)))
            if result is not None:
                return result
            return ServiceResult.ok(f"{name}-output")

    RecordingService.__name__ = f"{name.title()}Service"
    return RecordingService


def failing(name, calls, message="failed"):
    return recording(name, calls, ServiceResult.fail(message, errors={"reason": message}))


def names(calls):
    return [name for name, _ in calls]


@pytest.mark.asyncio
async def test_steps_run_in_declaration_order(user):
    """Each step sees the outputs of the steps before it."""
    calls = []
    definition = WorkflowDefinition(
        name="pipeline",
        steps=[
            step("a", recording("a", calls)),
            step("b", recording("b", calls), input_mapper=lambda c: {"from_a": c.get("a")}),
            step("c", recording("c", calls), input_mapper=lambda c: {"from_b": c.get("b")}),
        ],
    )

    result = await Orchestrator(definition).run(user, {"seed": 1})

    assert isinstance(result, WorkflowSuccess)
    assert result.success is True
    assert calls == [
        ("a", {"seed": 1}),
        ("b", {"from_a": "a-output"}),
        ("c", {"from_b": "b-output"}),
    ]
    assert result.steps_executed == ["a", "b", "c"]
    assert result.state == ExecutionStatus.COMPLETED
    assert result.context.get("c") == "c-output"


@pytest.mark.asyncio
async def test_success_metadata(user):
    calls = []
    definition = WorkflowDefinition(name="meta", steps=[step("only", recording("only", calls))])

    result = await Orchestrator(definition).run(user)
    metadata = result.metadata

    assert metadata.workflow == "meta"
    assert metadata.execution_id
    assert metadata.state == ExecutionStatus.COMPLETED
    assert metadata.started_at is not None
    assert metadata.finished_at >= metadata.started_at
    assert metadata.duration_ms >= 0
    assert metadata.duration_ms == round(metadata.duration_ms, 2)
    assert "failed_step" not in metadata.to_dict()
    assert metadata.to_dict()["state"] == "completed"


@pytest.mark.asyncio
async def test_optional_failure_does_not_halt(user):
    """An optional step's failure never stops the workflow."""
    calls = []
    definition = WorkflowDefinition(
        name="optional",
        steps=[
            step("a", recording("a", calls)),
            step("coupon", failing("coupon", calls, "expired"), optional=True),
            step("c", recording("c", calls)),
        ],
    )

    result = await Orchestrator(definition).run(user)

    assert result.success is True
    assert names(calls) == ["a", "coupon", "c"]
    assert result.steps_executed == ["a", "c"]
    assert result.metadata.optional_failures == ["coupon"]
    assert result.context.get("coupon_error") == {"message": "expired", "reason": "expired"}


@pytest.mark.asyncio
async def test_conditional_skip(user):
    calls = []
    definition = WorkflowDefinition(
        name="conditional",
        steps=[
            step("a", recording("a", calls)),
            step("notify", recording("notify", calls), condition=lambda c: c.get("send_email")),
            step("c", recording("c", calls)),
        ],
    )

    result = await Orchestrator(definition).run(user, {"send_email": False})

    assert names(calls) == ["a", "c"]
    assert result.steps_skipped == ["notify"]
    assert result.steps_executed == ["a", "c"]
    assert not result.context.has("notify")


@pytest.mark.asyncio
async def test_fork_exclusivity(user):
    """Exactly one arm of a fork runs and the decision is recorded."""
    calls = []
    definition = WorkflowDefinition(
        name="forked",
        steps=[
            step("start", recording("start", calls)),
            branch(
                on(lambda c: c.get("method") == "card", step("card", recording("card", calls))),
                on(lambda c: c.get("method") == "paypal", step("paypal", recording("paypal", calls))),
                otherwise(step("invoice", recording("invoice", calls))),
                name="payment",
            ),
            step("finish", recording("finish", calls)),
        ],
    )

    result = await Orchestrator(definition).run(user, {"method": "paypal"})

    assert names(calls) == ["start", "paypal", "finish"]
    assert result.branch_decisions == {"payment": "on_2"}
    assert result.steps_executed == ["start", "paypal", "finish"]


@pytest.mark.asyncio
async def test_fork_with_no_match_records_none(user):
    calls = []
    definition = WorkflowDefinition(
        name="gated",
        steps=[branch(on(lambda c: False, step("never", recording("never", calls))))],
    )

    result = await Orchestrator(definition).run(user)

    assert result.success is True
    assert calls == []
    assert result.branch_decisions == {"branch_1": "none"}


@pytest.mark.asyncio
async def test_required_failure_halts_workflow(user):
    calls = []
    definition = WorkflowDefinition(
        name="halting",
        steps=[
            step("a", recording("a", calls)),
            step("b", failing("b", calls, "Card declined")),
            step("c", recording("c", calls)),
        ],
    )

    result = await Orchestrator(definition).run(user)

    assert isinstance(result, WorkflowFailure)
    assert result.success is False
    assert names(calls) == ["a", "b"]
    assert result.failed_step == "b"
    assert result.kind == ErrorCode.STEP_FAILED
    assert result.message == "Step b failed: Card declined"
    assert result.errors["reason"] == "Card declined"
    assert result.errors["failed_step"] == "b"
    assert result.steps_executed == ["a"]
    assert isinstance(result.error, StepExecutionError)
    assert result.error.steps_executed == ["a"]
    assert result.state == ExecutionStatus.FAILED
    assert result.rollback_succeeded is None
    assert result.context.failure is True


@pytest.mark.asyncio
async def test_failure_inside_fork_reports_branch(user):
    calls = []
    definition = WorkflowDefinition(
        name="fork_failure",
        steps=[
            branch(
                on(lambda c: True, step("risky", failing("risky", calls))),
                name="route",
            ),
        ],
    )

    result = await Orchestrator(definition).run(user)

    assert result.failed_step == "risky"
    assert result.error.branch == "on_1"
    assert result.branch_decisions == {"route": "on_1"}


@pytest.mark.asyncio
async def test_raise_error_raises_surfaced_error(user):
    definition = WorkflowDefinition(name="w", steps=[step("bad", failing("bad", []))])

    result = await Orchestrator(definition).run(user)

    with pytest.raises(StepExecutionError):
        result.raise_error()


@pytest.mark.asyncio
async def test_before_hook_failure_runs_no_steps(user):
    calls = []

    def require_cart(ctx):
        if not ctx.get("cart_items"):
            ctx.fail("Cart is empty", cart_items="must not be empty")

    definition = WorkflowDefinition(
        name="guarded",
        steps=[step("a", recording("a", calls))],
        before_workflow=[require_cart],
    )

    result = await Orchestrator(definition).run(user, {"cart_items": []})

    assert result.success is False
    assert calls == []
    assert result.message == "Cart is empty"
    assert result.errors["cart_items"] == "must not be empty"
    assert result.steps_executed == []
    assert result.state == ExecutionStatus.FAILED


@pytest.mark.asyncio
async def test_raising_before_hook_becomes_failure(user):
    def broken(ctx):
        raise RuntimeError("hook exploded")

    definition = WorkflowDefinition(
        name="w", steps=[step("a", recording("a", []))], before_workflow=[broken]
    )

    result = await Orchestrator(definition).run(user)

    assert isinstance(result.error, WorkflowExecutionError)
    assert "hook exploded" in result.message
    assert result.kind == ErrorCode.WORKFLOW_FAILED


@pytest.mark.asyncio
async def test_after_hooks_run_only_on_success(user):
    after_calls = []
    ok = WorkflowDefinition(
        name="ok",
        steps=[step("a", recording("a", []))],
        after_workflow=[lambda c: after_calls.append("ok")],
    )
    bad = WorkflowDefinition(
        name="bad",
        steps=[step("a", failing("a", []))],
        after_workflow=[lambda c: after_calls.append("bad")],
    )

    await Orchestrator(ok).run(user)
    await Orchestrator(bad).run(user)

    assert after_calls == ["ok"]


@pytest.mark.asyncio
async def test_around_hook_wraps_every_step(user):
    calls = []
    seen = []

    async def timing(step_, ctx, call_next):
        seen.append(f"before:{step_.name}")
        outcome = await call_next()
        seen.append(f"after:{step_.name}:{outcome.status.value}")
        return outcome

    definition = WorkflowDefinition(
        name="wrapped",
        steps=[
            step("a", recording("a", calls)),
            step("b", recording("b", calls), condition=lambda c: False),
        ],
        around_step=[timing],
    )

    result = await Orchestrator(definition).run(user)

    assert result.success is True
    assert seen == ["before:a", "after:a:succeeded", "before:b", "after:b:skipped"]


@pytest.mark.asyncio
async def test_around_hook_can_prevent_step(user):
    calls = []

    async def maintenance(step_, ctx, call_next):
        if step_.name == "notify":
            return None
        return await call_next()

    definition = WorkflowDefinition(
        name="gated",
        steps=[step("a", recording("a", calls)), step("notify", recording("notify", calls))],
        around_step=[maintenance],
    )

    result = await Orchestrator(definition).run(user)

    assert names(calls) == ["a"]
    assert result.steps_executed == ["a"]
    assert result.steps_skipped == ["notify"]


@pytest.mark.asyncio
async def test_raising_around_hook_becomes_failure(user):
    async def broken(step_, ctx, call_next):
        raise RuntimeError("tracer down")

    definition = WorkflowDefinition(
        name="w", steps=[step("a", recording("a", []))], around_step=[broken]
    )

    result = await Orchestrator(definition).run(user)

    assert isinstance(result.error, WorkflowExecutionError)
    assert isinstance(result.error.original_error, RuntimeError)


@pytest.mark.asyncio
async def test_context_cannot_run_twice(user):
    definition = WorkflowDefinition(name="w", steps=[step("a", recording("a", []))])
    orchestrator = Orchestrator(definition)
    context = WorkflowContext(user)

    await orchestrator.run(user, context=context)

    with pytest.raises(WorkflowStateError):
        await orchestrator.run(user, context=context)


@pytest.mark.asyncio
async def test_workflow_call_twice_raises(user):
    class Checkout(Workflow):
        definition = WorkflowDefinition(name="checkout", steps=[step("a", recording("a", []))])

    workflow = Checkout(user, {"cart_items": [1]})
    result = await workflow.call()

    assert result.success is True
    assert workflow.result is result
    assert workflow.context is result.context

    with pytest.raises(WorkflowStateError):
        await workflow.call()


@pytest.mark.asyncio
async def test_execution_is_recorded(user):
    service = FakeExecutionService()
    definition = WorkflowDefinition(
        name="recorded",
        steps=[step("a", recording("a", [])), step("b", failing("b", [], "nope"))],
    )

    result = await Orchestrator(definition, execution_service=service).run(user)

    assert len(service.commands) == 1
    command = service.commands[0]
    assert str(command.execution_id) == result.metadata.execution_id
    assert command.workflow == "recorded"
    assert command.status == "failed"
    assert command.steps_executed == ["a"]
    assert command.failed_step == "b"
    assert command.error_message == "Step b failed: nope"
    assert command.started_at is not None
    assert command.finished_at is not None
    assert command.duration_ms == result.metadata.duration_ms


@pytest.mark.asyncio
async def test_recording_can_be_disabled(user, monkeypatch):
    from core.settings import get_app_settings

    monkeypatch.setenv("WORKFLOW_RECORD_EXECUTIONS", "false")
    get_app_settings.cache_clear()
    service = FakeExecutionService()
    definition = WorkflowDefinition(name="quiet", steps=[step("a", recording("a", []))])

    await Orchestrator(definition, execution_service=service).run(user)

    assert service.commands == []


@pytest.mark.asyncio
async def test_recording_errors_do_not_change_result(user):
    definition = WorkflowDefinition(name="w", steps=[step("a", recording("a", []))])

    result = await Orchestrator(definition, execution_service=BrokenExecutionService()).run(user)

    assert result.success is True


@pytest.mark.asyncio
async def test_lifecycle_events_are_published(user):
    bus = FakeEventBus()
    definition = WorkflowDefinition(
        name="evented",
        steps=[
            step("a", recording("a", [])),
            step("skip_me", recording("skip_me", []), condition=lambda c: False),
            step("b", failing("b", [])),
        ],
    )

    result = await Orchestrator(definition, event_bus=bus).run(user)

    event_names = [event.name for event in bus.events]
    assert event_names == [
        "workflow.started",
        "workflow.step.succeeded",
        "workflow.step.skipped",
        "workflow.step.failed",
        "workflow.finished",
    ]
    assert all(event.metadata.execution_id == result.metadata.execution_id for event in bus.events)
    assert all(event.metadata.workflow == "evented" for event in bus.events)
    assert bus.events[-1].payload["status"] == "failed"
