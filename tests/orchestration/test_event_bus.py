"""Tests for EventBus."""

from datetime import datetime, timezone

import pytest

from orchestration.bus import ALL_EVENTS, InMemoryEventBus
from orchestration.events import Event, EventMetadata


def _event(name: str = "workflow.started") -> Event:
    metadata = EventMetadata(
        execution_id="exec-test-123",
        workflow="test_workflow",
        service="test",
        timestamp=datetime.now(timezone.utc),
    )
    return Event(name=name, payload={"workflow": "test_workflow"}, metadata=metadata)


@pytest.mark.asyncio
async def test_event_bus_subscribe_and_publish():
    """Test subscribing and publishing events."""
    bus = InMemoryEventBus()

    events_received: list[Event] = []

    async def handler(event: Event) -> None:
        events_received.append(event)

    bus.subscribe("workflow.started", handler)
    await bus.publish(_event())

    assert len(events_received) == 1
    assert events_received[0].name == "workflow.started"
    assert events_received[0].payload == {"workflow": "test_workflow"}
    assert events_received[0].metadata.execution_id == "exec-test-123"
    assert events_received[0].metadata.workflow == "test_workflow"


@pytest.mark.asyncio
async def test_event_bus_multiple_handlers():
    """Test multiple handlers for the same event run in subscription order."""
    bus = InMemoryEventBus()
    order: list[str] = []

    async def handler1(event: Event) -> None:
        order.append("first")

    async def handler2(event: Event) -> None:
        order.append("second")

    bus.subscribe("workflow.started", handler1)
    bus.subscribe("workflow.started", handler2)
    await bus.publish(_event())

    assert order == ["first", "second"]


@pytest.mark.asyncio
async def test_event_bus_only_matching_handlers():
    bus = InMemoryEventBus()
    received: list[str] = []

    async def handler(event: Event) -> None:
        received.append(event.name)

    bus.subscribe("workflow.finished", handler)
    await bus.publish(_event("workflow.started"))
    await bus.publish(_event("workflow.finished"))

    assert received == ["workflow.finished"]


@pytest.mark.asyncio
async def test_event_bus_no_handlers():
    """Test publishing event with no handlers."""
    bus = InMemoryEventBus()

    # Should not raise an error
    await bus.publish(_event())


@pytest.mark.asyncio
async def test_event_bus_handler_error_does_not_stop_others():
    bus = InMemoryEventBus()
    received: list[str] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("handler failed")

    async def healthy(event: Event) -> None:
        received.append(event.name)

    bus.subscribe("workflow.started", broken)
    bus.subscribe("workflow.started", healthy)

    await bus.publish(_event())

    assert received == ["workflow.started"]


@pytest.mark.asyncio
async def test_all_events_listener_sees_every_event_after_named_listeners():
    bus = InMemoryEventBus()
    received: list[str] = []

    async def audit(event: Event) -> None:
        received.append(f"audit:{event.name}")

    async def on_finished(event: Event) -> None:
        received.append(f"finished:{event.name}")

    bus.subscribe(ALL_EVENTS, audit)
    bus.subscribe("workflow.finished", on_finished)

    await bus.publish(_event("workflow.started"))
    await bus.publish(_event("workflow.finished"))

    assert received == [
        "audit:workflow.started",
        "finished:workflow.finished",
        "audit:workflow.finished",
    ]
    assert bus.listeners_for("workflow.step.failed") == [audit]
