"""Lifecycle event bus for workflow runs.

The orchestrator publishes one Event per lifecycle transition (run started
or finished, step succeeded, skipped or failed, rollback action failed).
Listeners subscribe by event name, or to ``ALL_EVENTS`` to see every one.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from stepwise_sdk.logging import get_logger

from .events import Event

ALL_EVENTS = "*"

LifecycleListener = Callable[[Event], Awaitable[None]]


class EventBusProtocol(Protocol):
    """What the orchestrator needs from an event sink."""

    async def publish(self, event: Event) -> None:
        ...

    def subscribe(self, event_name: str, handler: LifecycleListener) -> None:
        ...


class InMemoryEventBus(EventBusProtocol):
    """
    Delivers lifecycle events to listeners in the publishing task.

    Listeners for the event name run first, then ``ALL_EVENTS`` listeners,
    each group in subscription order. A listener that raises is logged and
    skipped; it never fails the workflow run that published the event.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[LifecycleListener]] = {}
        self._logger = get_logger("orchestration.event_bus")

    def subscribe(self, event_name: str, handler: LifecycleListener) -> None:
        """Register ``handler`` for ``event_name`` (or ``ALL_EVENTS``)."""
        self._listeners.setdefault(event_name, []).append(handler)

    def listeners_for(self, event_name: str) -> list[LifecycleListener]:
        return self._listeners.get(event_name, []) + self._listeners.get(ALL_EVENTS, [])

    async def publish(self, event: Event) -> None:
        listeners = self.listeners_for(event.name)
        if not listeners:
            return

        run_id = event.metadata.execution_id
        self._logger.debug(
            f"[{run_id}] Delivering {event.name} of {event.metadata.workflow} "
            f"to {len(listeners)} listener(s)"
        )

        for listener in listeners:
            try:
                await listener(event)
            except Exception as exc:
                self._logger.error(
                    f"[{run_id}] Listener {listener!r} failed on {event.name}: {exc}",
                    exc_info=True,
                )
