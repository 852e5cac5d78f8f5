"""Orchestration events - Event, EventMetadata and the lifecycle event names."""

from dataclasses import dataclass
from datetime import datetime

WORKFLOW_STARTED = "workflow.started"
WORKFLOW_FINISHED = "workflow.finished"
STEP_SUCCEEDED = "workflow.step.succeeded"
STEP_SKIPPED = "workflow.step.skipped"
STEP_FAILED = "workflow.step.failed"
ROLLBACK_FAILED = "workflow.rollback.failed"


@dataclass
class EventMetadata:
    """Metadata for an event."""

    execution_id: str
    workflow: str
    service: str
    timestamp: datetime


@dataclass
class Event:
    """Lifecycle event of a workflow run."""

    name: str
    payload: dict[str, object]
    metadata: EventMetadata
