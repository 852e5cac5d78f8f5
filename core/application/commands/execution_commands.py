"""
Execution commands.

Commands for recording execution tracking.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from core.domain.value_objects import ExecutionID


@dataclass
class RecordExecutionCommand:
    """Command to record one workflow run."""

    execution_id: ExecutionID
    workflow: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    steps_executed: List[str] = field(default_factory=list)
    steps_skipped: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error_message: Optional[str] = None
    duration_ms: Optional[float] = None
