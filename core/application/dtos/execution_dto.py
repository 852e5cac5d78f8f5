"""
Execution DTO.

Data transfer object for execution tracking.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain.enums.execution_status import ExecutionStatus


class ExecutionDTO(BaseModel):
    """DTO for a recorded workflow run."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    execution_id: str
    workflow: str
    status: ExecutionStatus
    steps_executed: List[str] = Field(default_factory=list)
    steps_skipped: List[str] = Field(default_factory=list)
    failed_step: Optional[str] = None
    error_message: Optional[str] = None
    duration_ms: Optional[float] = None
    created_at: datetime
    updated_at: datetime
