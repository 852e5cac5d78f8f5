"""SQLAlchemy ORM model for recorded workflow runs."""

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text

from stepwise_sdk.utils.datetime import utc_now

from .base import Base


class ExecutionModel(Base):
    """SQLAlchemy ORM model for workflow_executions table."""

    __tablename__ = "workflow_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String(36), nullable=False, unique=True, index=True)
    workflow = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)

    steps_executed = Column(JSON, nullable=False, default=list)
    steps_skipped = Column(JSON, nullable=False, default=list)
    failed_step = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    duration_ms = Column(Float, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
