from pydantic import Field
from pydantic_settings import SettingsConfigDict

from core.settings.base import StepwiseBaseSettings


class WorkflowSettings(StepwiseBaseSettings):
    """
    Workflow engine settings.
    Loaded from environment variables prefixed with ``WORKFLOW_``.
    """

    log_level: str = "INFO"

    # Record every run through the configured ExecutionService
    record_executions: bool = True

    # Used when a WorkflowDefinition leaves use_transaction unset
    default_use_transaction: bool = False

    # Tag published on lifecycle events
    service_name: str = Field(default="stepwise")

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
