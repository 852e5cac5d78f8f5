# core/settings/app.py
from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from core.settings.sections import DatabaseSettings, WorkflowSettings


class AppSettings(BaseModel):
    """
    Application settings aggregator.

    Sections are loaded when ``get_app_settings`` is first called, never at
    import time.
    """

    model_config = ConfigDict(extra="ignore")

    workflow: WorkflowSettings
    database: DatabaseSettings


@lru_cache()
def get_app_settings() -> AppSettings:
    """Return cached global settings for the entire app."""
    return AppSettings(
        workflow=WorkflowSettings(),
        database=DatabaseSettings(),
    )
