from pydantic_settings import SettingsConfigDict

from core.settings.base import StepwiseBaseSettings


class DatabaseSettings(StepwiseBaseSettings):
    """
    Database configuration settings.

    Loaded from environment variables or .env file.
    """

    database_url: str = "sqlite+aiosqlite:///./stepwise.db"

    # Connection pool settings (ignored by SQLite)
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600  # 1 hour

    # Echo SQL (for debugging)
    echo_sql: bool = False

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
