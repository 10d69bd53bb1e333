"""Configuration management for turbo-tasker."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaskerConfig(BaseSettings):
    """Runtime configuration for the aggregation core."""

    # Cadence of the elapsed-time clock while a scan is running
    tick_interval: float = Field(
        default=0.1,
        gt=0,
        description="Seconds between elapsed-time samples while scanning",
    )

    log_level: str = Field(default="INFO", description="Minimum level for log sinks")
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional file that receives a rotating copy of the log",
    )

    attempt_history: int = Field(
        default=20,
        ge=1,
        description="Number of commit attempts kept for inspection",
    )

    model_config = SettingsConfigDict(
        env_prefix="TURBO_TASKER_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


# Load default config
config = TaskerConfig()
