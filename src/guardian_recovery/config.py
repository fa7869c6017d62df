"""Configuration surface for guardian recovery."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecoverySettings(BaseSettings):
    """Limits, timeouts and administrative identity for the recovery core."""

    model_config = SettingsConfigDict(
        env_prefix="RECOVERY_",
        env_file=".env",
        extra="ignore",
    )

    # Guardian settings
    min_guardians: int = Field(default=3, ge=1)
    max_guardians: int = Field(default=10, ge=1)
    min_threshold: int = Field(default=2, ge=1)

    # Request lifecycle, in logical clock ticks
    recovery_timeout_ticks: int = Field(default=144, ge=1)
    max_endorsements: int = Field(default=10, ge=1)

    # Payload limits
    max_metadata_bytes: int = Field(default=256, ge=0)

    # Identity allowed to pause/reactivate records
    administrator: str = ""

    # Completion reads the record's current threshold unless this is set
    snapshot_threshold_at_initiation: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool = True

    @model_validator(mode="after")
    def check_bounds(self) -> "RecoverySettings":
        if self.max_guardians < self.min_guardians:
            raise ValueError("max_guardians must be >= min_guardians")
        if self.max_endorsements < self.max_guardians:
            raise ValueError(
                "max_endorsements must be >= max_guardians so every guardian can endorse"
            )
        return self


@lru_cache
def load_settings(env_file: str | None = None) -> RecoverySettings:
    """Load RecoverySettings once per process."""
    env_path = Path(env_file) if env_file else None
    return RecoverySettings(_env_file=env_path)
