"""Runtime configuration from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .geometry import DEFAULT_TOLERANCE

DEFAULT_INKSEAL_DIR = Path.home() / ".inkseal"


class Settings(BaseSettings):
    """InkSeal settings.

    Attributes:
        home: Root directory for documents, signatures and audit logs.
        tolerance: Stroke simplification tolerance in normalized units.
        log_level: Level for the CLI's log handler.
    """

    home: Path = DEFAULT_INKSEAL_DIR
    tolerance: float = Field(DEFAULT_TOLERANCE, gt=0)
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="INKSEAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
