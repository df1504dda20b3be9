"""
Configuration management for tidyframe.

Settings are read from the environment with the ``TIDYFRAME_`` prefix, e.g.
``TIDYFRAME_LOG_LEVEL=DEBUG`` turns on per-operation debug events.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for tidyframe.

    Attributes:
        LOG_LEVEL: Level for the ``tidyframe`` logger hierarchy
        LOG_FORMAT: ``console`` for human-readable lines, ``json`` for one JSON object per event
        REPR_ROWS: Number of rows shown by ``Table.__repr__``
    """

    model_config = SettingsConfigDict(
        env_prefix="TIDYFRAME_",
        case_sensitive=False,
        extra="ignore",
    )

    LOG_LEVEL: str = Field(default="WARNING", description="Logging level (uppercase)")
    LOG_FORMAT: Literal["console", "json"] = Field(
        default="console", description="Log renderer"
    )
    REPR_ROWS: int = Field(default=10, ge=0, description="Rows shown in Table repr")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once from the environment."""
    return Settings()
