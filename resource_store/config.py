"""Configuration management for the resource store."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class ResourceStoreSettings(BaseSettings):
    """Runtime knobs shared by every store instance."""

    # Minimum lifetime of a prefetched value, so the navigation that follows
    # a prefetch does not immediately refetch it.
    prefetch_max_age_ms: int = Field(default=10_000, ge=0)
    default_timeout_ms: Optional[int] = Field(default=None, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, level: str) -> str:
        normalized = level.strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {level}")
        return normalized

    model_config = {
        "env_prefix": "RESOURCE_STORE_",
        "case_sensitive": False,
    }


@lru_cache(maxsize=1)
def get_settings() -> ResourceStoreSettings:
    return ResourceStoreSettings()
