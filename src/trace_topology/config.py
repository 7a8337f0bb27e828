"""Application configuration management using Pydantic Settings.

This module defines the `Settings` class, which loads configuration parameters
from environment variables and a `.env` file. It centralizes the tunable
parameters of the projection stage: naming policy (maximum name lengths,
strictness, endpoint grouping rules) and logging.

The `get_settings` function provides a cached, singleton instance of the
configuration, ensuring consistent settings throughout the application.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict as _SettingsConfigDict

from .models.enums import Layer


class EndpointGroupingRule(BaseModel):
    """Collapse endpoint names of one service that fully match ``pattern``.

    ``service`` is the normalized owning service name, or ``"*"`` for any
    service. Matching endpoints are renamed to ``name``.
    """

    service: str = "*"
    pattern: str
    name: str

    @field_validator("pattern")
    @classmethod
    def pattern_must_compile(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid endpoint grouping pattern {v!r}: {e}") from e
        return v


class Settings(BaseSettings):
    """Defines all application configuration parameters.

    Values come from environment variables or a `.env` file.
    `ENDPOINT_GROUPING_RULES` is read as a JSON list, e.g.
    `[{"service": "orders", "pattern": "/orders/\\d+", "name": "/orders/{id}"}]`.
    """

    model_config = _SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # ---------------- Naming policy -----------------
    SERVICE_NAME_MAX_LENGTH: int = Field(
        default=70, description="Service names longer than this are truncated (or rejected in strict mode)"
    )
    INSTANCE_NAME_MAX_LENGTH: int = Field(
        default=70, description="Service instance names longer than this are truncated (or rejected in strict mode)"
    )
    ENDPOINT_NAME_MAX_LENGTH: int = Field(
        default=150, description="Endpoint names longer than this are truncated (or rejected in strict mode)"
    )
    NAMING_STRICT: bool = Field(
        default=False,
        description=(
            "If true, names exceeding their maximum length raise InvalidNameError "
            "instead of being truncated"
        ),
    )
    ENDPOINT_GROUPING_RULES: List[EndpointGroupingRule] = Field(
        default_factory=list,
        description="Ordered endpoint grouping rules; first full match wins",
    )

    # ---------------- CLI defaults -----------------
    DEFAULT_LAYER: Layer = Field(
        default=Layer.GENERAL,
        description="Layer applied by the CLI to calls whose input omits a layer",
    )

    @field_validator(
        "SERVICE_NAME_MAX_LENGTH",
        "INSTANCE_NAME_MAX_LENGTH",
        "ENDPOINT_NAME_MAX_LENGTH",
    )
    @classmethod
    def positive_length(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("maximum name length must be positive")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lowercase level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:  # pragma: no cover - trivial
    """Return a cached, singleton instance of the application settings."""
    return Settings()


__all__ = ["EndpointGroupingRule", "Settings", "get_settings"]
