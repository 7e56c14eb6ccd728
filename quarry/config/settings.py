"""
Engine Settings
===============

Environment-driven knobs for planning and execution.

Every field can be overridden with a ``QUARRY_`` prefixed environment
variable, e.g. ``QUARRY_INVENTORY_HIGH_WATER=30``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


class EngineSettings(BaseSettings):
    """Tunables for the analyzer, executor and overflow manager."""

    model_config = SettingsConfigDict(env_prefix="QUARRY_", extra="ignore")

    # Inventory / overflow storage
    inventory_slots: int = Field(default=36)
    inventory_high_water: int = Field(default=32)
    storage_search_radius: int = Field(default=16)
    auto_container_creation: bool = Field(default=True)
    container_item: str = Field(default="chest")

    # Planning
    max_analysis_depth: int = Field(default=16)
    fuel_gather_quantity: int = Field(default=10)

    # Execution bookkeeping
    history_limit: int = Field(default=50)
    slow_capability_ms: float = Field(default=1000.0)

    # Logging / persistence
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = Field(default=None)
    history_db_path: Optional[Path] = Field(default=None)

    @field_validator("inventory_slots", "storage_search_radius", "max_analysis_depth", "history_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        _require(value > 0, "value must be positive")
        return value

    @field_validator("fuel_gather_quantity")
    @classmethod
    def _fuel_positive(cls, value: int) -> int:
        _require(value > 0, "QUARRY_FUEL_GATHER_QUANTITY must be positive")
        return value

    @field_validator("inventory_high_water")
    @classmethod
    def _high_water_within_slots(cls, value: int, info: ValidationInfo) -> int:
        _require(value > 0, "QUARRY_INVENTORY_HIGH_WATER must be positive")
        slots = info.data.get("inventory_slots")
        if slots is not None:
            _require(
                value <= slots,
                "QUARRY_INVENTORY_HIGH_WATER cannot exceed QUARRY_INVENTORY_SLOTS",
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        _require(
            normalized in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
            "QUARRY_LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR, or CRITICAL",
        )
        return normalized


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Return the process-wide settings, read once from the environment."""
    return EngineSettings()
