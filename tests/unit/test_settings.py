"""Unit tests for EngineSettings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from quarry.config import EngineSettings, get_settings


def test_defaults() -> None:
    settings = EngineSettings()
    assert settings.inventory_slots == 36
    assert settings.inventory_high_water == 32
    assert settings.storage_search_radius == 16
    assert settings.auto_container_creation is True
    assert settings.container_item == "chest"
    assert settings.history_limit == 50


def test_environment_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUARRY_INVENTORY_HIGH_WATER", "30")
    monkeypatch.setenv("QUARRY_HISTORY_DB_PATH", "/tmp/quarry/history.db")

    settings = EngineSettings()

    assert settings.inventory_high_water == 30
    assert settings.history_db_path == Path("/tmp/quarry/history.db")


def test_high_water_cannot_exceed_slots() -> None:
    with pytest.raises(ValidationError):
        EngineSettings(inventory_slots=20, inventory_high_water=32)


def test_non_positive_values_rejected() -> None:
    with pytest.raises(ValidationError):
        EngineSettings(max_analysis_depth=0)
    with pytest.raises(ValidationError):
        EngineSettings(fuel_gather_quantity=-1)


def test_log_level_normalized() -> None:
    assert EngineSettings(log_level=" debug ").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        EngineSettings(log_level="verbose")


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
