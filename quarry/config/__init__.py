"""Configuration for the Quarry engine."""

from .settings import EngineSettings, get_settings

__all__ = ["EngineSettings", "get_settings"]
