"""Configuration loading."""

from sequential_flow.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
