"""Configuration package for the Sentiment Aggregator service."""

from .settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
