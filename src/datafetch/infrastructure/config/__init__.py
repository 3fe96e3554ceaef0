"""Configuration package."""

from datafetch.infrastructure.config.loader import ConfigLoader, FetchConfig

__all__ = ["ConfigLoader", "FetchConfig"]
