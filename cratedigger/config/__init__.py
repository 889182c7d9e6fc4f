"""Configuration module: exports Settings and load_settings."""

from cratedigger.config.loader import load_settings
from cratedigger.config.settings import Settings

__all__ = ["Settings", "load_settings"]
