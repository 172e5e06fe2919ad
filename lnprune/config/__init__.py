"""Configuration module for lnprune."""

from lnprune.config.loader import get_config_path, load_settings
from lnprune.config.schema import LoggingConfig, Settings

__all__ = ["LoggingConfig", "Settings", "get_config_path", "load_settings"]
