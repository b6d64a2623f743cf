"""
Configuration module
"""
from .settings import (
    AppConfig,
    ConfigurationError,
    Settings,
    get_settings,
    load_config,
)

__all__ = ["AppConfig", "ConfigurationError", "Settings", "get_settings", "load_config"]
