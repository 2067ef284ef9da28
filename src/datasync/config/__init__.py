"""
Configuration management.

Task file parsing (JSON/YAML), environment resolution and validation.
"""

from datasync.config.loader import DEFAULT_CONFIG_FILE, Config, config_from_data, load_config
from datasync.config.resolver import resolve_config

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "Config",
    "config_from_data",
    "load_config",
    "resolve_config",
]
