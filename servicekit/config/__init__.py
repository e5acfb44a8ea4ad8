"""Configuration module for servicekit."""

from servicekit.config.loader import get_config_path, load_config, save_config
from servicekit.config.schema import ServiceConfig, SystemdOptions

__all__ = ["ServiceConfig", "SystemdOptions", "get_config_path", "load_config", "save_config"]
