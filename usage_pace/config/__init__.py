"""Configuration module for usage-pace."""

from usage_pace.config.loader import get_config_path, load_config, save_selected_metric, update_config
from usage_pace.config.schema import Config

__all__ = ["Config", "get_config_path", "load_config", "save_selected_metric", "update_config"]
