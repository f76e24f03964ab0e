"""User settings for the roster client."""

from .manager import SettingsManager, default_config_dir, default_settings_path

__all__ = ["SettingsManager", "default_config_dir", "default_settings_path"]
