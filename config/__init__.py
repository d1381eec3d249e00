"""配置管理模块."""

from config.settings import Settings, Thresholds, get_settings

__all__ = ["Settings", "Thresholds", "get_settings"]
