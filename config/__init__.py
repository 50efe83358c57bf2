"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    Settings,
    TrendsSettings,
    GeneralSettings,
    BackoffSettings,
    get_settings,
    get_trends_settings,
    get_backoff_settings,
)

__all__ = [
    "Settings",
    "TrendsSettings",
    "GeneralSettings",
    "BackoffSettings",
    "get_settings",
    "get_trends_settings",
    "get_backoff_settings",
]
