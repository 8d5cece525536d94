"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    DEFAULT_STAGES,
    Settings,
    get_settings,
)

__all__ = [
    "DEFAULT_STAGES",
    "Settings",
    "get_settings",
]
