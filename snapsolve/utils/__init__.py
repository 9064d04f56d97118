"""Utility functions and helpers for snapsolve"""
from .path_config import (
    get_app_root,
    get_config_dir,
    get_screenshots_dir,
    get_extra_screenshots_dir,
    get_logs_dir
)
from .config_loader import ConfigManager, DEFAULT_CONFIG
from .event_utils import EventType
from .logging_config import setup_logging

__all__ = [
    'get_app_root',
    'get_config_dir',
    'get_screenshots_dir',
    'get_extra_screenshots_dir',
    'get_logs_dir',
    'ConfigManager',
    'DEFAULT_CONFIG',
    'EventType',
    'setup_logging'
]
