"""Path configuration utilities for snapsolve.

This module provides centralized path management for all application directories.
It ensures a consistent directory structure and creates directories as needed.

Key Features:
- Application root resolution (``$SNAPSOLVE_HOME`` or ``~/.snapsolve``)
- Separate directories for the primary and auxiliary screenshot queues
- Automatic directory creation
"""
import os
from pathlib import Path

HOME_ENV_VAR = "SNAPSOLVE_HOME"


def get_app_root():
    """Get the root directory for application data."""
    root = os.getenv(HOME_ENV_VAR)
    if root:
        return str(Path(root).expanduser().absolute())
    return str(Path.home() / ".snapsolve")


def _ensure_dir(*parts):
    path = os.path.join(get_app_root(), *parts)
    os.makedirs(path, exist_ok=True)
    return path


def get_config_dir():
    """Get the configuration directory path."""
    return _ensure_dir("config")


def get_screenshots_dir():
    """Get the directory holding primary queue screenshots."""
    return _ensure_dir("screenshots")


def get_extra_screenshots_dir():
    """Get the directory holding auxiliary (debug) queue screenshots."""
    return _ensure_dir("extra_screenshots")


def get_logs_dir():
    """Get the logs directory path."""
    return _ensure_dir("logs")

