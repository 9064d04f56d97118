"""Configuration loader for snapsolve.

This module provides a centralized configuration management system. It handles
loading, merging, and validating configurations from JSON files on top of
built-in defaults, with support for runtime updates.

Key Features:
- Hierarchical configuration management
- Default configuration values
- JSON file-based configuration
- Deep merging of configuration updates
- Per-file validation (invalid files are logged and skipped)
- Runtime configuration updates
"""
import copy
import os
import json
import logging
from typing import Any, Dict, Optional

from .path_config import get_config_dir

logger = logging.getLogger(__name__)

SERVER_CONFIG_FILE = "server_config.json"
PROCESSING_CONFIG_FILE = "processing_config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5348,
        "room": "snapsolve_room",
        "cors_origins": "*"
    },
    "screenshots": {
        "max_queue_size": 2,
        "preview_size": 320
    },
    "llm": {
        "model": "gpt-4o",
        "base_url": None,
        "max_tokens": 4096,
        "temperature": 0.7,
        "error_max_tokens": 1000,
        "error_temperature": 0.2,
        "timeout": 120.0,
        "max_retries": 0
    },
    "processing": {
        "default_language": "python",
        "initial_credits": 10,
        "require_client_ready": True
    }
}


class ConfigManager:
    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory holding the JSON config files. Defaults to
                the application config directory.
        """
        self._config_dir = config_dir
        self._config: Dict[str, Any] = {}
        self._load_defaults()
        self._load_config_files()

    @property
    def config_dir(self) -> str:
        if self._config_dir is None:
            self._config_dir = get_config_dir()
        return self._config_dir

    def _load_defaults(self) -> None:
        """Load default configuration values."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

    def _load_config_files(self) -> None:
        """Load configuration from JSON files in the config directory."""
        for filename in (SERVER_CONFIG_FILE, PROCESSING_CONFIG_FILE):
            filepath = os.path.join(self.config_dir, filename)
            if not os.path.exists(filepath):
                continue
            try:
                with open(filepath, 'r') as f:
                    file_config = json.load(f)
                self._validate_config(filename, file_config)
            except (OSError, ValueError) as e:
                logger.error(f"Error loading config file {filename}: {e}")
                continue
            self._merge_config(self._config, file_config)

    def _merge_config(self, base: Dict, update: Dict) -> None:
        """Deep-merge update into base; nested sections merge, scalars replace."""
        for key, value in update.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def _validate_config(self, filename: str, config: Dict[str, Any]) -> None:
        """Validate configuration based on the filename."""
        if not isinstance(config, dict):
            raise ValueError(f"{filename} must contain a JSON object")
        if filename == SERVER_CONFIG_FILE:
            self._validate_server_config(config)
        elif filename == PROCESSING_CONFIG_FILE:
            self._validate_processing_config(config)

    def _validate_server_config(self, config: Dict[str, Any]) -> None:
        """Validate server configuration"""
        server = config.get("server", {})
        if "port" in server and not isinstance(server["port"], int):
            raise ValueError("Server port must be an integer")

    def _validate_processing_config(self, config: Dict[str, Any]) -> None:
        """Validate screenshot, LLM and processing sections"""
        queue_size = config.get("screenshots", {}).get("max_queue_size")
        if queue_size is not None and (not isinstance(queue_size, int) or queue_size < 1):
            raise ValueError("screenshots.max_queue_size must be a positive integer")

        credits = config.get("processing", {}).get("initial_credits")
        if credits is not None and (not isinstance(credits, int) or credits < 0):
            raise ValueError("processing.initial_credits must be a non-negative integer")

        llm = config.get("llm", {})
        for key in ("temperature", "error_temperature"):
            if key in llm and not (0.0 <= float(llm[key]) <= 2.0):
                raise ValueError(f"llm.{key} must be between 0 and 2")

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Return config[section][key], or default when either level is missing."""
        try:
            return self._config[section][key]
        except KeyError:
            return default

    def set(self, section: str, key: str, value: Any) -> None:
        self._config.setdefault(section, {})[key] = value

    def save(self, filename: str = PROCESSING_CONFIG_FILE) -> bool:
        """Write the merged configuration to filename in the config directory.

        Returns False (and logs) when the file cannot be written.
        """
        filepath = os.path.join(self.config_dir, filename)
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            with open(filepath, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving config to {filename}: {e}")
            return False
        logger.info(f"Configuration saved to {filepath}")
        return True

    @property
    def config(self) -> Dict[str, Any]:
        """Get a copy of the complete configuration dictionary."""
        return copy.deepcopy(self._config)
