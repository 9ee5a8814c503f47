"""
Configuration management for the organizer.
Handles loading, validation, and merging of configurations from multiple sources.
"""

import os
import json
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
import argparse
from copy import deepcopy

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "ORGANIZER_"


class ConfigManager:
    """Manage configuration from environment variables, files, and command line."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        cli_args: Optional[argparse.Namespace] = None,
        use_env: bool = True,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
            cli_args: Optional command line arguments
            use_env: Whether to read .env and ORGANIZER_* variables
        """
        self.config = self._load_default_config()

        # Load from config file if provided
        if config_file and config_file.exists():
            self._load_from_file(config_file)

        # Override with environment variables
        if use_env:
            self._load_from_env()

        # Override with command line arguments
        if cli_args:
            self._load_from_cli(cli_args)

        self._validate_config()

        logger.info("Configuration loaded successfully")

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration."""
        return {
            "storage": {
                "backend": "memory",  # 'memory', 'sqlite' or 'json'
                "db_path": "./organizer.db",
                "json_path": "./organizer.json",
            },
            "drag": {
                "root_droppable_id": "main",
                "folder_list_droppable_id": "folders",
            },
            "items": {
                "default_icon": "file",
            },
            "logging": {
                "level": "INFO",
                "file": "./logs/organizer.log",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        }

    def _load_from_file(self, config_file: Path):
        """Load configuration from file."""
        logger.info(f"Loading configuration from {config_file}")

        try:
            with open(config_file, "r") as f:
                if config_file.suffix == ".json":
                    file_config = json.load(f)
                elif config_file.suffix in (".yaml", ".yml"):
                    file_config = yaml.safe_load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {config_file}")

            self._deep_merge(self.config, file_config)

        except Exception as e:
            logger.error(f"Error loading config file: {e}")
            raise

    def _load_from_env(self):
        """Load configuration from .env and ORGANIZER_ environment variables.

        ``ORGANIZER_STORAGE__BACKEND=sqlite`` sets ``storage.backend``.
        """
        load_dotenv()

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_path = key[len(ENV_PREFIX) :].lower().split("__")
                self._set_nested_config(self.config, config_path, value)

    def _load_from_cli(self, cli_args: argparse.Namespace):
        """Load configuration from command line arguments."""
        cli_mappings = {
            "backend": ["storage", "backend"],
            "db_path": ["storage", "db_path"],
            "json_path": ["storage", "json_path"],
            "log_level": ["logging", "level"],
            "log_file": ["logging", "file"],
        }

        for arg_name, config_path in cli_mappings.items():
            if hasattr(cli_args, arg_name) and getattr(cli_args, arg_name) is not None:
                self._set_nested_config(
                    self.config, config_path, getattr(cli_args, arg_name)
                )

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]):
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _set_nested_config(
        self, config_dict: Dict[str, Any], path: List[str], value: Any
    ):
        """Set a value in a nested dictionary using a path."""
        # Convert value to appropriate type if it's a string
        if isinstance(value, str):
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            elif value.replace(".", "", 1).isdigit() and value.count(".") == 1:
                value = float(value)
            elif value.startswith("[") and value.endswith("]"):
                try:
                    value = json.loads(value)
                except ValueError:
                    pass

        current = config_dict
        for part in path[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    def _validate_config(self):
        """Validate configuration values."""
        errors = []

        storage = self.config["storage"]
        if storage["backend"] not in ["memory", "sqlite", "json"]:
            errors.append("storage backend must be 'memory', 'sqlite' or 'json'")

        if storage["backend"] == "sqlite" and not storage.get("db_path"):
            errors.append("storage db_path is required for the sqlite backend")

        if storage["backend"] == "json" and not storage.get("json_path"):
            errors.append("storage json_path is required for the json backend")

        drag = self.config["drag"]
        if drag["root_droppable_id"] == drag["folder_list_droppable_id"]:
            errors.append("root and folder list droppable ids must differ")

        if not self.config["items"]["default_icon"]:
            errors.append("items default_icon must not be empty")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.config["logging"]["level"] not in valid_log_levels:
            errors.append(f"logging level must be one of {valid_log_levels}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'storage.backend')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        parts = path.split(".")
        current = self.config

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def set(self, path: str, value: Any):
        """
        Set configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'storage.backend')
            value: Value to set
        """
        parts = path.split(".")
        current = self.config

        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    def save(self, filepath: Path, format: str = "json"):
        """
        Save configuration to file.

        Args:
            filepath: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        logger.info(f"Saving configuration to {filepath}")

        with open(filepath, "w") as f:
            if format == "json":
                json.dump(self.config, f, indent=2)
            elif format in ("yaml", "yml"):
                yaml.safe_dump(self.config, f, default_flow_style=False)
            else:
                raise ValueError(f"Unsupported format: {format}")

    def create_template(self, filepath: Path, format: str = "json"):
        """Create a configuration template file."""
        template_config = deepcopy(self.config)

        if format == "json":
            # JSON doesn't support comments, so we'll add _comment fields
            template_config["_comment"] = "Item Organizer Configuration Template"
            template_config["storage"][
                "_comment"
            ] = "Persistence backend: memory, sqlite or json"
            template_config["drag"]["_comment"] = "Droppable ids used by the drag provider"
            template_config["items"]["_comment"] = "Defaults for new items"
            template_config["logging"]["_comment"] = "Logging configuration"

            with open(filepath, "w") as f:
                json.dump(template_config, f, indent=2)
        else:
            self.save(filepath, format)

        logger.info(f"Configuration template created at {filepath}")
