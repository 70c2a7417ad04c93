"""
Configuration management for the forecasting engines.
"""

import copy
import json
import logging
import yaml
import jsonschema
from pathlib import Path
from typing import Dict, Any, Optional

from performance_forecasting.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

PACKAGE_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_NAME = "forecasting.yaml"
DEFAULT_SCHEMA_NAME = "forecasting_schema.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "prediction": {
        "alpha": 0.3,
        "beta": 0.1,
        "gamma": 0.05,
        "season_length": 7,
        "min_data_points": 12,
        "directional_epsilon": 0.5,
    },
    "validation": {
        "required_accuracy": 0.75,
        "drift_threshold": 0.15,
        "splits": 3,
    },
    "features": {
        "windows": [7, 14, 30],
    },
}


class ConfigManager:
    """
    Manages loading, validation, and merging of configurations.
    """

    def __init__(self, config_dir: Optional[str] = None, schema_dir: Optional[str] = None):
        self.config_dir = Path(config_dir) if config_dir else PACKAGE_CONFIG_DIR
        self.schema_dir = Path(schema_dir) if schema_dir else self.config_dir / "schemas"

    def load_config(self, config_name: str, schema_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Load a configuration file (YAML or JSON).
        Optionally validate against a schema.

        Args:
            config_name: Name of config file (e.g. 'forecasting.yaml')
            schema_name: Name of schema file (e.g. 'forecasting_schema.json')

        Returns:
            Loaded configuration dictionary
        """
        config_path = self.config_dir / config_name

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            if config_path.suffix in (".yaml", ".yml"):
                config = yaml.safe_load(f) or {}
            elif config_path.suffix == ".json":
                config = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration format: {config_path.suffix}")

        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        if schema_name:
            self.validate_config(config, schema_name)

        return config

    def validate_config(self, config: Dict[str, Any], schema_name: str) -> None:
        """
        Validate configuration against a schema.

        Args:
            config: Configuration dictionary
            schema_name: Name of schema file
        """
        schema_path = self.schema_dir / schema_name

        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        with open(schema_path, "r") as f:
            schema = json.load(f)

        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.exceptions.ValidationError as e:
            path_str = " -> ".join(str(p) for p in e.path) if e.path else "root"
            error_msg = f"Configuration validation failed at '{path_str}': {e.message}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg) from e

        logger.debug(f"Configuration successfully validated against {schema_name}")

    def merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge two configurations.

        Args:
            base: Base configuration
            override: Override configuration

        Returns:
            Merged configuration
        """
        merged = copy.deepcopy(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get_value(self, config: Dict[str, Any], path: str, default: Any = None) -> Any:
        """
        Get a value from configuration using dot notation.

        Args:
            config: Configuration dictionary
            path: Dot-separated path (e.g., 'prediction.alpha')
            default: Default value if path not found

        Returns:
            Value at path or default
        """
        current = config
        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current


def load_forecasting_config(
    path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Load the forecasting configuration merged over DEFAULT_CONFIG.

    Args:
        path: Optional YAML/JSON file; the packaged forecasting.yaml when None
        overrides: Optional nested overrides applied last

    Returns:
        Validated configuration dictionary
    """
    if path is not None:
        config_path = Path(path)
        manager = ConfigManager(str(config_path.parent), str(PACKAGE_CONFIG_DIR / "schemas"))
        config_name = config_path.name
    else:
        manager = ConfigManager()
        config_name = DEFAULT_CONFIG_NAME

    loaded = manager.load_config(config_name)
    config = manager.merge_configs(DEFAULT_CONFIG, loaded)
    if overrides:
        config = manager.merge_configs(config, overrides)

    manager.validate_config(config, DEFAULT_SCHEMA_NAME)
    return config
