"""Configuration, logging and error handling utilities."""

from performance_forecasting.utils.config_manager import (
    ConfigManager,
    DEFAULT_CONFIG,
    load_forecasting_config,
)
from performance_forecasting.utils.logging_config import setup_logging, get_logger
from performance_forecasting.utils.error_handling import (
    ForecastingError,
    ValidationError,
    ConfigurationError,
    ComputationError,
)

__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG",
    "load_forecasting_config",
    "setup_logging",
    "get_logger",
    "ForecastingError",
    "ValidationError",
    "ConfigurationError",
    "ComputationError",
]
