"""Performance forecasting and model-validation engine."""

from performance_forecasting.features.trend import TrendAnalyzer
from performance_forecasting.features.engineering import FeatureExtractor
from performance_forecasting.models.prediction_engine import PredictionEngine
from performance_forecasting.validation.model_validator import ModelValidator
from performance_forecasting.utils.error_handling import (
    ForecastingError,
    ValidationError,
    ConfigurationError,
    ComputationError,
)

__version__ = "0.1.0"

__all__ = [
    "TrendAnalyzer",
    "FeatureExtractor",
    "PredictionEngine",
    "ModelValidator",
    "ForecastingError",
    "ValidationError",
    "ConfigurationError",
    "ComputationError",
]
