"""Walk-forward validation, drift detection and the accuracy gate."""

from performance_forecasting.validation.model_validator import ModelValidator

__all__ = ["ModelValidator"]
