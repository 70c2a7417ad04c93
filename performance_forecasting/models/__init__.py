"""Forecasting models."""

from performance_forecasting.models.prediction_engine import PredictionEngine

__all__ = ["PredictionEngine"]
