"""Forecast error metrics."""

from performance_forecasting.evaluation.metrics import (
    MetricsCalculator,
    MetricsResult,
    mape_percent,
)

__all__ = [
    "MetricsCalculator",
    "MetricsResult",
    "mape_percent",
]
