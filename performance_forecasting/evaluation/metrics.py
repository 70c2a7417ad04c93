"""Error metrics for point forecasts."""

from dataclasses import dataclass
from typing import Any, Dict
import math

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from performance_forecasting.utils.error_handling import ValidationError


@dataclass
class MetricsResult:
    """Container for evaluation metrics."""
    metrics: Dict[str, float]
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "metrics": self.metrics,
            "metadata": self.metadata,
        }


def mape_percent(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Mean absolute percentage error in percent, skipping zero actuals.

    Returns:
        MAPE, or infinity when every actual is zero (or there are none)
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    # Avoid division by zero
    mask = y_true != 0
    if not mask.any():
        return math.inf
    return float(np.mean(np.abs((y_true[mask] - y_pred[mask]) / y_true[mask])) * 100)


class MetricsCalculator:
    """Calculate error metrics for forecasts against observed values."""

    def calculate_regression_metrics(
        self,
        y_true: np.ndarray,
        y_pred: np.ndarray,
    ) -> Dict[str, float]:
        """
        Calculate regression metrics over the overlapping prefix of both arrays.

        Args:
            y_true: True values
            y_pred: Predicted values

        Returns:
            Dictionary with mse, rmse, mae and mape
        """
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)
        n = min(len(y_true), len(y_pred))
        if n == 0:
            raise ValidationError("Error metrics need at least one forecast/actual pair")
        y_true, y_pred = y_true[:n], y_pred[:n]

        metrics: Dict[str, float] = {}
        metrics["mse"] = float(mean_squared_error(y_true, y_pred))
        metrics["rmse"] = float(np.sqrt(metrics["mse"]))
        metrics["mae"] = float(mean_absolute_error(y_true, y_pred))
        metrics["mape"] = mape_percent(y_true, y_pred)
        return metrics

    def get_all_metrics(self, y_true: np.ndarray, y_pred: np.ndarray) -> MetricsResult:
        """Calculate all metrics and wrap them with the sample count."""
        metrics = self.calculate_regression_metrics(y_true, y_pred)
        return MetricsResult(
            metrics=metrics,
            metadata={"n_samples": min(len(y_true), len(y_pred))},
        )
