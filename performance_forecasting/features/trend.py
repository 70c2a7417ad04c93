"""Stateless statistical primitives for trend analysis.

Provides least-squares regression, exponential moving averages, the
coefficient of variation and rolling regression slopes.
"""

from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np
import pandas as pd

from performance_forecasting.data.structs import RegressionResult
from performance_forecasting.utils.error_handling import (
    ValidationError,
    ensure_finite,
    finite_values,
    is_finite_number,
)
from performance_forecasting.utils.logging_config import resolve_logger


class TrendAnalyzer:
    """Regression and smoothing helpers shared by the engines."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = resolve_logger(logger)

    def linear_regression(self, points: Sequence[Any]) -> RegressionResult:
        """
        Ordinary least squares fit of y on x.

        Points with a non-finite x or y are ignored. With fewer than two
        usable points the result is degenerate (slope 0, intercept equal to
        the single y or 0) and should be read as "insufficient signal".

        Args:
            points: {"x": ..., "y": ...} mappings or (x, y) pairs

        Returns:
            RegressionResult
        """
        x, y = self._finite_pairs(points)
        n = len(x)

        if n == 0:
            return RegressionResult(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        if n == 1:
            return RegressionResult(0.0, float(y[0]), 0.0, 0.0, float(x[0]), float(y[0]))

        mean_x = float(np.mean(x))
        mean_y = float(np.mean(y))
        sxx = float(np.sum((x - mean_x) ** 2))
        sxy = float(np.sum((x - mean_x) * (y - mean_y)))

        if sxx == 0:
            slope = 0.0
        else:
            slope = sxy / sxx
        intercept = mean_y - slope * mean_x

        residuals = y - (intercept + slope * x)
        ss_res = float(np.sum(residuals ** 2))
        ss_tot = float(np.sum((y - mean_y) ** 2))

        r2 = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0
        r2 = min(1.0, max(0.0, r2))
        standard_error = math.sqrt(ss_res / (n - 2)) if n > 2 else 0.0

        return RegressionResult(
            slope=ensure_finite(slope, "regression slope"),
            intercept=ensure_finite(intercept, "regression intercept"),
            r2=r2,
            standard_error=ensure_finite(standard_error, "regression standard error"),
            mean_x=mean_x,
            mean_y=mean_y,
        )

    def exponential_moving_average(self, values: Sequence[float], alpha: float) -> np.ndarray:
        """
        Recursive EMA seeded with the first value.

        ema[0] = values[0]; ema[i] = alpha * values[i] + (1 - alpha) * ema[i - 1]

        Args:
            values: Input values
            alpha: Smoothing factor in the open interval (0, 1)

        Returns:
            Smoothed values; the input values unchanged when alpha is out of range
        """
        array = np.asarray(values, dtype=float)
        if not is_finite_number(alpha) or not 0 < alpha < 1:
            return array
        if array.size == 0:
            return array
        return pd.Series(array).ewm(alpha=alpha, adjust=False).mean().to_numpy()

    def coefficient_of_variation(self, values: Sequence[float]) -> float:
        """
        Population standard deviation divided by the mean.

        Returns 0 when the mean is 0 (the ratio is undefined there) or when
        there are no finite values.
        """
        array = finite_values(values)
        if array.size == 0:
            return 0.0
        mean = float(np.mean(array))
        if mean == 0:
            return 0.0
        return float(np.std(array)) / mean

    def rolling_slopes(self, points: Sequence[Any], window: int) -> List[float]:
        """
        Slope of each sliding window of size `window`.

        Args:
            points: {"x", "y"} mappings, (x, y) pairs, or bare values (x = position)
            window: Window length

        Returns:
            One slope per window position; empty if there are fewer points than window
        """
        if not isinstance(window, int) or isinstance(window, bool) or window < 1:
            raise ValidationError(f"Rolling window must be a positive integer, got {window!r}")

        points = self.as_points(points)
        if len(points) < window:
            return []

        return [
            self.linear_regression(points[start:start + window]).slope
            for start in range(len(points) - window + 1)
        ]

    @staticmethod
    def as_points(values: Sequence[Any]) -> List[Any]:
        """Convert bare values to (position, value) pairs; pass points through.

        Non-finite bare values keep their position and are dropped later by
        the regression, so they never shift the x of later values.
        """
        points = list(values)
        if any(TrendAnalyzer._is_point(v) for v in points):
            return points
        return [(index, v) for index, v in enumerate(points)]

    @staticmethod
    def _is_point(value: Any) -> bool:
        return isinstance(value, Mapping) or (
            isinstance(value, (tuple, list)) and len(value) == 2
        )

    @staticmethod
    def _finite_pairs(points: Sequence[Any]) -> Tuple[np.ndarray, np.ndarray]:
        """Collect finite (x, y) pairs as two float arrays."""
        xs: List[float] = []
        ys: List[float] = []
        for point in points:
            if isinstance(point, Mapping):
                x, y = point.get("x"), point.get("y")
            elif isinstance(point, (tuple, list)) and len(point) == 2:
                x, y = point
            else:
                continue
            if is_finite_number(x) and is_finite_number(y):
                xs.append(float(x))
                ys.append(float(y))
        return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)
