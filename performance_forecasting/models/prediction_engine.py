"""Holt-Winters forecasting engine for performance metrics.

Implements additive triple exponential smoothing with a linearly growing
forecast variance, directional-accuracy scoring, sliding-window
backtesting, MAPE and z-score normalization.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from performance_forecasting.data.preprocessors import SeriesPreprocessor
from performance_forecasting.data.splitters import WalkForwardSplitter
from performance_forecasting.data.structs import (
    BacktestResult,
    BacktestWindow,
    ForecastPoint,
    TrendSummary,
)
from performance_forecasting.evaluation.metrics import mape_percent
from performance_forecasting.features.trend import TrendAnalyzer
from performance_forecasting.utils.error_handling import (
    ConfigurationError,
    ValidationError,
    ensure_finite,
    finite_result,
    is_finite_number,
)
from performance_forecasting.utils.logging_config import resolve_logger

Z_95 = 1.96
MIN_SMOOTHING = 0.01
MAX_SMOOTHING = 0.99
MIN_SEASON_LENGTH = 3
FLOOR_DATA_POINTS = 12


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PredictionEngine:
    """
    Forecasts a performance metric from its history.

    Configuration is fixed at construction; every call recomputes from the
    history it is given, so a single instance can be shared freely.
    """

    def __init__(
        self,
        alpha: float = 0.3,
        beta: float = 0.1,
        gamma: float = 0.05,
        season_length: int = 7,
        min_data_points: Optional[int] = None,
        directional_epsilon: float = 0.5,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the engine.

        Smoothing constants outside [0.01, 0.99] are clamped, never rejected.

        Args:
            alpha: Level smoothing constant
            beta: Trend smoothing constant
            gamma: Seasonal smoothing constant
            season_length: Samples per seasonal cycle (minimum 3)
            min_data_points: Configured minimum history length (floor 12)
            directional_epsilon: Changes within +/- epsilon count as flat
            trend_analyzer: Shared TrendAnalyzer instance
            logger: Injected logger; a no-op logger when None

        Raises:
            ConfigurationError: If a setting is not a number
        """
        self.logger = resolve_logger(logger)
        self._alpha = self._smoothing("alpha", alpha, 0.3)
        self._beta = self._smoothing("beta", beta, 0.1)
        self._gamma = self._smoothing("gamma", gamma, 0.05)

        season_length = self._numeric("season_length", season_length, 7)
        self._season_length = max(MIN_SEASON_LENGTH, int(season_length))

        configured_min = self._numeric("min_data_points", min_data_points, FLOOR_DATA_POINTS)
        self._min_data_points = max(
            self._season_length * 2, int(configured_min), FLOOR_DATA_POINTS
        )

        epsilon = self._numeric("directional_epsilon", directional_epsilon, 0.5)
        if epsilon < 0:
            raise ConfigurationError(f"directional_epsilon must be non-negative, got {epsilon}")
        self._directional_epsilon = float(epsilon)

        self.trend_analyzer = trend_analyzer or TrendAnalyzer(self.logger)
        self._preprocessor = SeriesPreprocessor(self.logger)
        self._splitter = WalkForwardSplitter()

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
    ) -> "PredictionEngine":
        """Build an engine from the `prediction` section of a forecasting config."""
        settings = config.get("prediction", config)
        return cls(
            alpha=settings.get("alpha", 0.3),
            beta=settings.get("beta", 0.1),
            gamma=settings.get("gamma", 0.05),
            season_length=settings.get("season_length", 7),
            min_data_points=settings.get("min_data_points"),
            directional_epsilon=settings.get("directional_epsilon", 0.5),
            logger=logger,
        )

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def beta(self) -> float:
        return self._beta

    @property
    def gamma(self) -> float:
        return self._gamma

    @property
    def season_length(self) -> int:
        return self._season_length

    @property
    def min_data_points(self) -> int:
        return self._min_data_points

    @property
    def directional_epsilon(self) -> float:
        return self._directional_epsilon

    def get_params(self) -> Dict[str, Any]:
        """Return the effective (post-clamp) configuration."""
        return {
            "alpha": self._alpha,
            "beta": self._beta,
            "gamma": self._gamma,
            "season_length": self._season_length,
            "min_data_points": self._min_data_points,
            "directional_epsilon": self._directional_epsilon,
        }

    def preprocess_series(self, series: Any) -> np.ndarray:
        """
        Clean a raw history into a chronologically ordered float array.

        Accepts bare numbers or records carrying `value`, `metric` or
        `performance` (first non-null wins) and an optional `date`.
        Non-finite entries are dropped. Records are sorted by date only when
        every one of them has a valid date; otherwise input order is kept.

        Raises:
            ValidationError: If fewer than min_data_points usable values remain
        """
        return self._preprocessor.clean_series(series, self._min_data_points)

    def predict_performance(self, history: Any, horizon: int = 30) -> List[ForecastPoint]:
        """
        Forecast `horizon` steps ahead with additive Holt-Winters smoothing.

        Each forecast carries a 95% interval of +/- 1.96 * sqrt(variance),
        where variance grows linearly with the horizon.

        Args:
            history: Raw performance history
            horizon: Number of steps to forecast

        Returns:
            One ForecastPoint per step, horizon 1..H

        Raises:
            ValidationError: On short history or a non-positive horizon
            ComputationError: If the fit produces non-finite values
        """
        values = self.preprocess_series(history)
        steps = self.validate_horizon(horizon)

        level, trend, seasonal, residuals = self._fit(values)
        baseline_variance = self._residual_variance(residuals)
        n = len(values)

        forecasts: List[ForecastPoint] = []
        for h in range(1, steps + 1):
            season_index = (n + h - 1) % self._season_length
            value = ensure_finite(level + h * trend + seasonal[season_index], "forecast value")
            variance = self.calculate_forecast_variance(residuals, h, baseline_variance)
            margin = Z_95 * math.sqrt(variance)
            forecasts.append(ForecastPoint(
                value=float(value),
                lower_ci=float(value - margin),
                upper_ci=float(value + margin),
                variance=float(variance),
                horizon=h,
            ))

        self.logger.debug(
            f"Forecast {steps} steps from {n} points "
            f"(level={level:.3f}, trend={trend:.3f}, residual variance={baseline_variance:.3f})"
        )
        return forecasts

    @finite_result("forecast variance")
    def calculate_forecast_variance(
        self,
        residuals: Sequence[float],
        horizon: float,
        baseline_variance: Optional[float] = None,
    ) -> float:
        """
        Forecast variance at a horizon: baseline residual variance times horizon.

        This linear growth is a deliberate simplification of the full
        Holt-Winters state-space variance.

        Args:
            residuals: In-sample one-step residuals
            horizon: Steps ahead (values below 1 count as 1)
            baseline_variance: Precomputed residual variance to reuse

        Returns:
            Non-negative variance; 0 when there are no residuals
        """
        residuals = np.asarray(residuals, dtype=float)
        if residuals.size == 0:
            return 0.0
        if baseline_variance is None:
            baseline_variance = self._residual_variance(residuals)
        variance = float(baseline_variance) * max(1.0, float(horizon))
        return variance

    def compute_directional_accuracy(
        self,
        actual_series: Any,
        forecast_series: Sequence[Any],
        origin: int = 0,
    ) -> float:
        """
        Fraction of forecasts whose direction of change matches the actuals.

        Forecast k is compared against the move from actual[origin + k] to
        actual[origin + k + 1]; its predicted delta is the forecast value minus
        actual[origin + k]. Deltas within +/- directional_epsilon are flat,
        and a flat/flat pair counts as correct.

        Args:
            actual_series: Observed values
            forecast_series: ForecastPoints, {"value": ...} records or numbers
            origin: Index of the last actual observed before the first forecast

        Returns:
            Accuracy in [0, 1]; 0 when no pair is comparable
        """
        actual = self._preprocessor.clean_series(actual_series, 1)
        predicted = self._forecast_values(forecast_series)
        if predicted.size == 0:
            return 0.0
        if not isinstance(origin, int) or isinstance(origin, bool) or origin < 0:
            raise ValidationError(f"origin must be a non-negative integer, got {origin!r}")

        comparisons = min(len(actual) - 1 - origin, len(predicted))
        if comparisons <= 0:
            return 0.0

        correct = 0
        for k in range(comparisons):
            previous = actual[origin + k]
            actual_sign = self._direction(actual[origin + k + 1] - previous)
            predicted_sign = self._direction(predicted[k] - previous)
            if actual_sign == predicted_sign:
                correct += 1

        return correct / comparisons

    def backtest_performance(self, series: Any, horizon: int = 7) -> BacktestResult:
        """
        Slide a min_data_points training window across the series one step at
        a time, forecasting `horizon` steps from each position.

        Args:
            series: Raw performance history
            horizon: Steps forecast from every window

        Returns:
            BacktestResult with per-window detail and mean accuracy/MAPE

        Raises:
            ValidationError: If no full window plus horizon fits in the series
        """
        values = self.preprocess_series(series)
        steps = self.validate_horizon(horizon)
        window_size = self._min_data_points

        history: List[BacktestWindow] = []
        for split in self._splitter.rolling_window_split(len(values), window_size, steps):
            training = values[split.train_indices]
            actual = values[split.test_indices]
            forecasts = self.predict_performance(training, steps)
            accuracy = self.compute_directional_accuracy(
                np.concatenate([training, actual]), forecasts, origin=window_size - 1
            )
            history.append(BacktestWindow(
                start_index=split.train_indices[0],
                training=training.tolist(),
                actual=actual.tolist(),
                forecasts=forecasts,
                accuracy=accuracy,
                mape=self.calculate_mape(actual, forecasts),
            ))

        accuracy = float(np.mean([w.accuracy for w in history]))
        mape = float(np.mean([w.mape for w in history]))
        self.logger.debug(f"Backtest over {len(history)} windows: accuracy={accuracy:.3f}")
        return BacktestResult(accuracy=accuracy, mape=mape, history=history)

    def calculate_mape(self, actual_series: Any, forecast_series: Sequence[Any]) -> float:
        """
        Mean absolute percentage error, in percent.

        Positions whose actual value is exactly 0 are skipped.

        Returns:
            MAPE, or infinity when no position with a non-zero actual is comparable
        """
        actual = self._preprocessor.clean_series(actual_series, 1)
        predicted = self._forecast_values(forecast_series)

        comparisons = min(len(actual), len(predicted))
        return mape_percent(actual[:comparisons], predicted[:comparisons])

    @finite_result("normalized series")
    def normalize_series(self, series: Any) -> np.ndarray:
        """
        Z-score normalization with the sample standard deviation.

        A constant series normalizes to all zeros.

        Raises:
            ComputationError: If the mean or standard deviation overflows
        """
        values = self._preprocessor.clean_series(series, 1)
        if np.all(values == values[0]):
            return np.zeros_like(values)

        mean = ensure_finite(float(np.mean(values)), "series mean")
        variance = float(np.sum((values - mean) ** 2)) / max(len(values) - 1, 1)
        std_dev = ensure_finite(math.sqrt(variance), "series standard deviation")
        if std_dev == 0:
            return np.zeros_like(values)
        return (values - mean) / std_dev

    def analyze_trend(self, history: Any, window: Optional[int] = None) -> TrendSummary:
        """
        Summarize the trend of a cleaned history.

        Args:
            history: Raw performance history
            window: Rolling slope window (defaults to season_length)

        Returns:
            TrendSummary with the overall regression, coefficient of variation
            and rolling slopes
        """
        values = self.preprocess_series(history)
        window = window or self._season_length
        points = list(enumerate(values.tolist()))
        return TrendSummary(
            regression=self.trend_analyzer.linear_regression(points),
            coefficient_of_variation=self.trend_analyzer.coefficient_of_variation(values),
            rolling_slopes=self.trend_analyzer.rolling_slopes(points, window),
            window=window,
        )

    def _fit(self, values: np.ndarray) -> Tuple[float, float, List[float], np.ndarray]:
        """Run the Holt-Winters recursions; return final state and residuals."""
        alpha, beta, gamma = self._alpha, self._beta, self._gamma
        level, trend, seasonal = self._initialize_components(values)
        residuals = np.empty(len(values), dtype=float)

        for i, value in enumerate(values):
            season_index = i % self._season_length
            seasonal_factor = seasonal[season_index]

            # One-step-ahead fit from the state before this observation
            fitted = level + trend + seasonal_factor
            residuals[i] = value - fitted

            new_level = alpha * (value - seasonal_factor) + (1 - alpha) * (level + trend)
            trend = beta * (new_level - level) + (1 - beta) * trend
            seasonal[season_index] = gamma * (value - new_level) + (1 - gamma) * seasonal_factor
            level = new_level

        ensure_finite([level, trend, *seasonal], "Holt-Winters state")
        ensure_finite(residuals, "Holt-Winters residuals")
        return level, trend, seasonal, residuals

    def _initialize_components(self, values: np.ndarray) -> Tuple[float, float, List[float]]:
        """Initial level, trend and per-phase seasonal factors."""
        season_length = self._season_length
        season_count = len(values) // season_length

        if season_count < 2:
            self.logger.warning(
                f"Only {season_count} full season(s) of length {season_length}; "
                f"forecasting without seasonality"
            )
            return float(values[0]), float(values[1] - values[0]), [0.0] * season_length

        seasons = values[:season_count * season_length].reshape(season_count, season_length)
        averages = seasons.mean(axis=1)

        initial_level = float(averages[0])
        initial_trend = float(averages[1] - averages[0]) / season_length
        seasonal = (seasons - averages[:, None]).mean(axis=0)
        return initial_level, initial_trend, seasonal.tolist()

    def _direction(self, delta: float) -> int:
        if abs(delta) <= self._directional_epsilon:
            return 0
        return 1 if delta > 0 else -1

    @staticmethod
    def _residual_variance(residuals: np.ndarray) -> float:
        """Sample variance (n - 1 denominator, minimum 1)."""
        residuals = np.asarray(residuals, dtype=float)
        if residuals.size == 0:
            return 0.0
        mean = float(np.mean(residuals))
        variance = float(np.sum((residuals - mean) ** 2)) / max(residuals.size - 1, 1)
        return ensure_finite(variance, "residual variance")

    @staticmethod
    def _forecast_values(forecast_series: Sequence[Any]) -> np.ndarray:
        """Pull point values out of ForecastPoints, records or bare numbers."""
        if forecast_series is None:
            return np.asarray([], dtype=float)

        values = []
        for entry in forecast_series:
            if isinstance(entry, ForecastPoint):
                values.append(entry.value)
            elif isinstance(entry, Mapping):
                values.append(entry.get("value"))
            else:
                values.append(entry)

        if not all(is_finite_number(v) for v in values):
            raise ValidationError("Forecast values must be finite numbers")
        return np.asarray(values, dtype=float)

    @staticmethod
    def validate_horizon(horizon: Any) -> int:
        if not is_finite_number(horizon) or horizon <= 0:
            raise ValidationError(f"Forecast horizon must be positive, got {horizon!r}")
        steps = int(horizon)
        if steps < 1:
            raise ValidationError(f"Forecast horizon must be at least 1, got {horizon!r}")
        return steps

    @staticmethod
    def _numeric(name: str, value: Any, default: float) -> float:
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise ConfigurationError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(float(value)):
            return default
        return float(value)

    def _smoothing(self, name: str, value: Any, default: float) -> float:
        raw = self._numeric(name, value, default)
        clamped = _clamp(raw, MIN_SMOOTHING, MAX_SMOOTHING)
        if clamped != raw:
            self.logger.debug(f"{name}={raw} clamped to {clamped}")
        return clamped
