"""Feature engineering over timestamped performance logs.

Provides rolling statistics, rate-of-change and acceleration, calendar
(week/month) decomposition, and correlation analysis between metrics.
"""

from typing import List, Optional, Dict, Any, Sequence, Union
import logging
import math

import numpy as np
import pandas as pd
from scipy.stats import t as t_dist

from performance_forecasting.data.structs import CorrelationResult
from performance_forecasting.features.trend import TrendAnalyzer
from performance_forecasting.utils.error_handling import ConfigurationError, ValidationError
from performance_forecasting.utils.logging_config import resolve_logger

DEFAULT_WINDOWS = (7, 14, 30)
SECONDS_PER_DAY = 24 * 60 * 60

Records = Union[pd.DataFrame, Sequence[Dict[str, Any]]]


def classify_correlation_strength(r: float) -> str:
    """Classify correlation strength."""
    abs_r = abs(r)
    if abs_r < 0.3:
        return "weak"
    elif abs_r < 0.7:
        return "moderate"
    else:
        return "strong"


class FeatureExtractor:
    """Transforms raw training/performance logs into statistical features."""

    def __init__(
        self,
        windows: Optional[Sequence[int]] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize FeatureExtractor.

        Args:
            windows: Rolling window sizes (default 7, 14, 30)
            trend_analyzer: Shared TrendAnalyzer instance
            logger: Injected logger; a no-op logger when None
        """
        self.logger = resolve_logger(logger)
        self.trend_analyzer = trend_analyzer or TrendAnalyzer(self.logger)
        windows = tuple(DEFAULT_WINDOWS if windows is None else windows)
        if not windows or any(
            not isinstance(w, int) or isinstance(w, bool) or w < 1 for w in windows
        ):
            raise ConfigurationError(f"Rolling windows must be positive integers, got {windows!r}")
        self.windows = windows

    def validate_series(
        self,
        series: Records,
        required_keys: Sequence[str] = (),
    ) -> pd.DataFrame:
        """
        Validate records and return them as a DataFrame sorted by timestamp.

        Each record needs a `timestamp` (epoch milliseconds or datetime) or a
        parseable `date`, and a finite numeric value for every required key.

        Args:
            series: List of record mappings or a DataFrame
            required_keys: Metric columns that must be numeric

        Returns:
            DataFrame with a UTC `timestamp` column and numeric metric columns

        Raises:
            ValidationError: On empty input, missing timestamps or missing values
        """
        if isinstance(series, pd.DataFrame):
            frame = series.copy()
        elif series is None or isinstance(series, (str, bytes)):
            raise ValidationError("Feature extraction requires non-empty series")
        else:
            frame = pd.DataFrame(list(series))

        if frame.empty:
            raise ValidationError("Feature extraction requires non-empty series")

        frame = frame.reset_index(drop=True)
        frame["timestamp"] = self._parse_timestamps(frame)
        if frame["timestamp"].isna().any():
            raise ValidationError("Entries require a numeric timestamp (ms) or a valid date")

        for key in required_keys:
            if key not in frame.columns:
                raise ValidationError(f"Missing numeric value for {key}")
            values = pd.to_numeric(frame[key], errors="coerce").astype(float)
            if not np.isfinite(values.to_numpy()).all():
                raise ValidationError(f"Missing numeric value for {key}")
            frame[key] = values

        return frame.sort_values("timestamp", kind="mergesort").reset_index(drop=True)

    def add_rolling_statistics(
        self,
        series: Records,
        metric_keys: Sequence[str],
    ) -> pd.DataFrame:
        """
        Add trailing rolling mean and standard deviation per metric and window.

        Columns are named `{key}_ma_{window}` and `{key}_std_{window}`. The
        standard deviation uses the n-1 denominator and is 0 for a single
        observation.

        Args:
            series: Timestamped records
            metric_keys: Metric columns to summarize

        Returns:
            DataFrame with original and rolling statistic columns
        """
        features = self.validate_series(series, metric_keys)

        for key in metric_keys:
            for window in self.windows:
                rolling = features[key].rolling(window=window, min_periods=1)
                features[f"{key}_ma_{window}"] = rolling.mean()
                features[f"{key}_std_{window}"] = rolling.std(ddof=1).fillna(0.0)

        self.logger.debug(
            f"Created {len(metric_keys) * len(self.windows) * 2} rolling features"
        )
        return features

    def add_rate_of_change(
        self,
        series: Records,
        metric_keys: Sequence[str],
    ) -> pd.DataFrame:
        """
        Add per-day rate of change (`{key}_roc`) and acceleration (`{key}_accel`).

        Both are 0 on the first row and wherever consecutive timestamps are
        not strictly increasing.
        """
        features = self.validate_series(series, metric_keys)
        delta_days = features["timestamp"].diff().dt.total_seconds() / SECONDS_PER_DAY
        forward = delta_days > 0

        for key in metric_keys:
            rate = (features[key].diff() / delta_days).where(forward, 0.0).fillna(0.0)
            accel = (rate.diff() / delta_days).where(forward, 0.0).fillna(0.0)
            features[f"{key}_roc"] = rate
            features[f"{key}_accel"] = accel

        return features

    def add_seasonal_decomposition(self, series: Records, metric_key: str) -> pd.DataFrame:
        """
        Add ISO-week and calendar-month means and the residual from their average.

        Args:
            series: Timestamped records
            metric_key: Metric column to decompose

        Returns:
            DataFrame with `{key}_weekly`, `{key}_monthly` and
            `{key}_seasonal_residual` columns
        """
        features = self.validate_series(series, [metric_key])
        timestamps = features["timestamp"]

        iso = timestamps.dt.isocalendar()
        week_key = iso["year"].astype(str) + "-W" + iso["week"].astype(str)
        month_key = timestamps.dt.strftime("%Y-%m")

        weekly = features.groupby(week_key)[metric_key].transform("mean")
        monthly = features.groupby(month_key)[metric_key].transform("mean")

        features[f"{metric_key}_weekly"] = weekly
        features[f"{metric_key}_monthly"] = monthly
        features[f"{metric_key}_seasonal_residual"] = features[metric_key] - (weekly + monthly) / 2
        return features

    def correlation_analysis(self, series: Records, x_key: str, y_key: str) -> CorrelationResult:
        """
        Pearson correlation between two metrics with a two-tailed p-value.

        The slope and r2 come from regressing y_key on record position, so
        they describe the trend of the target rather than the x/y relation.

        Args:
            series: Timestamped records
            x_key: Explanatory metric
            y_key: Target metric

        Returns:
            CorrelationResult
        """
        frame = self.validate_series(series, [x_key, y_key])
        x = frame[x_key].to_numpy(dtype=float)
        y = frame[y_key].to_numpy(dtype=float)
        n = len(frame)

        regression = self.trend_analyzer.linear_regression(list(enumerate(y)))

        dx = x - x.mean()
        dy = y - y.mean()
        denominator_x = math.sqrt(float(np.sum(dx ** 2)))
        denominator_y = math.sqrt(float(np.sum(dy ** 2)))
        if denominator_x > 0 and denominator_y > 0:
            correlation = float(np.sum(dx * dy)) / (denominator_x * denominator_y)
            correlation = min(1.0, max(-1.0, correlation))
        else:
            correlation = 0.0

        t_statistic = correlation * math.sqrt(
            max(n - 2, 0) / max(1 - correlation ** 2, 1e-6)
        )
        degrees_of_freedom = max(1, n - 2)
        # Two-tailed p-value from the Student t distribution
        p_value = float(2 * t_dist.sf(abs(t_statistic), degrees_of_freedom))

        return CorrelationResult(
            slope=regression.slope,
            r2=regression.r2,
            correlation=correlation,
            p_value=min(1.0, max(0.0, p_value)),
            strength=classify_correlation_strength(correlation),
        )

    def latest_moving_average(
        self,
        series: Records,
        metric_key: str,
        window: Optional[int] = None,
    ) -> float:
        """
        Most recent trailing mean of a metric.

        Args:
            series: Timestamped records
            metric_key: Metric column
            window: Window size (defaults to the shortest configured window)

        Returns:
            Last value of the rolling mean
        """
        window = window or self.windows[0]
        frame = self.validate_series(series, [metric_key])
        return float(frame[metric_key].rolling(window=window, min_periods=1).mean().iloc[-1])

    def _parse_timestamps(self, frame: pd.DataFrame) -> pd.Series:
        """Build a UTC timestamp column from `timestamp` (ms) and/or `date`."""
        parsed = pd.Series(pd.NaT, index=frame.index, dtype="datetime64[ns, UTC]")

        if "timestamp" in frame.columns:
            raw = frame["timestamp"]
            if pd.api.types.is_datetime64_any_dtype(raw):
                from_timestamp = pd.to_datetime(raw, utc=True)
            else:
                millis = pd.to_numeric(raw, errors="coerce")
                from_timestamp = pd.to_datetime(millis, unit="ms", utc=True, errors="coerce")
            parsed = from_timestamp.combine_first(parsed)

        if "date" in frame.columns:
            from_date = pd.to_datetime(frame["date"], utc=True, errors="coerce", format="mixed")
            parsed = parsed.combine_first(from_date)

        return parsed
