"""Cleaning of raw performance histories into numeric series."""

from collections.abc import Mapping
from typing import Any, List, Optional, Tuple
import logging
import math

import numpy as np
import pandas as pd

from performance_forecasting.utils.error_handling import ValidationError, is_finite_number
from performance_forecasting.utils.logging_config import resolve_logger

VALUE_KEYS = ("value", "metric", "performance")
TIMESTAMP_KEYS = ("date", "timestamp")

Sample = Tuple[Optional[int], float]


class SeriesPreprocessor:
    """Turns raw samples (numbers or value records) into a clean float array."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = resolve_logger(logger)

    def extract_samples(self, series: Any) -> List[Sample]:
        """
        Extract (timestamp, value) pairs from a raw history.

        Entries that are missing, non-numeric or non-finite are dropped.
        Timestamps are epoch nanoseconds, or None when absent or unparseable.

        Args:
            series: Sequence of numbers / records, numpy array or pandas Series

        Returns:
            List of (timestamp, value) tuples in input order

        Raises:
            ValidationError: If the history is missing or empty
        """
        if series is None or isinstance(series, (str, bytes, Mapping)):
            raise ValidationError("Performance history is required")

        if isinstance(series, pd.Series):
            return self._extract_from_pandas(series)

        try:
            entries = list(series)
        except TypeError as e:
            raise ValidationError(f"Performance history must be a sequence: {e}") from e
        if not entries:
            raise ValidationError("Performance history is required")

        samples: List[Sample] = []
        for entry in entries:
            sample = self._extract_entry(entry)
            if sample is not None:
                samples.append(sample)
        return samples

    def clean_series(self, series: Any, min_points: int) -> np.ndarray:
        """
        Clean a raw history and enforce a minimum usable length.

        Values are sorted by timestamp when every sample carries one;
        otherwise the input order is kept.

        Args:
            series: Raw history
            min_points: Minimum number of usable values

        Returns:
            Float array of finite values

        Raises:
            ValidationError: If fewer than min_points usable values remain
        """
        samples = self.extract_samples(series)

        if len(samples) < min_points:
            raise ValidationError(
                f"At least {min_points} data points are required for forecasting "
                f"(got {len(samples)} usable)"
            )

        dropped = self._input_length(series) - len(samples)
        if dropped > 0:
            self.logger.debug(f"Dropped {dropped} unusable samples from history")

        if samples and all(ts is not None for ts, _ in samples):
            # sorted() is stable, so equal timestamps keep their input order
            samples = sorted(samples, key=lambda sample: sample[0])

        return np.asarray([value for _, value in samples], dtype=float)

    def _extract_from_pandas(self, series: pd.Series) -> List[Sample]:
        """Extract samples from a pandas Series, using a DatetimeIndex if present."""
        if series.empty:
            raise ValidationError("Performance history is required")

        has_dates = isinstance(series.index, pd.DatetimeIndex)
        samples: List[Sample] = []
        for index, raw in series.items():
            value = self._to_float(raw)
            if value is None:
                continue
            timestamp = self._to_timestamp(index) if has_dates else None
            samples.append((timestamp, value))
        return samples

    def _extract_entry(self, entry: Any) -> Optional[Sample]:
        """Extract a single sample, or None if the entry is unusable."""
        if entry is None or isinstance(entry, bool):
            return None

        if is_finite_number(entry):
            return None, float(entry)

        if not isinstance(entry, Mapping):
            return None

        raw_value = next(
            (entry[key] for key in VALUE_KEYS if entry.get(key) is not None),
            None,
        )
        value = self._to_float(raw_value)
        if value is None:
            return None

        raw_timestamp = next(
            (entry[key] for key in TIMESTAMP_KEYS if entry.get(key) is not None),
            None,
        )
        return self._to_timestamp(raw_timestamp), value

    @staticmethod
    def _to_float(raw: Any) -> Optional[float]:
        """Coerce raw to a finite float, or None."""
        if raw is None or isinstance(raw, bool):
            return None
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None

    @staticmethod
    def _to_timestamp(raw: Any) -> Optional[int]:
        """Parse raw into epoch nanoseconds, or None when it is not a valid date."""
        if raw is None or isinstance(raw, bool):
            return None
        try:
            if is_finite_number(raw):
                # Bare numbers are epoch milliseconds
                timestamp = pd.Timestamp(float(raw), unit="ms")
            else:
                timestamp = pd.Timestamp(raw)
        except (TypeError, ValueError, OverflowError):
            return None
        if pd.isna(timestamp):
            return None
        return int(timestamp.value)

    @staticmethod
    def _input_length(series: Any) -> int:
        try:
            return len(series)
        except TypeError:
            return 0
