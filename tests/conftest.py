"""Pytest configuration and shared fixtures."""

import pytest
import pandas as pd
import numpy as np

from performance_forecasting.models.prediction_engine import PredictionEngine
from performance_forecasting.validation.model_validator import ModelValidator

WEEKLY_PATTERN = [100.0, 102.0, 98.0, 101.0, 99.0, 103.0, 97.0]


@pytest.fixture
def engine():
    """Engine with default settings (season 7, 14 point minimum)."""
    return PredictionEngine()


@pytest.fixture
def validator(engine):
    """Validator around the default engine."""
    return ModelValidator(engine=engine)


@pytest.fixture
def seasonal_series():
    """Two weeks of a weekly training pattern."""
    return [100, 102, 98, 101, 99, 103, 97, 101, 103, 99, 102, 100, 104, 98]


@pytest.fixture
def periodic_series():
    """Five exact repetitions of the weekly pattern, no trend or noise."""
    return WEEKLY_PATTERN * 5


@pytest.fixture
def noisy_trend_series():
    """Eight weeks of trending, seasonal, noisy performance values."""
    rng = np.random.default_rng(42)
    index = np.arange(56)
    pattern = np.array(WEEKLY_PATTERN) - 100.0
    values = 100.0 + 0.5 * index + pattern[index % 7] + rng.normal(0, 0.3, len(index))
    return values.tolist()


@pytest.fixture
def dated_history(noisy_trend_series):
    """Daily {date, value} records for the noisy trend, shuffled."""
    dates = pd.date_range(start="2024-01-01", periods=len(noisy_trend_series), freq="D")
    records = [
        {"date": date.isoformat(), "value": value}
        for date, value in zip(dates, noisy_trend_series)
    ]
    rng = np.random.default_rng(7)
    order = rng.permutation(len(records))
    return [records[i] for i in order]


@pytest.fixture
def metric_records():
    """Forty daily training logs with a rising load and a noisy RPE."""
    rng = np.random.default_rng(3)
    dates = pd.date_range(start="2024-03-01", periods=40, freq="D")
    return [
        {
            "date": date.strftime("%Y-%m-%d"),
            "load": 60.0 + 1.5 * i,
            "rpe": 7.0 + float(rng.normal(0, 0.5)),
        }
        for i, date in enumerate(dates)
    ]
