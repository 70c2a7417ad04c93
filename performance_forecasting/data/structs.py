"""Core data structures for forecasting and validation results."""

from dataclasses import dataclass, field
from typing import Dict, List, Any

import numpy as np


@dataclass(frozen=True)
class ForecastPoint:
    """
    A single forecast step with its 95% interval.

    Attributes:
        value: Point forecast
        lower_ci: Lower bound of the 95% interval
        upper_ci: Upper bound of the 95% interval
        variance: Forecast variance at this horizon
        horizon: Steps ahead of the last observation (1-based)
    """
    value: float
    lower_ci: float
    upper_ci: float
    variance: float
    horizon: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "value": self.value,
            "lower_ci": self.lower_ci,
            "upper_ci": self.upper_ci,
            "variance": self.variance,
            "horizon": self.horizon,
        }


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least squares fit summary."""
    slope: float
    intercept: float
    r2: float
    standard_error: float
    mean_x: float
    mean_y: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "r2": self.r2,
            "standard_error": self.standard_error,
            "mean_x": self.mean_x,
            "mean_y": self.mean_y,
        }


@dataclass
class TrendSummary:
    """Trend description of a cleaned performance history."""
    regression: RegressionResult
    coefficient_of_variation: float
    rolling_slopes: List[float]
    window: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "regression": self.regression.to_dict(),
            "coefficient_of_variation": self.coefficient_of_variation,
            "rolling_slopes": list(self.rolling_slopes),
            "window": self.window,
        }


@dataclass
class Fold:
    """
    One walk-forward train/test fold.

    Every entry of train_indices is strictly smaller than every entry of
    test_indices.
    """
    training: np.ndarray
    testing: np.ndarray
    train_indices: List[int]
    test_indices: List[int]
    fold: int = 0

    def __post_init__(self):
        """Validate consistency after initialization."""
        if len(self.training) != len(self.train_indices):
            raise ValueError(
                f"Length mismatch: training ({len(self.training)}) vs "
                f"train_indices ({len(self.train_indices)})"
            )
        if len(self.testing) != len(self.test_indices):
            raise ValueError(
                f"Length mismatch: testing ({len(self.testing)}) vs "
                f"test_indices ({len(self.test_indices)})"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "fold": self.fold,
            "training": [float(v) for v in self.training],
            "testing": [float(v) for v in self.testing],
            "train_indices": list(self.train_indices),
            "test_indices": list(self.test_indices),
        }


@dataclass
class BacktestWindow:
    """Detail for one sliding training window of a backtest."""
    start_index: int
    training: List[float]
    actual: List[float]
    forecasts: List[ForecastPoint]
    accuracy: float
    mape: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start_index": self.start_index,
            "training": self.training,
            "actual": self.actual,
            "forecasts": [f.to_dict() for f in self.forecasts],
            "accuracy": self.accuracy,
            "mape": self.mape,
        }


@dataclass
class BacktestResult:
    """Mean directional accuracy and MAPE over all backtest windows."""
    accuracy: float
    mape: float
    history: List[BacktestWindow] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "accuracy": self.accuracy,
            "mape": self.mape,
            "history": [w.to_dict() for w in self.history],
        }


@dataclass
class ValidationResult:
    """Scores for a single cross-validation fold."""
    accuracy: float
    mape: float
    training_size: int
    testing_size: int
    mae: float
    rmse: float
    fold: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "fold": self.fold,
            "accuracy": self.accuracy,
            "mape": self.mape,
            "training_size": self.training_size,
            "testing_size": self.testing_size,
            "mae": self.mae,
            "rmse": self.rmse,
        }


@dataclass
class ValidationReport:
    """Aggregate of fold-level validation results."""
    accuracy: float
    mape: float
    history: List[ValidationResult]
    required_accuracy: float

    @property
    def passed(self) -> bool:
        """Whether the mean accuracy clears the required accuracy."""
        return self.accuracy >= self.required_accuracy

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "accuracy": self.accuracy,
            "mape": self.mape,
            "required_accuracy": self.required_accuracy,
            "passed": self.passed,
            "history": [r.to_dict() for r in self.history],
        }


@dataclass(frozen=True)
class CorrelationResult:
    """Correlation between two metric columns."""
    slope: float
    r2: float
    correlation: float
    p_value: float
    strength: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "slope": self.slope,
            "r2": self.r2,
            "correlation": self.correlation,
            "p_value": self.p_value,
            "strength": self.strength,
        }


@dataclass(frozen=True)
class FeatureCorrelation:
    """How closely an engineered feature tracks its source metric."""
    metric_key: str
    feature: str
    window: int
    result: CorrelationResult

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "metric_key": self.metric_key,
            "feature": self.feature,
            "window": self.window,
            **self.result.to_dict(),
        }


@dataclass(frozen=True)
class DriftResult:
    """Outcome of comparing recent and historical rolling means."""
    drift_detected: bool
    drift_magnitude: float
    threshold: float
    baseline: float
    recent: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "drift_detected": self.drift_detected,
            "drift_magnitude": self.drift_magnitude,
            "threshold": self.threshold,
            "baseline": self.baseline,
            "recent": self.recent,
        }
