"""Series cleaning, walk-forward splitting, and result structures."""

from .preprocessors import SeriesPreprocessor
from .splitters import WalkForwardSplitter, SplitIndices
from .structs import (
    BacktestResult,
    BacktestWindow,
    CorrelationResult,
    DriftResult,
    FeatureCorrelation,
    Fold,
    ForecastPoint,
    RegressionResult,
    TrendSummary,
    ValidationReport,
    ValidationResult,
)

__all__ = [
    "SeriesPreprocessor",
    "WalkForwardSplitter",
    "SplitIndices",
    "BacktestResult",
    "BacktestWindow",
    "CorrelationResult",
    "DriftResult",
    "FeatureCorrelation",
    "Fold",
    "ForecastPoint",
    "RegressionResult",
    "TrendSummary",
    "ValidationReport",
    "ValidationResult",
]
