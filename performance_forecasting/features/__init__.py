"""Feature engineering and trend utilities.

This module provides:
- Regression, EMA, coefficient of variation and rolling slopes
- Rolling statistics, rate of change and calendar decomposition
- Correlation analysis between metrics
"""

from performance_forecasting.features.trend import TrendAnalyzer
from performance_forecasting.features.engineering import (
    FeatureExtractor,
    classify_correlation_strength,
)

__all__ = [
    "TrendAnalyzer",
    "FeatureExtractor",
    "classify_correlation_strength",
]
