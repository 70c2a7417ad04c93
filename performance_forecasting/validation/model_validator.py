"""Leakage-free validation of performance forecasts.

Runs the PredictionEngine over walk-forward folds, scores feature
correlations, detects drift in rolling means and exposes the accuracy gate
the application uses before surfacing a forecast.
"""

from numbers import Integral
from typing import Any, Dict, List, Optional, Sequence
import logging

import numpy as np

from performance_forecasting.data.splitters import WalkForwardSplitter
from performance_forecasting.data.structs import (
    DriftResult,
    FeatureCorrelation,
    Fold,
    ValidationReport,
    ValidationResult,
)
from performance_forecasting.evaluation.metrics import MetricsCalculator
from performance_forecasting.features.engineering import FeatureExtractor, Records
from performance_forecasting.models.prediction_engine import PredictionEngine
from performance_forecasting.utils.error_handling import ConfigurationError, ValidationError
from performance_forecasting.utils.logging_config import resolve_logger

DEFAULT_SPLITS = 3


class ModelValidator:
    """Cross-validates a PredictionEngine and gates forecasts on accuracy."""

    def __init__(
        self,
        engine: Optional[PredictionEngine] = None,
        feature_extractor: Optional[FeatureExtractor] = None,
        required_accuracy: float = 0.75,
        drift_threshold: float = 0.15,
        splits: int = DEFAULT_SPLITS,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the validator.

        Args:
            engine: Forecasting engine under validation
            feature_extractor: Source of rolling features
            required_accuracy: Directional accuracy needed to pass the gate
            drift_threshold: Relative rolling-mean change that counts as drift
            splits: Folds used by backtest
            logger: Injected logger; a no-op logger when None
        """
        self.logger = resolve_logger(logger)
        self.engine = engine or PredictionEngine(logger=self.logger)
        self.feature_extractor = feature_extractor or FeatureExtractor(
            trend_analyzer=self.engine.trend_analyzer, logger=self.logger
        )

        if not 0 <= required_accuracy <= 1:
            raise ConfigurationError(
                f"required_accuracy must be within [0, 1], got {required_accuracy}"
            )
        if drift_threshold < 0:
            raise ConfigurationError(f"drift_threshold must be non-negative, got {drift_threshold}")
        if not isinstance(splits, Integral) or isinstance(splits, bool) or splits < 1:
            raise ConfigurationError(f"splits must be a positive integer, got {splits!r}")

        self.required_accuracy = float(required_accuracy)
        self.drift_threshold = float(drift_threshold)
        self.splits = int(splits)
        self._splitter = WalkForwardSplitter()
        self._metrics = MetricsCalculator()

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
    ) -> "ModelValidator":
        """Build a validator (with its engine and extractor) from a forecasting config."""
        engine = PredictionEngine.from_config(config, logger=logger)
        features = config.get("features", {})
        validation = config.get("validation", {})
        return cls(
            engine=engine,
            feature_extractor=FeatureExtractor(
                windows=features.get("windows"),
                trend_analyzer=engine.trend_analyzer,
                logger=logger,
            ),
            required_accuracy=validation.get("required_accuracy", 0.75),
            drift_threshold=validation.get("drift_threshold", 0.15),
            splits=validation.get("splits", DEFAULT_SPLITS),
            logger=logger,
        )

    def time_series_split(
        self,
        series: Any,
        splits: int = DEFAULT_SPLITS,
        min_train_size: Optional[int] = None,
    ) -> List[Fold]:
        """
        Partition the cleaned series into walk-forward folds.

        Training windows expand from min_train_size; test windows have a
        fixed size of (n - min_train_size) // splits and follow one another
        without overlap. Training always ends before testing begins.

        Args:
            series: Raw performance history
            splits: Number of folds
            min_train_size: Initial training size (defaults to min_data_points)

        Returns:
            List of Fold objects in chronological order

        Raises:
            ValidationError: If not even one non-degenerate fold fits
        """
        values = self.engine.preprocess_series(series)
        if not isinstance(splits, Integral) or isinstance(splits, bool) or splits < 1:
            raise ValidationError(f"splits must be a positive integer, got {splits!r}")

        min_train = self.engine.min_data_points if min_train_size is None else min_train_size
        if not isinstance(min_train, Integral) or isinstance(min_train, bool) or min_train < 1:
            raise ValidationError(f"min_train_size must be a positive integer, got {min_train!r}")
        splits, min_train = int(splits), int(min_train)

        test_size = (len(values) - min_train) // splits
        if test_size < 1:
            raise ValidationError(
                f"Not enough data for {splits} fold(s): {len(values)} points with "
                f"a minimum training size of {min_train}"
            )

        folds = [
            self._splitter.apply_split(values, split)
            for split in self._splitter.expanding_window_split(
                len(values), min_train, test_size, max_splits=splits
            )
        ]
        self.logger.debug(
            f"Split {len(values)} points into {len(folds)} folds "
            f"(initial train={min_train}, test={test_size})"
        )
        return folds

    def backtest(self, series: Any, horizon: int = 7) -> ValidationReport:
        """
        Cross-validate the engine over walk-forward folds.

        Each fold forecasts `horizon` steps from its training data. Directional
        accuracy is scored on training+testing from the end of training;
        MAPE, MAE and RMSE are scored against the testing data only.

        Args:
            series: Raw performance history
            horizon: Steps forecast per fold

        Returns:
            ValidationReport with per-fold results and mean accuracy/MAPE
        """
        history: List[ValidationResult] = []

        for fold in self.time_series_split(series, self.splits):
            forecasts = self.engine.predict_performance(fold.training, horizon)
            combined = np.concatenate([fold.training, fold.testing])
            accuracy = self.engine.compute_directional_accuracy(
                combined, forecasts, origin=len(fold.training) - 1
            )
            predicted = [point.value for point in forecasts]
            errors = self._metrics.get_all_metrics(fold.testing, predicted).metrics

            history.append(ValidationResult(
                accuracy=accuracy,
                mape=self.engine.calculate_mape(fold.testing, forecasts),
                training_size=len(fold.training),
                testing_size=len(fold.testing),
                mae=errors["mae"],
                rmse=errors["rmse"],
                fold=fold.fold,
            ))

        report = ValidationReport(
            accuracy=float(np.mean([r.accuracy for r in history])),
            mape=float(np.mean([r.mape for r in history])),
            history=history,
            required_accuracy=self.required_accuracy,
        )
        self.logger.info(
            f"Backtest over {len(history)} folds: accuracy={report.accuracy:.3f}, "
            f"mape={report.mape:.2f}%"
        )
        return report

    def evaluate_feature_correlation(
        self,
        series: Records,
        metric_keys: Sequence[str],
    ) -> List[FeatureCorrelation]:
        """
        Correlate each rolling moving-average feature with its raw metric.

        Args:
            series: Timestamped records
            metric_keys: Metrics to evaluate

        Returns:
            FeatureCorrelation per metric and window, strongest first
        """
        features = self.feature_extractor.add_rolling_statistics(series, metric_keys)

        results: List[FeatureCorrelation] = []
        for key in metric_keys:
            for window in self.feature_extractor.windows:
                feature = f"{key}_ma_{window}"
                results.append(FeatureCorrelation(
                    metric_key=key,
                    feature=feature,
                    window=window,
                    result=self.feature_extractor.correlation_analysis(features, feature, key),
                ))

        results.sort(key=lambda item: abs(item.result.correlation), reverse=True)
        return results

    def detect_drift(self, history: Records, recent: Records, metric_key: str) -> DriftResult:
        """
        Compare the latest rolling mean of recent data with the historical one.

        Drift is flagged when the absolute difference exceeds drift_threshold
        (15% by default) of the historical value's magnitude. This is a
        relative-threshold heuristic, not a statistical test.

        Args:
            history: Historical timestamped records
            recent: Recent timestamped records
            metric_key: Metric to compare

        Returns:
            DriftResult
        """
        baseline = self.feature_extractor.latest_moving_average(history, metric_key)
        current = self.feature_extractor.latest_moving_average(recent, metric_key)

        magnitude = abs(current - baseline)
        threshold = abs(baseline) * self.drift_threshold
        detected = magnitude > threshold

        if detected:
            self.logger.warning(
                f"Drift detected for {metric_key}: {baseline:.3f} -> {current:.3f} "
                f"(|delta|={magnitude:.3f} > {threshold:.3f})"
            )
        return DriftResult(
            drift_detected=bool(detected),
            drift_magnitude=float(magnitude),
            threshold=float(threshold),
            baseline=float(baseline),
            recent=float(current),
        )

    def directional_accuracy(self, series: Any, horizon: int = 7) -> float:
        """
        Mean directional accuracy of a walk forward in horizon-sized steps.

        Training starts at min_data_points and grows by `horizon` each step;
        every step forecasts the next `horizon` points. Steps need a full
        test window.

        Returns:
            Mean accuracy in [0, 1]; 0.0 when no step fits in the series
        """
        values = self.engine.preprocess_series(series)
        steps = self.engine.validate_horizon(horizon)
        min_train = self.engine.min_data_points

        if len(values) < min_train + steps:
            self.logger.warning(
                f"No walk-forward step fits: {len(values)} points, need "
                f"{min_train + steps} for horizon {steps}"
            )
            return 0.0

        scores = []
        for split in self._splitter.expanding_window_split(len(values), min_train, steps):
            fold = self._splitter.apply_split(values, split)
            forecasts = self.engine.predict_performance(fold.training, steps)
            scores.append(self.engine.compute_directional_accuracy(
                np.concatenate([fold.training, fold.testing]),
                forecasts,
                origin=len(fold.training) - 1,
            ))

        return float(np.mean(scores))

    def meets_directional_accuracy(self, series: Any, horizon: int = 7) -> bool:
        """Whether walk-forward directional accuracy reaches required_accuracy."""
        accuracy = self.directional_accuracy(series, horizon)
        passed = accuracy >= self.required_accuracy
        self.logger.info(
            f"Directional accuracy {accuracy:.3f} vs required "
            f"{self.required_accuracy:.2f}: {'pass' if passed else 'fail'}"
        )
        return passed
