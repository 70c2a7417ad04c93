"""Unit tests for feature engineering over timestamped logs."""

import numpy as np
import pandas as pd
import pytest

from performance_forecasting.features.engineering import (
    FeatureExtractor,
    classify_correlation_strength,
)
from performance_forecasting.utils.error_handling import ConfigurationError, ValidationError


def daily_records(values, key="load", start="2024-01-01"):
    dates = pd.date_range(start=start, periods=len(values), freq="D")
    return [{"date": d.strftime("%Y-%m-%d"), key: v} for d, v in zip(dates, values)]


class TestConstruction:
    """Tests for FeatureExtractor configuration."""

    def test_default_windows(self):
        assert FeatureExtractor().windows == (7, 14, 30)

    @pytest.mark.parametrize("windows", [[], [0], [7.5], [True], [7, -1]])
    def test_invalid_windows(self, windows):
        with pytest.raises(ConfigurationError):
            FeatureExtractor(windows=windows)


class TestValidateSeries:
    """Tests for FeatureExtractor.validate_series."""

    def test_sorted_by_timestamp(self):
        records = [
            {"date": "2024-01-03", "load": 3},
            {"date": "2024-01-01", "load": 1},
            {"date": "2024-01-02", "load": 2},
        ]
        frame = FeatureExtractor().validate_series(records, ["load"])
        assert frame["load"].tolist() == [1.0, 2.0, 3.0]
        assert str(frame["timestamp"].dt.tz) == "UTC"

    def test_millisecond_timestamps(self):
        records = [{"timestamp": 86_400_000, "load": 2}, {"timestamp": 0, "load": 1}]
        frame = FeatureExtractor().validate_series(records, ["load"])
        assert frame["load"].tolist() == [1.0, 2.0]
        assert frame["timestamp"].iloc[1] == pd.Timestamp("1970-01-02", tz="UTC")

    def test_timestamp_falls_back_to_date(self):
        records = [{"timestamp": None, "date": "2024-01-01", "load": 1}]
        frame = FeatureExtractor().validate_series(records, ["load"])
        assert frame["timestamp"].iloc[0] == pd.Timestamp("2024-01-01", tz="UTC")

    def test_accepts_dataframe(self):
        frame = pd.DataFrame({"date": ["2024-01-02", "2024-01-01"], "load": [2.0, 1.0]})
        result = FeatureExtractor().validate_series(frame, ["load"])
        assert result["load"].tolist() == [1.0, 2.0]
        assert "timestamp" not in frame.columns

    @pytest.mark.parametrize("series", [[], None, pd.DataFrame()])
    def test_empty_series(self, series):
        with pytest.raises(ValidationError, match="non-empty series"):
            FeatureExtractor().validate_series(series)

    def test_missing_timestamp(self):
        records = [{"date": "2024-01-01", "load": 1}, {"load": 2}]
        with pytest.raises(ValidationError, match="timestamp"):
            FeatureExtractor().validate_series(records, ["load"])

    def test_invalid_date(self):
        with pytest.raises(ValidationError, match="timestamp"):
            FeatureExtractor().validate_series([{"date": "someday", "load": 1}], ["load"])

    def test_missing_metric(self):
        with pytest.raises(ValidationError, match="Missing numeric value for rpe"):
            FeatureExtractor().validate_series(daily_records([1, 2]), ["rpe"])

    def test_non_numeric_metric(self):
        with pytest.raises(ValidationError, match="Missing numeric value for load"):
            FeatureExtractor().validate_series(daily_records([1, "heavy"]), ["load"])


class TestRollingStatistics:
    """Tests for FeatureExtractor.add_rolling_statistics."""

    def test_trailing_mean_and_std(self):
        features = FeatureExtractor(windows=[2]).add_rolling_statistics(
            daily_records([1.0, 2.0, 3.0, 4.0]), ["load"]
        )
        np.testing.assert_allclose(features["load_ma_2"], [1.0, 1.5, 2.5, 3.5])
        np.testing.assert_allclose(
            features["load_std_2"], [0.0, np.sqrt(0.5), np.sqrt(0.5), np.sqrt(0.5)]
        )

    def test_column_per_metric_and_window(self, metric_records):
        features = FeatureExtractor().add_rolling_statistics(metric_records, ["load", "rpe"])
        for key in ("load", "rpe"):
            for window in (7, 14, 30):
                assert f"{key}_ma_{window}" in features.columns
                assert f"{key}_std_{window}" in features.columns
        assert not features.filter(like="_std_").isna().any().any()


class TestRateOfChange:
    """Tests for FeatureExtractor.add_rate_of_change."""

    def test_daily_rate_and_acceleration(self):
        features = FeatureExtractor().add_rate_of_change(daily_records([0.0, 2.0, 6.0]), ["load"])
        assert features["load_roc"].tolist() == pytest.approx([0.0, 2.0, 4.0])
        assert features["load_accel"].tolist() == pytest.approx([0.0, 2.0, 2.0])

    def test_rate_is_per_day(self):
        records = [
            {"date": "2024-01-01T00:00:00", "load": 0.0},
            {"date": "2024-01-01T12:00:00", "load": 1.0},
        ]
        features = FeatureExtractor().add_rate_of_change(records, ["load"])
        assert features["load_roc"].tolist() == pytest.approx([0.0, 2.0])

    def test_repeated_timestamp_is_zero(self):
        records = [
            {"date": "2024-01-01", "load": 1.0},
            {"date": "2024-01-01", "load": 5.0},
        ]
        features = FeatureExtractor().add_rate_of_change(records, ["load"])
        assert features["load_roc"].tolist() == [0.0, 0.0]
        assert features["load_accel"].tolist() == [0.0, 0.0]


class TestSeasonalDecomposition:
    """Tests for FeatureExtractor.add_seasonal_decomposition."""

    def test_week_and_month_means(self):
        records = [
            {"date": "2024-01-29", "load": 10.0},
            {"date": "2024-01-31", "load": 20.0},
            {"date": "2024-02-01", "load": 30.0},
        ]
        features = FeatureExtractor().add_seasonal_decomposition(records, "load")
        assert features["load_weekly"].tolist() == pytest.approx([20.0, 20.0, 20.0])
        assert features["load_monthly"].tolist() == pytest.approx([15.0, 15.0, 30.0])
        assert features["load_seasonal_residual"].tolist() == pytest.approx([-7.5, 2.5, 5.0])

    def test_iso_year_boundary(self):
        # 2024-12-30 belongs to ISO week 1 of 2025 together with 2025-01-02
        records = [
            {"date": "2024-12-29", "load": 0.0},
            {"date": "2024-12-30", "load": 4.0},
            {"date": "2025-01-02", "load": 8.0},
        ]
        features = FeatureExtractor().add_seasonal_decomposition(records, "load")
        assert features["load_weekly"].tolist() == pytest.approx([0.0, 6.0, 6.0])
        assert features["load_monthly"].tolist() == pytest.approx([2.0, 2.0, 8.0])


class TestCorrelationAnalysis:
    """Tests for FeatureExtractor.correlation_analysis."""

    def test_perfect_positive(self):
        records = [
            {"date": f"2024-01-0{i}", "x": float(i), "y": 2.0 * i} for i in range(1, 6)
        ]
        result = FeatureExtractor().correlation_analysis(records, "x", "y")
        assert result.correlation == pytest.approx(1.0)
        assert result.p_value == pytest.approx(0.0, abs=1e-6)
        assert result.strength == "strong"
        assert result.slope == pytest.approx(2.0)
        assert result.r2 == pytest.approx(1.0)

    def test_perfect_negative(self):
        records = [{"date": f"2024-01-0{i}", "x": float(i), "y": -float(i)} for i in range(1, 6)]
        result = FeatureExtractor().correlation_analysis(records, "x", "y")
        assert result.correlation == pytest.approx(-1.0)
        assert result.strength == "strong"

    def test_constant_metric(self):
        records = [{"date": f"2024-01-0{i}", "x": 3.0, "y": float(i)} for i in range(1, 6)]
        result = FeatureExtractor().correlation_analysis(records, "x", "y")
        assert result.correlation == 0.0
        assert result.p_value == pytest.approx(1.0)
        assert result.strength == "weak"

    def test_two_points(self):
        records = [
            {"date": "2024-01-01", "x": 1.0, "y": 1.0},
            {"date": "2024-01-02", "x": 2.0, "y": 3.0},
        ]
        result = FeatureExtractor().correlation_analysis(records, "x", "y")
        assert result.correlation == pytest.approx(1.0)
        assert result.p_value == pytest.approx(1.0)

    def test_bounds_on_noisy_data(self, metric_records):
        result = FeatureExtractor().correlation_analysis(metric_records, "load", "rpe")
        assert -1.0 <= result.correlation <= 1.0
        assert 0.0 <= result.p_value <= 1.0
        assert 0.0 <= result.r2 <= 1.0

    @pytest.mark.parametrize(
        "r, expected",
        [(0.0, "weak"), (0.29, "weak"), (0.3, "moderate"), (-0.69, "moderate"),
         (0.7, "strong"), (-1.0, "strong")],
    )
    def test_strength_thresholds(self, r, expected):
        assert classify_correlation_strength(r) == expected


class TestLatestMovingAverage:
    """Tests for FeatureExtractor.latest_moving_average."""

    def test_default_window_is_shortest(self):
        extractor = FeatureExtractor(windows=[3, 5])
        records = daily_records([1.0, 2.0, 3.0, 4.0, 5.0])
        assert extractor.latest_moving_average(records, "load") == pytest.approx(4.0)

    def test_explicit_window(self):
        records = daily_records([1.0, 2.0, 3.0, 4.0, 5.0])
        assert FeatureExtractor().latest_moving_average(records, "load", 5) == pytest.approx(3.0)

    def test_window_longer_than_series(self):
        records = daily_records([2.0, 4.0])
        assert FeatureExtractor().latest_moving_average(records, "load") == pytest.approx(3.0)
