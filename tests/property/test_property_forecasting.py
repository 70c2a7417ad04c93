"""Property tests for the forecasting engine."""

import math

import numpy as np
import pytest
from hypothesis import assume, given, settings, strategies as st

from performance_forecasting.features.trend import TrendAnalyzer
from performance_forecasting.models.prediction_engine import PredictionEngine
from performance_forecasting.utils.error_handling import ValidationError

finite_floats = st.floats(min_value=-1e3, max_value=1e3, allow_nan=False, allow_infinity=False)


@st.composite
def engine_and_history(draw):
    """An engine with random settings and a history long enough for it."""
    engine = PredictionEngine(
        alpha=draw(st.floats(min_value=0.0, max_value=1.0)),
        beta=draw(st.floats(min_value=0.0, max_value=1.0)),
        gamma=draw(st.floats(min_value=0.0, max_value=1.0)),
        season_length=draw(st.integers(min_value=3, max_value=10)),
    )
    size = draw(st.integers(min_value=engine.min_data_points, max_value=engine.min_data_points + 30))
    history = draw(st.lists(finite_floats, min_size=size, max_size=size))
    return engine, history


@st.composite
def monotonic_series(draw):
    """A strictly monotonic series whose steps all exceed the flat band."""
    start = draw(finite_floats)
    steps = draw(st.lists(st.floats(min_value=1.0, max_value=10.0), min_size=2, max_size=30))
    sign = draw(st.sampled_from([1.0, -1.0]))
    return list(start + sign * np.cumsum([0.0] + steps))


class TestForecastProperties:

    @given(engine_and_history(), st.integers(min_value=1, max_value=40))
    @settings(max_examples=50, deadline=None)
    def test_forecast_count_and_interval(self, data, horizon):
        """Property: exactly horizon points, each inside its own interval."""
        engine, history = data
        forecasts = engine.predict_performance(history, horizon)

        assert len(forecasts) == horizon
        for step, point in enumerate(forecasts, start=1):
            assert point.horizon == step
            assert point.lower_ci <= point.value <= point.upper_ci
            assert math.isfinite(point.value)

    @given(
        st.lists(finite_floats, min_size=1, max_size=50),
        st.floats(min_value=0.0, max_value=100.0),
        st.floats(min_value=0.0, max_value=100.0),
    )
    @settings(max_examples=100, deadline=None)
    def test_variance_non_decreasing(self, residuals, h1, h2):
        """Property: forecast variance never shrinks as the horizon grows."""
        engine = PredictionEngine()
        low, high = sorted((h1, h2))
        assert engine.calculate_forecast_variance(residuals, low) <= (
            engine.calculate_forecast_variance(residuals, high)
        )
        assert engine.calculate_forecast_variance(residuals, low) >= 0

    @given(st.lists(finite_floats, min_size=0, max_size=13))
    @settings(max_examples=30, deadline=None)
    def test_short_history_rejected(self, history):
        """Property: histories below the minimum length raise ValidationError."""
        with pytest.raises(ValidationError):
            PredictionEngine().predict_performance(history, 7)


class TestDirectionalAccuracyProperties:

    @given(
        st.lists(finite_floats, min_size=1, max_size=30),
        st.lists(finite_floats, min_size=0, max_size=30),
        st.integers(min_value=0, max_value=30),
    )
    @settings(max_examples=100, deadline=None)
    def test_accuracy_is_a_fraction(self, actual, forecast, origin):
        """Property: directional accuracy always lies in [0, 1]."""
        accuracy = PredictionEngine().compute_directional_accuracy(actual, forecast, origin)
        assert 0.0 <= accuracy <= 1.0

    @given(monotonic_series(), st.data())
    @settings(max_examples=50, deadline=None)
    def test_perfect_tracking_scores_one(self, series, data):
        """Property: forecasts that equal the next actuals score exactly 1."""
        origin = data.draw(st.integers(min_value=0, max_value=len(series) - 2))
        forecasts = series[origin + 1:]
        engine = PredictionEngine()
        assert engine.compute_directional_accuracy(series, forecasts, origin) == 1.0


class TestNormalizationProperties:

    @given(st.lists(finite_floats, min_size=2, max_size=60))
    @settings(max_examples=100, deadline=None)
    def test_zero_mean_unit_std(self, values):
        """Property: non-constant input normalizes to mean 0 and sample std 1."""
        assume(max(values) - min(values) > 1e-3)
        normalized = PredictionEngine().normalize_series(values)
        assert float(np.mean(normalized)) == pytest.approx(0.0, abs=1e-6)
        assert float(np.std(normalized, ddof=1)) == pytest.approx(1.0, rel=1e-6)

    @given(finite_floats, st.integers(min_value=1, max_value=30))
    @settings(max_examples=30, deadline=None)
    def test_constant_input_is_zero(self, value, size):
        """Property: a constant series normalizes to zeros."""
        normalized = PredictionEngine().normalize_series([value] * size)
        assert np.all(normalized == 0.0)


class TestMapeProperties:

    @given(
        st.lists(st.integers(min_value=-1000, max_value=1000).map(float), min_size=1, max_size=30),
        st.lists(finite_floats, min_size=1, max_size=30),
    )
    @settings(max_examples=100, deadline=None)
    def test_zero_actuals_never_raise(self, actual, forecast):
        """Property: MAPE is infinite only when no non-zero actual is comparable."""
        mape = PredictionEngine().calculate_mape(actual, forecast)
        overlap = actual[:min(len(actual), len(forecast))]

        if all(value == 0 for value in overlap):
            assert mape == math.inf
        else:
            assert math.isfinite(mape)
            assert mape >= 0


class TestRegressionProperties:

    @given(
        st.integers(min_value=-50, max_value=50),
        st.integers(min_value=-50, max_value=50),
        st.lists(st.integers(min_value=-100, max_value=100), min_size=2, max_size=40, unique=True),
    )
    @settings(max_examples=100, deadline=None)
    def test_exact_line_recovered(self, slope, intercept, xs):
        """Property: points on a line recover its slope and intercept."""
        points = [{"x": x, "y": slope * x + intercept} for x in xs]
        result = TrendAnalyzer().linear_regression(points)

        assert result.slope == pytest.approx(slope, abs=1e-9)
        assert result.intercept == pytest.approx(intercept, abs=1e-7)
        assert 0.0 <= result.r2 <= 1.0
        if slope != 0:
            assert result.r2 == pytest.approx(1.0)
