"""Error types and numeric guards for the forecasting core."""

import functools
import math
from typing import Any, Callable, Iterable

import numpy as np


class ForecastingError(Exception):
    """Base class for all errors raised by the forecasting core."""


class ValidationError(ForecastingError, ValueError):
    """Input history, horizon or fold layout cannot support the request."""


class ConfigurationError(ForecastingError, ValueError):
    """Configuration values are malformed or fail schema validation."""


class ComputationError(ForecastingError, ArithmeticError):
    """An arithmetic step produced a non-finite result."""


def ensure_finite(value: Any, name: str = "value") -> Any:
    """
    Raise ComputationError if value (scalar or array) holds NaN or infinity.

    Args:
        value: Scalar or array-like to check
        name: Label used in the error message

    Returns:
        The value unchanged
    """
    if isinstance(value, (int, float, np.floating, np.integer)):
        if not math.isfinite(float(value)):
            raise ComputationError(f"{name} is not finite: {value}")
        return value

    array = np.asarray(value, dtype=float)
    if array.size and not np.all(np.isfinite(array)):
        bad = int(np.sum(~np.isfinite(array)))
        raise ComputationError(f"{name} contains {bad} non-finite value(s)")
    return value


def finite_result(name: str) -> Callable:
    """
    Decorator that runs ensure_finite over the wrapped function's return value.

    Args:
        name: Label used in the error message

    Returns:
        Decorated function
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return ensure_finite(func(*args, **kwargs), name)
        return wrapper
    return decorator


def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers (bools excluded)."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, np.floating, np.integer)):
        return False
    return math.isfinite(float(value))


def finite_values(values: Iterable[Any]) -> np.ndarray:
    """Return the finite numeric entries of values as a float array."""
    return np.asarray([float(v) for v in values if is_finite_number(v)], dtype=float)
