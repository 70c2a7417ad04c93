"""Walk-forward splitting utilities for time series validation."""

from typing import List, Dict, Any, Optional, Tuple, Iterator
from dataclasses import dataclass, field

import numpy as np

from performance_forecasting.data.structs import Fold
from performance_forecasting.utils.error_handling import ValidationError


@dataclass
class SplitIndices:
    """Container for train/test split indices with metadata."""
    train_indices: List[int]
    test_indices: List[int]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "train_indices": self.train_indices,
            "test_indices": self.test_indices,
            "metadata": self.metadata,
        }


class WalkForwardSplitter:
    """Time-series aware train/test splitting. Never shuffles."""

    def rolling_window_split(
        self,
        n_samples: int,
        train_size: int,
        test_size: int,
        step_size: int = 1
    ) -> Iterator[SplitIndices]:
        """
        Generate fixed-size sliding train windows, each followed by a test window.

        Args:
            n_samples: Length of the series
            train_size: Number of samples in training window
            test_size: Number of samples in test window
            step_size: Step size between windows

        Yields:
            SplitIndices for each window position
        """
        self._check_sizes(train_size, test_size, step_size)
        window_size = train_size + test_size

        if window_size > n_samples:
            raise ValidationError(
                f"Window size ({window_size}) exceeds data length ({n_samples})"
            )

        fold = 0
        for start in range(0, n_samples - window_size + 1, step_size):
            train_end = start + train_size

            yield SplitIndices(
                train_indices=list(range(start, train_end)),
                test_indices=list(range(train_end, train_end + test_size)),
                metadata={
                    "split_type": "rolling_window",
                    "fold": fold,
                    "train_size": train_size,
                    "test_size": test_size,
                    "step_size": step_size,
                    "window_start": start,
                },
            )
            fold += 1

    def expanding_window_split(
        self,
        n_samples: int,
        initial_train_size: int,
        test_size: int,
        step_size: Optional[int] = None,
        max_splits: Optional[int] = None
    ) -> Iterator[SplitIndices]:
        """
        Generate expanding window splits for time series cross-validation.

        Training window grows with each fold while the test window size stays
        fixed. With the default step (equal to test_size) consecutive test
        windows are adjacent and never overlap.

        Args:
            n_samples: Length of the series
            initial_train_size: Initial training window size
            test_size: Number of samples in test window
            step_size: Step size between folds (defaults to test_size)
            max_splits: Stop after this many folds

        Yields:
            SplitIndices for each fold
        """
        step_size = test_size if step_size is None else step_size
        self._check_sizes(initial_train_size, test_size, step_size)
        min_size = initial_train_size + test_size

        if min_size > n_samples:
            raise ValidationError(
                f"Minimum window size ({min_size}) exceeds data length ({n_samples})"
            )

        fold = 0
        train_end = initial_train_size

        while train_end + test_size <= n_samples:
            if max_splits is not None and fold >= max_splits:
                break

            yield SplitIndices(
                train_indices=list(range(0, train_end)),
                test_indices=list(range(train_end, train_end + test_size)),
                metadata={
                    "split_type": "expanding_window",
                    "fold": fold,
                    "train_size": train_end,
                    "test_size": test_size,
                    "step_size": step_size,
                },
            )

            train_end += step_size
            fold += 1

    def apply_split(self, values: np.ndarray, split: SplitIndices) -> Fold:
        """
        Apply split indices to a cleaned series.

        Args:
            values: Cleaned series
            split: SplitIndices with indices

        Returns:
            Fold holding the training and testing values
        """
        values = np.asarray(values, dtype=float)
        return Fold(
            training=values[split.train_indices],
            testing=values[split.test_indices],
            train_indices=list(split.train_indices),
            test_indices=list(split.test_indices),
            fold=int(split.metadata.get("fold", 0)),
        )

    def validate_no_leakage(self, split: SplitIndices) -> Tuple[bool, List[str]]:
        """
        Validate that a split has no temporal data leakage.

        Args:
            split: SplitIndices (or Fold) to validate

        Returns:
            Tuple of (is_valid, list of issues)
        """
        issues: List[str] = []
        train = split.train_indices
        test = split.test_indices

        if len(train) > 0 and len(test) > 0 and max(train) >= min(test):
            issues.append(
                f"Training data (index {max(train)}) overlaps with "
                f"test data (index {min(test)})"
            )

        if set(train) & set(test):
            issues.append("Train and test indices overlap")

        return len(issues) == 0, issues

    @staticmethod
    def _check_sizes(train_size: int, test_size: int, step_size: int) -> None:
        if train_size < 1 or test_size < 1 or step_size < 1:
            raise ValidationError(
                f"Split sizes must be positive (train={train_size}, "
                f"test={test_size}, step={step_size})"
            )
