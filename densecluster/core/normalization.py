"""
Feature normalization strategies.

Column-wise transforms applied to a data matrix before clustering when a
model is configured with ``scale=True``. Each strategy returns a new matrix
and never mutates its input.
"""

from enum import Enum
from typing import Any

import numpy as np
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from densecluster.utils.error_handling import InvalidArgumentError


class FeatureNormalization(str, Enum):
    """Supported column normalizers."""

    MEAN_CENTER = "mean_center"
    STANDARD_SCALE = "standard_scale"
    MIN_MAX_SCALE = "min_max_scale"

    def scaler(self) -> Any:
        """Unfitted scikit-learn transformer for this strategy."""
        if self is FeatureNormalization.MEAN_CENTER:
            return StandardScaler(with_mean=True, with_std=False)
        if self is FeatureNormalization.STANDARD_SCALE:
            return StandardScaler(with_mean=True, with_std=True)
        return MinMaxScaler(feature_range=(0.0, 1.0))

    def operate(self, data: np.ndarray) -> np.ndarray:
        """Return a normalized copy of ``data``."""
        return self.scaler().fit_transform(np.array(data, dtype=np.float64))


def fit_normalizer(normalizer: Any, data: np.ndarray):
    """
    Normalize ``data`` and return the fitted transformer.

    Built-in strategies return their scikit-learn scaler so that records
    passed to ``predict`` can be mapped into the same feature space. A custom
    normalizer may expose ``fit_transform`` (scikit-learn style, reused for
    prediction), ``normalize(matrix)`` or ``operate(matrix)``; the latter two
    are applied to training data only.

    Args:
        normalizer: FeatureNormalization member, its string value, or a
            custom normalizer object
        data: Matrix to normalize

    Returns:
        Tuple of (normalized copy, transformer or None)
    """
    data = np.array(data, dtype=np.float64)

    if isinstance(normalizer, str):
        try:
            normalizer = FeatureNormalization(normalizer)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown normalizer '{normalizer}'. "
                f"Supported: {[n.value for n in FeatureNormalization]}"
            )

    if isinstance(normalizer, FeatureNormalization):
        scaler = normalizer.scaler()
        return scaler.fit_transform(data), scaler

    if callable(getattr(normalizer, "fit_transform", None)):
        transformed = normalizer.fit_transform(data)
        return np.array(transformed, dtype=np.float64), normalizer

    for method in ("normalize", "operate"):
        func = getattr(normalizer, method, None)
        if callable(func):
            return np.array(func(data), dtype=np.float64), None

    raise InvalidArgumentError(
        f"Normalizer {normalizer!r} must expose fit_transform, normalize or operate"
    )
