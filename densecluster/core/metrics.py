"""
Separability metrics.

Distance and similarity functions used to compare records. A metric is a
stateless object exposing ``distance(a, b) -> float``. Similarity metrics
also expose ``similarity(a, b)`` and report their distance as the
similarity inverse ``1 - similarity``, so ascending distance always means
descending similarity.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import numpy as np

from densecluster.utils.error_handling import InvalidArgumentError


class BaseMetric(ABC):
    """Abstract base class for separability metrics."""

    name: str = "base"
    is_similarity: bool = False
    is_kernel: bool = False

    @abstractmethod
    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        """Distance between two vectors of equal length."""
        pass

    def pairwise(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        """
        Distance from ``a`` to every row of ``rows``.

        Subclasses override this with a vectorized version.
        """
        return np.array([self.distance(a, row) for row in rows], dtype=np.float64)

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple(sorted(self.__dict__.items()))))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.__dict__.items())
        return f"{type(self).__name__}({params})"


class SimilarityMetric(BaseMetric):
    """Base class for similarity metrics (higher means closer)."""

    is_similarity = True

    @abstractmethod
    def similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        pass

    def pairwise_similarity(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        return np.array([self.similarity(a, row) for row in rows], dtype=np.float64)

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return 1.0 - self.similarity(a, b)

    def pairwise(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        return 1.0 - self.pairwise_similarity(a, rows)


class EuclideanDistance(BaseMetric):
    """L2 distance. The default metric."""

    name = "euclidean"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - b))

    def pairwise(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        return np.linalg.norm(np.asarray(rows, dtype=np.float64) - a, axis=1)


class ManhattanDistance(BaseMetric):
    """L1 distance."""

    name = "manhattan"

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.abs(np.asarray(a, dtype=np.float64) - b).sum())

    def pairwise(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        return np.abs(np.asarray(rows, dtype=np.float64) - a).sum(axis=1)


class CosineSimilarity(SimilarityMetric):
    """Cosine similarity. Zero vectors have similarity 0 to everything."""

    name = "cosine"

    def similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(self.pairwise_similarity(a, np.atleast_2d(b))[0])

    def pairwise_similarity(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        a = np.asarray(a, dtype=np.float64)
        rows = np.asarray(rows, dtype=np.float64)
        norms = np.linalg.norm(rows, axis=1) * np.linalg.norm(a)
        dots = rows @ a
        with np.errstate(divide="ignore", invalid="ignore"):
            sims = np.where(norms > 0, dots / norms, 0.0)
        return np.clip(sims, -1.0, 1.0)


class GaussianKernel(SimilarityMetric):
    """Radial basis function kernel ``exp(-gamma * ||a - b||^2)``."""

    name = "gaussian"
    is_kernel = True

    def __init__(self, gamma: float = 1.0):
        if gamma <= 0:
            raise InvalidArgumentError("gamma must be greater than 0.0")
        self.gamma = float(gamma)

    def similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - b
        return float(np.exp(-self.gamma * np.dot(diff, diff)))

    def pairwise_similarity(self, a: np.ndarray, rows: np.ndarray) -> np.ndarray:
        diff = np.asarray(rows, dtype=np.float64) - a
        return np.exp(-self.gamma * np.einsum("ij,ij->i", diff, diff))


METRICS: Dict[str, Type[BaseMetric]] = {
    "euclidean": EuclideanDistance,
    "manhattan": ManhattanDistance,
    "cosine": CosineSimilarity,
    "gaussian": GaussianKernel,
}

DEFAULT_METRIC = EuclideanDistance()


def resolve_metric(metric: Optional[Any] = None) -> Any:
    """
    Turn a metric specification into a metric object.

    Args:
        metric: None (Euclidean), a registered name, or an object with a
            callable ``distance`` method

    Returns:
        Metric object

    Raises:
        InvalidArgumentError: If the specification is not usable
    """
    if metric is None:
        return DEFAULT_METRIC

    if isinstance(metric, str):
        key = metric.lower()
        if key not in METRICS:
            raise InvalidArgumentError(
                f"Unknown metric '{metric}'. Supported: {list(METRICS.keys())}"
            )
        return METRICS[key]()

    if callable(getattr(metric, "distance", None)):
        return metric

    raise InvalidArgumentError(
        f"Metric {metric!r} must be a registered name or expose distance(a, b)"
    )


def metric_name(metric: Any) -> str:
    """Display name of a metric object."""
    return getattr(metric, "name", type(metric).__name__)
