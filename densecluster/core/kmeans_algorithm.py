"""
K-Means Clustering Algorithm Implementation.

K-Means is ideal for:
- Fast clustering of large datasets
- When number of clusters is known or can be estimated
- Spherical, evenly-sized clusters
"""

from numbers import Integral
from typing import Any, Dict, Optional

import numpy as np
from sklearn.cluster import KMeans

from densecluster.core.base_clustering import BaseClusteringModel, ClusteringConfig
from densecluster.core.metrics import EuclideanDistance, metric_name
from densecluster.utils.advanced_logging import PerformanceLogger
from densecluster.utils.error_handling import InvalidArgumentError


class KMeansAlgorithm(BaseClusteringModel):
    """
    K-Means clustering implementation.

    Centroid-based: every record is assigned to its nearest centroid, so
    K-Means never produces noise labels.

    Best for: Fast partitioning when k is known
    Strengths: Fast, scalable, simple
    Weaknesses: Requires k as input, assumes spherical clusters, sensitive to outliers
    """

    name = "KMeans"

    def __init__(self, data: Any, config: ClusteringConfig):
        """
        Initialize K-Means.

        Args:
            data: M x N numeric matrix
            config: Clustering configuration; ``params`` may contain
                ``n_clusters`` (default 8), ``n_init``, ``max_iter`` and ``tol``

        Raises:
            InvalidArgumentError: If n_clusters is not a positive integer
        """
        params = config.params
        n_clusters = params.get("n_clusters", 8)
        if isinstance(n_clusters, bool) or not isinstance(n_clusters, Integral) or n_clusters < 1:
            raise InvalidArgumentError(
                "n_clusters must be a positive integer",
                details={"n_clusters": repr(n_clusters)},
            )

        super().__init__(data, config)

        self.n_clusters_requested = int(n_clusters)
        self.n_init = params.get("n_init", 10)
        self.max_iter = params.get("max_iter", 300)
        self.tol = params.get("tol", 1e-4)

        if not isinstance(self._metric, EuclideanDistance):
            self.warn(
                f"{self.name} does not support metric "
                f"'{metric_name(self._metric)}', falling back to 'euclidean'"
            )
            self._metric = EuclideanDistance()

        self._centroids: Optional[np.ndarray] = None
        self._inertia: Optional[float] = None

        self.meta(
            "parameters",
            n_clusters=self.n_clusters_requested,
            n_init=self.n_init,
            max_iter=self.max_iter,
        )

    def _random_state(self) -> Optional[Any]:
        seed = self.get_seed()
        if seed is None or isinstance(seed, (Integral, np.random.RandomState)):
            return seed
        if isinstance(seed, np.random.Generator):
            # scikit-learn takes an int or RandomState
            return int(seed.integers(0, 2**31 - 1))
        raise InvalidArgumentError(f"Unsupported seed type {type(seed).__name__}")

    def _fit(self) -> Dict[str, Any]:
        actual_n_clusters = min(self.n_clusters_requested, self.n_samples)
        if actual_n_clusters < self.n_clusters_requested:
            self.warn(
                f"Reducing n_clusters from {self.n_clusters_requested} to "
                f"{actual_n_clusters} due to small dataset size"
            )

        clusterer = KMeans(
            n_clusters=actual_n_clusters,
            n_init=self.n_init,
            max_iter=self.max_iter,
            algorithm="lloyd",
            random_state=self._random_state(),
            tol=self.tol,
        )

        with PerformanceLogger(
            "kmeans_fit",
            logger=self._bound_logger(),
            enabled=self._verbose,
            item_count=self.n_samples,
        ):
            labels = clusterer.fit_predict(self._data)

        self.info(
            "kmeans_complete",
            n_clusters=actual_n_clusters,
            iterations=int(clusterer.n_iter_),
            inertia=float(clusterer.inertia_),
        )

        return {
            "_labels": labels.astype(np.int64),
            "_centroids": clusterer.cluster_centers_,
            "_inertia": float(clusterer.inertia_),
        }

    @property
    def centroids(self) -> np.ndarray:
        self._check_fitted()
        return self._centroids.copy()

    @property
    def inertia(self) -> float:
        self._check_fitted()
        return self._inertia

    def _summary_parameters(self) -> Dict[str, float]:
        return {"n_clusters": self.n_clusters_requested, "max_iter": self.max_iter}

    def predict(self, record: Any) -> int:
        """Index of the nearest centroid (lowest index on ties)."""
        self._check_fitted()
        x = self._prepare_record(record)
        distances = self._metric.pairwise(x, self._centroids)
        return int(np.argmin(distances))
