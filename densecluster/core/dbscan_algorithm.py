"""
DBSCAN Clustering Algorithm Implementation.

Density-Based Spatial Clustering of Applications with Noise (DBSCAN)
is ideal for:
- Finding clusters of arbitrary shape
- Separating noise from dense regions
- Not requiring the number of clusters as input
"""

from collections import deque
from numbers import Integral, Real
from typing import Any, Dict, List, Optional

import numpy as np

from densecluster.core.base_clustering import (
    NOISE,
    BaseClusteringModel,
    ClusteringConfig,
)
from densecluster.core.distance_matrix import build_distance_matrix
from densecluster.core.neighborhood import (
    Neighborhood,
    compute_neighborhoods,
    radius_neighbors,
)
from densecluster.schemas.data_models import PointRole
from densecluster.utils.advanced_logging import PerformanceLogger
from densecluster.utils.error_handling import (
    DimensionMismatchError,
    InvalidArgumentError,
)


class DBSCANAlgorithm(BaseClusteringModel):
    """
    DBSCAN clustering implementation.

    A point is a core point when its eps-neighborhood, itself included, has
    at least ``min_pts`` members. Clusters grow breadth-first from core
    points; non-core points reached by an expansion become border points of
    that cluster and do not propagate it. Points never reached are noise.

    Best for: Outlier detection, clusters of irregular shape
    Strengths: Finds the number of clusters, explicit noise label
    Weaknesses: O(M^2) memory during fit, single global density threshold
    """

    name = "DBSCAN"
    DEFAULT_MIN_PTS = 5

    def __init__(self, data: Any, config: ClusteringConfig):
        """
        Initialize DBSCAN.

        Args:
            data: M x N numeric matrix
            config: Clustering configuration; ``params`` must contain
                ``eps`` (> 0) and may contain ``min_pts`` (default 5) and
                ``n_jobs`` (default 1, serial neighborhood search) and
                ``memory_headroom`` (memory fraction the parallel search
                must leave free)

        Raises:
            InvalidArgumentError: If eps or min_pts are invalid
        """
        params = config.params
        if "eps" not in params:
            raise InvalidArgumentError("eps is required for DBSCAN")

        eps = params["eps"]
        if isinstance(eps, bool) or not isinstance(eps, Real) or not eps > 0.0:
            raise InvalidArgumentError(
                "eps must be greater than 0.0", details={"eps": repr(eps)}
            )

        min_pts = params.get("min_pts", self.DEFAULT_MIN_PTS)
        if isinstance(min_pts, bool) or not isinstance(min_pts, Integral) or min_pts < 1:
            raise InvalidArgumentError(
                "min_pts must be a positive integer", details={"min_pts": repr(min_pts)}
            )

        super().__init__(data, config)

        self.eps = float(eps)
        self.min_pts = int(min_pts)
        self.n_jobs: Optional[int] = params.get("n_jobs", 1)
        self.memory_headroom = float(params.get("memory_headroom", 0.1))

        self._core_sample_indices: Optional[np.ndarray] = None
        self._point_roles: Optional[List[PointRole]] = None

        self.meta("parameters", eps=self.eps, min_pts=self.min_pts, n_jobs=self.n_jobs)

    @classmethod
    def from_params(
        cls,
        data: Any,
        eps: float,
        min_pts: int = DEFAULT_MIN_PTS,
        n_jobs: Optional[int] = 1,
        **options: Any,
    ) -> "DBSCANAlgorithm":
        """
        Build a DBSCAN model from keyword arguments.

        Args:
            data: M x N numeric matrix
            eps: Neighborhood radius
            min_pts: Minimum neighborhood size for a core point
            n_jobs: Worker threads for the neighborhood search
            **options: Remaining ClusteringConfig fields (scale, metric, ...)
        """
        config = ClusteringConfig(
            algorithm_name="dbscan",
            params={"eps": eps, "min_pts": min_pts, "n_jobs": n_jobs},
            **options,
        )
        return cls(data, config)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_eps(self) -> float:
        return self.eps

    def get_min_pts(self) -> int:
        return self.min_pts

    def get_core_sample_indices(self) -> np.ndarray:
        """Indices of core points, ascending."""
        self._check_fitted()
        return self._core_sample_indices.copy()

    def get_point_roles(self) -> List[PointRole]:
        """CORE, BORDER or NOISE for every record."""
        self._check_fitted()
        return list(self._point_roles)

    def _summary_parameters(self) -> Dict[str, float]:
        return {"eps": self.eps, "min_pts": self.min_pts}

    # -------------------------------------------------------------------------
    # Fit
    # -------------------------------------------------------------------------

    def _fit(self) -> Dict[str, Any]:
        m = self.n_samples
        logger = self._bound_logger()

        with PerformanceLogger(
            "dbscan_fit", logger=logger, enabled=self._verbose, item_count=m
        ):
            with PerformanceLogger(
                "distance_matrix", logger=logger, enabled=self._verbose, size=m
            ):
                dist_mat = build_distance_matrix(self._data, self._metric)

            self.info("computing_neighborhoods", eps=self.eps)
            with PerformanceLogger(
                "neighborhoods", logger=logger, enabled=self._verbose, item_count=m
            ):
                try:
                    neighborhoods = compute_neighborhoods(
                        dist_mat,
                        self.eps,
                        n_jobs=self.n_jobs,
                        headroom=self.memory_headroom,
                        on_fallback=lambda e: self.warn(
                            "parallel neighborhood search failed, reverting to serial search"
                        ),
                    )
                except DimensionMismatchError as e:
                    self.error(f"neighborhood lookup failed: {e}")
                    raise

            # The matrix is O(M^2); release it before labeling
            del dist_mat

            if len(neighborhoods) != m:
                raise DimensionMismatchError(
                    f"Computed {len(neighborhoods)} neighborhoods for {m} points"
                )

            self.info("identifying_cluster_labels")
            with PerformanceLogger(
                "cluster_labeling", logger=logger, enabled=self._verbose, item_count=m
            ):
                labels, is_core = self._assign_labels(neighborhoods)

        roles = [
            PointRole.CORE if is_core[i]
            else PointRole.BORDER if labels[i] != NOISE
            else PointRole.NOISE
            for i in range(m)
        ]

        n_clusters = int(labels.max() + 1) if m else 0
        self.info(
            "dbscan_complete",
            n_clusters=n_clusters,
            n_noise=int(np.sum(labels == NOISE)),
            n_core=int(is_core.sum()),
        )

        return {
            "_labels": labels,
            "_core_sample_indices": np.flatnonzero(is_core),
            "_point_roles": roles,
        }

    def _assign_labels(self, neighborhoods: List[Neighborhood]):
        """
        Density-reachability labeling.

        Points are visited in index order and each frontier is expanded
        breadth-first over neighborhoods sorted by (distance, index), so the
        labeling is a deterministic function of the data.

        Returns:
            Tuple of (labels, core mask)
        """
        m = len(neighborhoods)
        labels = np.full(m, NOISE, dtype=np.int64)
        is_core = np.array(
            [hood.density >= self.min_pts for hood in neighborhoods], dtype=bool
        )

        next_label = 0
        for i in range(m):
            if labels[i] != NOISE or not is_core[i]:
                continue

            labels[i] = next_label
            frontier = deque([i])
            while frontier:
                p = frontier.popleft()
                for q in neighborhoods[p].indices:
                    if labels[q] != NOISE:
                        continue
                    labels[q] = next_label
                    if is_core[q]:
                        frontier.append(q)

            self.trace("cluster_expanded", label=next_label, seed_point=i)
            next_label += 1

        return labels, is_core

    # -------------------------------------------------------------------------
    # Predict
    # -------------------------------------------------------------------------

    def predict(self, record: Any) -> int:
        """
        Label of the nearest core point within eps of ``record``.

        Ties go to the lower point index. Returns -1 when no core point lies
        within eps.

        Raises:
            ModelNotFittedError: If the model is not fitted
            DimensionMismatchError: If the record length is wrong
            NumericError: If the record contains NaN
        """
        self._check_fitted()
        x = self._prepare_record(record)

        hood = radius_neighbors(
            x,
            self._data,
            self._metric,
            self.eps,
            candidates=self._core_sample_indices,
        )
        if len(hood) == 0:
            return NOISE

        nearest, _ = hood.neighbors[0]
        return int(self._labels[nearest])
