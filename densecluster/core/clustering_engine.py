"""
Clustering Engine - Orchestrates clustering operations.

Main entry point for running a clustering algorithm by name.
Manages algorithm selection, configuration, execution, and result handling.
"""

import logging
from numbers import Integral, Real
from typing import Dict, Any, Optional, Type

from densecluster.core.base_clustering import (
    BaseClusteringModel,
    ClusteringResult,
    ClusteringConfig,
)
from densecluster.core.dbscan_algorithm import DBSCANAlgorithm
from densecluster.core.kmeans_algorithm import KMeansAlgorithm
from densecluster.core.metrics import METRICS
from densecluster.schemas.data_models import ClusterAlgorithm
from densecluster.utils.error_handling import InvalidAlgorithmError

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Main clustering engine that orchestrates different algorithms.

    Provides a unified interface for all clustering operations regardless
    of the underlying algorithm.
    """

    # Registry of available algorithms
    ALGORITHMS: Dict[ClusterAlgorithm, Type[BaseClusteringModel]] = {
        ClusterAlgorithm.DBSCAN: DBSCANAlgorithm,
        ClusterAlgorithm.KMEANS: KMeansAlgorithm,
    }

    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        """
        Initialize clustering engine.

        Args:
            defaults: ClusteringConfig fields applied to every model unless
                overridden per call (e.g. {"verbose": True})
        """
        self.defaults = dict(defaults or {})
        logger.info("Initialized ClusteringEngine")

    @staticmethod
    def _parse(algorithm: str) -> Optional[ClusterAlgorithm]:
        try:
            return ClusterAlgorithm(algorithm.lower())
        except ValueError:
            return None

    def _resolve(self, algorithm: str) -> Type[BaseClusteringModel]:
        key = self._parse(algorithm)
        if key not in self.ALGORITHMS:
            raise InvalidAlgorithmError(
                f"Unsupported algorithm '{algorithm}'. "
                f"Supported: {[a.value for a in self.ALGORITHMS]}"
            )
        return self.ALGORITHMS[key]

    def build_model(
        self,
        vectors: Any,
        algorithm: str,
        algorithm_params: Dict[str, Any],
        **options: Any,
    ) -> BaseClusteringModel:
        """
        Construct an unfitted model.

        Args:
            vectors: Data matrix (M x N)
            algorithm: Algorithm name (dbscan/kmeans)
            algorithm_params: Algorithm-specific parameters
            **options: ClusteringConfig overrides (scale, metric, seed, ...)

        Returns:
            Unfitted model instance

        Raises:
            InvalidAlgorithmError: If algorithm is not supported
        """
        algorithm_class = self._resolve(algorithm)
        config = ClusteringConfig(
            algorithm_name=algorithm.lower(),
            params=dict(algorithm_params),
            **{**self.defaults, **options},
        )
        return algorithm_class(vectors, config)

    def cluster(
        self,
        vectors: Any,
        algorithm: str,
        algorithm_params: Dict[str, Any],
        **options: Any,
    ) -> ClusteringResult:
        """
        Perform clustering using the specified algorithm.

        Args:
            vectors: Data matrix (M x N)
            algorithm: Algorithm name (dbscan/kmeans)
            algorithm_params: Algorithm-specific parameters
            **options: ClusteringConfig overrides

        Returns:
            ClusteringResult with labels, metrics and the fitted model
        """
        model = self.build_model(vectors, algorithm, algorithm_params, **options)

        logger.info(f"Starting {algorithm} clustering on {model.n_samples} vectors")
        model.fit()

        centroids = model.centroids if isinstance(model, KMeansAlgorithm) else None
        result = ClusteringResult(
            cluster_labels=model.get_labels(),
            n_clusters=model.n_clusters,
            outlier_count=model.n_noise,
            quality_metrics=model.quality_metrics(),
            centroids=centroids,
            model=model,
        )

        logger.info(
            f"{algorithm} clustering complete: {result.n_clusters} clusters, "
            f"{result.outlier_count} outliers"
        )

        return result

    def cluster_from_settings(
        self, vectors: Any, settings: Any, algorithm: Optional[str] = None
    ) -> ClusteringResult:
        """
        Cluster with the default algorithm and parameters from Settings.

        Args:
            vectors: Data matrix (M x N)
            settings: densecluster.config.settings_loader.Settings
            algorithm: Optional override of the configured default

        Returns:
            ClusteringResult
        """
        algorithm, params, options = config_from_settings(settings, algorithm)
        return self.cluster(vectors, algorithm, params, **options)

    def validate_clustering_config(
        self,
        algorithm: str,
        params: Dict[str, Any],
    ) -> Dict[str, str]:
        """
        Validate clustering configuration.

        Args:
            algorithm: Algorithm name
            params: Algorithm parameters

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        key = self._parse(algorithm)
        if key not in self.ALGORITHMS:
            errors["algorithm"] = f"Unsupported algorithm '{algorithm}'"
            return errors

        if key == ClusterAlgorithm.DBSCAN:
            eps = params.get("eps")
            min_pts = params.get("min_pts", DBSCANAlgorithm.DEFAULT_MIN_PTS)

            if eps is None:
                errors["eps"] = "Required"
            elif isinstance(eps, bool) or not isinstance(eps, Real) or not eps > 0.0:
                errors["eps"] = "Must be > 0"

            if isinstance(min_pts, bool) or not isinstance(min_pts, Integral) or min_pts < 1:
                errors["min_pts"] = "Must be >= 1"

        elif key == ClusterAlgorithm.KMEANS:
            n_clusters = params.get("n_clusters", 8)

            if isinstance(n_clusters, bool) or not isinstance(n_clusters, Integral) or n_clusters < 1:
                errors["n_clusters"] = "Must be >= 1"

        metric = params.get("metric")
        if isinstance(metric, str) and metric.lower() not in METRICS:
            errors["metric"] = f"Unknown metric '{metric}'"

        return errors


def config_from_settings(settings: Any, algorithm: Optional[str] = None):
    """
    Translate Settings into (algorithm, params, options) for the engine.

    Args:
        settings: densecluster.config.settings_loader.Settings
        algorithm: Algorithm to configure (defaults to
            ``clustering.default_algorithm``)

    Returns:
        Tuple of (algorithm name, algorithm params, ClusteringConfig overrides)
    """
    clustering = settings.clustering
    algorithm = (algorithm or clustering.default_algorithm).lower()

    if algorithm == ClusterAlgorithm.DBSCAN:
        algo = clustering.algorithms.dbscan
        params = {"eps": algo.eps, "min_pts": algo.min_pts}
        if settings.parallelism.enabled:
            params["n_jobs"] = settings.parallelism.max_workers
            params["memory_headroom"] = settings.parallelism.memory_headroom
    elif algorithm == ClusterAlgorithm.KMEANS:
        algo = clustering.algorithms.kmeans
        params = {
            "n_clusters": algo.n_clusters,
            "n_init": algo.n_init,
            "max_iter": algo.max_iter,
        }
    else:
        raise InvalidAlgorithmError(f"Unsupported algorithm '{algorithm}'")

    options = {
        "metric": algo.metric,
        "scale": algo.scale,
        "normalizer": algo.normalizer,
        "seed": clustering.seed,
        "verbose": clustering.verbose,
        "allow_parallelism": settings.parallelism.enabled,
    }
    return algorithm, params, options
