"""
densecluster

Density-based clustering of numeric matrices: DBSCAN with core/border/noise
roles and prediction for unseen records, a K-Means companion model, model
persistence, YAML settings and structured logging.
"""

from densecluster.core import (
    NOISE,
    BaseClusteringModel,
    ClusteringConfig,
    ClusteringEngine,
    ClusteringResult,
    DBSCANAlgorithm,
    FeatureNormalization,
    KMeansAlgorithm,
)

__version__ = "1.0.0"

__all__ = [
    "NOISE",
    "BaseClusteringModel",
    "ClusteringConfig",
    "ClusteringEngine",
    "ClusteringResult",
    "DBSCANAlgorithm",
    "FeatureNormalization",
    "KMeansAlgorithm",
    "__version__",
]
