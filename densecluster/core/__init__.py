"""
Core clustering module for densecluster.

Exports:
- ClusteringEngine: Algorithm registry and orchestration
- BaseClusteringModel: Base class for models
- ClusteringResult: Result container
- ClusteringConfig: Configuration container
- Individual algorithm implementations and building blocks
"""

from densecluster.core.base_clustering import (
    NOISE,
    BaseClusteringModel,
    ClusteringResult,
    ClusteringConfig,
)
from densecluster.core.clustering_engine import ClusteringEngine
from densecluster.core.dbscan_algorithm import DBSCANAlgorithm
from densecluster.core.kmeans_algorithm import KMeansAlgorithm
from densecluster.core.distance_matrix import build_distance_matrix
from densecluster.core.neighborhood import NearestNeighborhood, Neighborhood
from densecluster.core.normalization import FeatureNormalization

__all__ = [
    "NOISE",
    "ClusteringEngine",
    "BaseClusteringModel",
    "ClusteringResult",
    "ClusteringConfig",
    "DBSCANAlgorithm",
    "KMeansAlgorithm",
    "build_distance_matrix",
    "NearestNeighborhood",
    "Neighborhood",
    "FeatureNormalization",
]
