"""
Unit tests for ClusteringEngine orchestration layer.

Tests the ClusteringEngine class including:
- Algorithm selection and instantiation
- Parameter validation
- Settings translation
"""

import numpy as np
import pytest

from densecluster.config.settings_loader import Settings
from densecluster.core.clustering_engine import ClusteringEngine, config_from_settings
from densecluster.core.dbscan_algorithm import DBSCANAlgorithm
from densecluster.core.kmeans_algorithm import KMeansAlgorithm
from densecluster.core.normalization import FeatureNormalization
from densecluster.schemas.data_models import ClusterAlgorithm
from densecluster.utils.error_handling import InvalidAlgorithmError, InvalidArgumentError


@pytest.mark.unit
class TestClusteringEngine:
    """Test suite for ClusteringEngine."""

    def test_algorithm_registry(self):
        """Test that all algorithms are registered."""
        assert ClusteringEngine.ALGORITHMS == {
            ClusterAlgorithm.DBSCAN: DBSCANAlgorithm,
            ClusterAlgorithm.KMEANS: KMeansAlgorithm,
        }

    def test_build_model(self, two_points_and_outlier):
        engine = ClusteringEngine()
        model = engine.build_model(two_points_and_outlier, "DBSCAN", {"eps": 1.0, "min_pts": 2})

        assert isinstance(model, DBSCANAlgorithm)
        assert not model.is_fitted
        assert model.config.algorithm_name == "dbscan"

    def test_cluster_dbscan(self, blob_data):
        """Test clustering with the DBSCAN algorithm."""
        vectors, truth = blob_data
        engine = ClusteringEngine()

        result = engine.cluster(
            vectors=vectors,
            algorithm="dbscan",
            algorithm_params={"eps": 0.6, "min_pts": 4},
        )

        assert result.n_clusters == 3
        assert result.outlier_count >= 4
        assert len(result.labels) == len(vectors)
        assert result.centroids is None
        assert "silhouette_score" in result.quality_metrics
        assert result.model.is_fitted

    def test_cluster_kmeans(self, blob_data):
        """Test clustering with the K-Means algorithm."""
        vectors, _ = blob_data
        engine = ClusteringEngine()

        result = engine.cluster(
            vectors=vectors,
            algorithm="kmeans",
            algorithm_params={"n_clusters": 3},
            seed=42,
        )

        assert result.n_clusters == 3
        assert result.outlier_count == 0
        assert result.centroids.shape == (3, 2)

    def test_unknown_algorithm(self, blob_data):
        vectors, _ = blob_data
        with pytest.raises(InvalidAlgorithmError):
            ClusteringEngine().cluster(vectors, "hdbscan", {})

    def test_invalid_algorithm_is_invalid_argument(self):
        assert issubclass(InvalidAlgorithmError, InvalidArgumentError)

    def test_defaults_apply(self, two_points_and_outlier):
        engine = ClusteringEngine(defaults={"scale": True})
        model = engine.build_model(two_points_and_outlier, "dbscan", {"eps": 1.0})

        assert model.config.scale is True

    def test_options_override_defaults(self, two_points_and_outlier):
        engine = ClusteringEngine(defaults={"scale": True})
        model = engine.build_model(two_points_and_outlier, "dbscan", {"eps": 1.0}, scale=False)

        assert model.config.scale is False


@pytest.mark.unit
class TestParameterValidation:
    """validate_clustering_config."""

    def test_valid_dbscan(self):
        errors = ClusteringEngine().validate_clustering_config("dbscan", {"eps": 0.5, "min_pts": 3})
        assert errors == {}

    def test_dbscan_errors(self):
        errors = ClusteringEngine().validate_clustering_config("dbscan", {"eps": 0, "min_pts": 0})

        assert set(errors) == {"eps", "min_pts"}

    def test_missing_eps(self):
        errors = ClusteringEngine().validate_clustering_config("dbscan", {})
        assert errors == {"eps": "Required"}

    def test_kmeans_errors(self):
        errors = ClusteringEngine().validate_clustering_config("kmeans", {"n_clusters": 0})
        assert "n_clusters" in errors

    def test_unknown_metric(self):
        errors = ClusteringEngine().validate_clustering_config(
            "dbscan", {"eps": 1.0, "metric": "hamming"}
        )
        assert "metric" in errors

    def test_unknown_algorithm(self):
        errors = ClusteringEngine().validate_clustering_config("spectral", {})
        assert "algorithm" in errors

    def test_algorithm_name_is_case_insensitive(self):
        errors = ClusteringEngine().validate_clustering_config("DBSCAN", {"eps": 0.5})
        assert errors == {}

    @pytest.mark.parametrize(
        "params,field",
        [
            ({"eps": True}, "eps"),
            ({"eps": "0.5"}, "eps"),
            ({"eps": 0.5, "min_pts": True}, "min_pts"),
            ({"eps": 0.5, "min_pts": 2.0}, "min_pts"),
        ],
    )
    def test_rejects_what_the_constructor_rejects(self, two_points_and_outlier, params, field):
        errors = ClusteringEngine().validate_clustering_config("dbscan", params)
        assert field in errors

        with pytest.raises(InvalidArgumentError):
            ClusteringEngine().build_model(two_points_and_outlier, "dbscan", params)

    def test_accepts_numpy_scalars(self, two_points_and_outlier):
        params = {"eps": np.float32(1.0), "min_pts": np.int64(2)}

        assert ClusteringEngine().validate_clustering_config("dbscan", params) == {}
        model = ClusteringEngine().build_model(two_points_and_outlier, "dbscan", params)
        assert model.fit().get_labels().tolist() == [0, 0, -1]

    def test_kmeans_rejects_bool_cluster_count(self):
        errors = ClusteringEngine().validate_clustering_config("KMeans", {"n_clusters": True})
        assert "n_clusters" in errors


@pytest.mark.unit
class TestConfigFromSettings:
    """Settings translation."""

    def test_default_settings(self):
        algorithm, params, options = config_from_settings(Settings())

        assert algorithm == "dbscan"
        assert params == {"eps": 0.5, "min_pts": 5, "n_jobs": None, "memory_headroom": 0.1}
        assert options["metric"] == "euclidean"
        assert options["normalizer"] == FeatureNormalization.STANDARD_SCALE
        assert options["allow_parallelism"] is True

    def test_parallelism_disabled(self):
        settings = Settings(parallelism={"enabled": False})
        _, params, options = config_from_settings(settings)

        assert "n_jobs" not in params
        assert options["allow_parallelism"] is False

    def test_algorithm_override(self):
        algorithm, params, _ = config_from_settings(Settings(), "kmeans")

        assert algorithm == "kmeans"
        assert params == {"n_clusters": 8, "n_init": 10, "max_iter": 300}

    def test_unknown_algorithm(self):
        with pytest.raises(InvalidAlgorithmError):
            config_from_settings(Settings(), "spectral")

    def test_cluster_from_settings(self, blob_data):
        vectors, _ = blob_data
        settings = Settings(
            clustering={
                "seed": 42,
                "algorithms": {"dbscan": {"eps": 0.6, "min_pts": 4}},
            },
            parallelism={"enabled": False},
        )

        result = ClusteringEngine().cluster_from_settings(vectors, settings)

        assert result.n_clusters == 3
        assert isinstance(result.model, DBSCANAlgorithm)
        assert np.all(result.labels[-4:] == -1)
