"""
Integration tests for the clustering pipeline.

Tests the full workflow including:
- Settings loading
- Clustering through the engine
- Model persistence
- Prediction with a reloaded model
- The command line front end
"""

import io
import json
import logging

import numpy as np
import pytest

import cli
from densecluster.config.settings_loader import ConfigManager
from densecluster.core.clustering_engine import ClusteringEngine
from densecluster.core.dbscan_algorithm import DBSCANAlgorithm
from densecluster.storage.model_storage import load_model_from_path, save_model_to_path


@pytest.mark.integration
class TestClusteringPipeline:
    """Integration tests for engine, persistence and prediction."""

    def test_settings_to_prediction(self, settings_file, blob_data, tmp_path):
        """Load settings, cluster, persist, reload and predict."""
        vectors, truth = blob_data
        settings = ConfigManager.load_config(str(settings_file))

        engine = ClusteringEngine()
        result = engine.cluster_from_settings(vectors, settings)
        model = result.model

        assert isinstance(model, DBSCANAlgorithm)
        assert model.get_seed() == 7
        assert np.all(result.labels[truth == -1] == -1)

        path = save_model_to_path(model, tmp_path / "model.bin")
        loaded = load_model_from_path(path, expected_type=DBSCANAlgorithm)

        np.testing.assert_array_equal(loaded.get_labels(), result.labels)
        np.testing.assert_array_equal(
            loaded.predict_many(vectors[:5]), model.predict_many(vectors[:5])
        )
        assert loaded.predict([20.0, 20.0]) == -1

    def test_core_points_predict_their_own_label(self, blob_data):
        vectors, _ = blob_data
        result = ClusteringEngine().cluster(vectors, "dbscan", {"eps": 0.6, "min_pts": 4})
        model = result.model

        core = model.get_core_sample_indices()
        np.testing.assert_array_equal(model.predict_many(vectors[core]), result.labels[core])

    def test_stream_round_trip_with_scaling(self, blob_data):
        vectors, _ = blob_data
        result = ClusteringEngine().cluster(
            vectors, "dbscan", {"eps": 0.3, "min_pts": 4}, scale=True
        )

        stream = io.BytesIO()
        result.model.save(stream)
        stream.seek(0)
        loaded = DBSCANAlgorithm.load(stream)

        record = vectors[0] + 0.01
        assert loaded.predict(record) == result.model.predict(record)
        assert loaded.model_summary().scaled is True

    def test_kmeans_round_trip(self, blob_data, tmp_path):
        vectors, _ = blob_data
        result = ClusteringEngine().cluster(vectors, "kmeans", {"n_clusters": 3}, seed=42)

        path = save_model_to_path(result.model, tmp_path / "kmeans.bin")
        loaded = load_model_from_path(path)

        np.testing.assert_allclose(loaded.centroids, result.centroids)
        assert loaded.predict([5.0, 5.0]) == result.model.predict([5.0, 5.0])


@pytest.mark.integration
class TestCommandLine:
    """cli.py end to end."""

    @pytest.fixture
    def data_file(self, two_points_and_outlier, tmp_path):
        path = tmp_path / "data.csv"
        np.savetxt(path, two_points_and_outlier, delimiter=",")
        return path

    def test_fit_predict_info(self, data_file, tmp_path, capsys):
        model_path = tmp_path / "model.bin"

        code = cli.main([
            "fit", str(data_file),
            "--eps", "1.0",
            "--min-pts", "2",
            "--save", str(model_path),
        ])
        assert code == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["labels"] == [0, 0, -1]
        assert summary["n_clusters"] == 1
        assert summary["state"] == "fitted"
        assert model_path.exists()

        assert cli.main(["predict", str(model_path), "0.05", "0.05"]) == 0
        assert capsys.readouterr().out.strip() == "0"

        assert cli.main(["predict", str(model_path), "50", "50"]) == 0
        assert capsys.readouterr().out.strip() == "-1"

        assert cli.main(["info", str(model_path)]) == 0
        info = json.loads(capsys.readouterr().out)
        assert info["algorithm"] == "DBSCAN"
        assert info["parameters"]["eps"] == 1.0

    def test_fit_with_config(self, data_file, settings_file, capsys):
        code = cli.main(["fit", str(data_file), "--config", str(settings_file), "--eps", "1.0"])
        assert code == 0

        summary = json.loads(capsys.readouterr().out)
        # min_pts comes from the settings file
        assert summary["parameters"]["min_pts"] == 3
        assert summary["labels"] == [-1, -1, -1]

    def test_fit_logs_to_configured_file(self, data_file, tmp_path, capsys):
        log_file = tmp_path / "logs" / "fit.log"
        config = tmp_path / "logging.yaml"
        config.write_text(
            "logging:\n"
            "  level: info\n"
            "  format: json\n"
            f"  file: {log_file}\n"
        )

        assert cli.main(["fit", str(data_file), "--config", str(config), "--eps", "1.0"]) == 0
        capsys.readouterr()

        assert log_file.exists()
        assert "Initialized ClusteringEngine" in log_file.read_text()
        assert logging.getLogger().level == logging.INFO

    def test_log_level_flag_overrides_config(self, data_file, tmp_path, capsys):
        config = tmp_path / "logging.yaml"
        config.write_text("logging:\n  level: DEBUG\n")

        code = cli.main([
            "--log-level", "ERROR",
            "fit", str(data_file), "--config", str(config), "--eps", "1.0",
        ])
        assert code == 0
        capsys.readouterr()

        assert logging.getLogger().level == logging.ERROR

    def test_invalid_eps_exits_with_error(self, data_file, capsys):
        assert cli.main(["fit", str(data_file), "--eps", "0"]) == 1
        assert "eps must be greater than 0.0" in capsys.readouterr().err

    def test_nan_input_exits_with_error(self, tmp_path, capsys):
        path = tmp_path / "missing.csv"
        path.write_text("1.0,2.0\n3.0,\n")

        assert cli.main(["fit", str(path), "--eps", "1.0"]) == 1
        assert "imputation" in capsys.readouterr().err

    def test_predict_wrong_length(self, data_file, tmp_path, capsys):
        model_path = tmp_path / "model.bin"
        assert cli.main(["fit", str(data_file), "--eps", "1.0", "--save", str(model_path)]) == 0
        capsys.readouterr()

        assert cli.main(["predict", str(model_path), "1.0"]) == 1

    def test_missing_model(self, tmp_path):
        assert cli.main(["info", str(tmp_path / "missing.bin")]) == 1
