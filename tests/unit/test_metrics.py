"""
Unit tests for separability metrics.
"""

import numpy as np
import pytest

from densecluster.core.metrics import (
    DEFAULT_METRIC,
    CosineSimilarity,
    EuclideanDistance,
    GaussianKernel,
    ManhattanDistance,
    metric_name,
    resolve_metric,
)
from densecluster.utils.error_handling import InvalidArgumentError


class ChebyshevDistance:
    """User-supplied metric exposing only distance()."""

    def distance(self, a, b):
        return float(np.max(np.abs(np.asarray(a) - np.asarray(b))))


@pytest.mark.unit
class TestDistanceMetrics:
    """Distance metrics."""

    def test_euclidean(self):
        assert EuclideanDistance().distance(np.array([0.0, 0.0]), np.array([3.0, 4.0])) == 5.0

    def test_manhattan(self):
        assert ManhattanDistance().distance(np.array([0.0, 0.0]), np.array([3.0, -4.0])) == 7.0

    @pytest.mark.parametrize(
        "metric",
        [EuclideanDistance(), ManhattanDistance(), CosineSimilarity(), GaussianKernel(0.3)],
    )
    def test_pairwise_matches_distance(self, metric, random_matrix):
        a = random_matrix[0]
        rows = random_matrix[1:]

        expected = [metric.distance(a, row) for row in rows]
        np.testing.assert_allclose(metric.pairwise(a, rows), expected)

    def test_distance_flags(self):
        metric = EuclideanDistance()
        assert metric.is_similarity is False
        assert metric.is_kernel is False


@pytest.mark.unit
class TestSimilarityMetrics:
    """Similarity metrics report distance as 1 - similarity."""

    def test_cosine_similarity(self):
        metric = CosineSimilarity()
        a = np.array([1.0, 0.0])

        assert metric.similarity(a, np.array([5.0, 0.0])) == pytest.approx(1.0)
        assert metric.similarity(a, np.array([0.0, 2.0])) == pytest.approx(0.0)
        assert metric.similarity(a, np.array([-1.0, 0.0])) == pytest.approx(-1.0)

    def test_cosine_distance_is_similarity_inverse(self):
        metric = CosineSimilarity()
        a = np.array([1.0, 2.0])
        b = np.array([2.0, 1.0])

        assert metric.distance(a, b) == pytest.approx(1.0 - metric.similarity(a, b))

    def test_cosine_zero_vector(self):
        metric = CosineSimilarity()
        assert metric.similarity(np.zeros(2), np.array([1.0, 1.0])) == 0.0
        assert metric.distance(np.zeros(2), np.array([1.0, 1.0])) == 1.0

    def test_gaussian_kernel(self):
        metric = GaussianKernel(gamma=0.5)
        a = np.array([0.0, 0.0])
        b = np.array([1.0, 1.0])

        assert metric.similarity(a, a) == 1.0
        assert metric.similarity(a, b) == pytest.approx(np.exp(-1.0))
        assert metric.distance(a, b) == pytest.approx(1.0 - np.exp(-1.0))

    def test_ordering_is_descending_similarity(self):
        metric = GaussianKernel()
        a = np.array([0.0])
        rows = np.array([[0.5], [2.0], [1.0]])

        order_by_distance = np.argsort(metric.pairwise(a, rows))
        order_by_similarity = np.argsort(-metric.pairwise_similarity(a, rows))
        np.testing.assert_array_equal(order_by_distance, order_by_similarity)

    @pytest.mark.parametrize("gamma", [0.0, -1.0])
    def test_gaussian_invalid_gamma(self, gamma):
        with pytest.raises(InvalidArgumentError):
            GaussianKernel(gamma=gamma)

    def test_similarity_flags(self):
        assert CosineSimilarity().is_similarity is True
        assert CosineSimilarity().is_kernel is False
        assert GaussianKernel().is_kernel is True


@pytest.mark.unit
class TestResolveMetric:
    """Metric specification resolution."""

    def test_none_is_euclidean(self):
        assert resolve_metric(None) is DEFAULT_METRIC
        assert isinstance(DEFAULT_METRIC, EuclideanDistance)

    @pytest.mark.parametrize(
        "name,cls",
        [
            ("euclidean", EuclideanDistance),
            ("Manhattan", ManhattanDistance),
            ("COSINE", CosineSimilarity),
            ("gaussian", GaussianKernel),
        ],
    )
    def test_by_name(self, name, cls):
        assert isinstance(resolve_metric(name), cls)

    def test_unknown_name(self):
        with pytest.raises(InvalidArgumentError, match="Unknown metric"):
            resolve_metric("hamming")

    def test_custom_object(self):
        metric = ChebyshevDistance()
        assert resolve_metric(metric) is metric
        assert metric_name(metric) == "ChebyshevDistance"

    def test_unusable_object(self):
        with pytest.raises(InvalidArgumentError):
            resolve_metric(42)

    def test_equality_and_hash(self):
        assert GaussianKernel(0.5) == GaussianKernel(0.5)
        assert GaussianKernel(0.5) != GaussianKernel(1.0)
        assert hash(EuclideanDistance()) == hash(EuclideanDistance())
        assert EuclideanDistance() != ManhattanDistance()

    def test_repr(self):
        assert repr(GaussianKernel(0.5)) == "GaussianKernel(gamma=0.5)"
