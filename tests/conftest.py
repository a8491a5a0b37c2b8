"""
Pytest configuration and shared fixtures for densecluster tests.

This module provides:
- Shared test fixtures
- Synthetic data generators with known cluster structure
- Settings file fixtures
- Global state cleanup (settings cache, structlog and root logger configuration)
"""

import logging

import numpy as np
import pytest
import structlog

from densecluster.config.settings_loader import ConfigManager


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def two_points_and_outlier():
    """Two close points and one far away."""
    return np.array([[0.0, 0.0], [0.1, 0.1], [10.0, 10.0]])


@pytest.fixture
def duplicate_points():
    """Three identical points."""
    return np.zeros((3, 2))


@pytest.fixture
def sparse_points():
    """Points spaced 10 apart along a line, farther apart than any test eps."""
    return np.arange(0.0, 60.0, 10.0).reshape(-1, 1) * np.ones((1, 2))


@pytest.fixture
def blob_data():
    """
    Generate data with clear density structure.

    Creates 3 tight blobs of 20 points plus 4 isolated outliers:
    - Blob 0: centered at (0, 0)
    - Blob 1: centered at (5, 5)
    - Blob 2: centered at (0, 8)
    - Outliers: far corners
    """
    np.random.seed(42)
    n_per_blob = 20

    centers = np.array([[0.0, 0.0], [5.0, 5.0], [0.0, 8.0]])
    blobs = [center + np.random.randn(n_per_blob, 2) * 0.2 for center in centers]
    outliers = np.array([[20.0, 20.0], [-20.0, 20.0], [20.0, -20.0], [-20.0, -20.0]])

    vectors = np.vstack(blobs + [outliers])
    labels = np.concatenate([np.full(n_per_blob, k) for k in range(3)] + [np.full(4, -1)])

    return vectors, labels


@pytest.fixture
def chain_data():
    """
    A line of points with one border point at the end.

    Points 0-4 are spaced 1.0 apart; point 5 sits 1.5 beyond point 4, outside eps.
    With eps=1.0 and min_pts=3, points 1-3 are core, 0 and 4 are border
    via their core neighbors, and 5 is noise.
    """
    return np.array([[0.0], [1.0], [2.0], [3.0], [4.0], [5.5]])


@pytest.fixture
def random_matrix():
    """Generic random matrix for distance computations."""
    np.random.seed(42)
    return np.random.randn(12, 4)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def settings_file(tmp_path):
    """Write a minimal settings YAML and return its path."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        "clustering:\n"
        "  default_algorithm: dbscan\n"
        "  seed: 7\n"
        "  algorithms:\n"
        "    dbscan:\n"
        "      eps: 1.0\n"
        "      min_pts: 3\n"
        "    kmeans:\n"
        "      n_clusters: 3\n"
        "parallelism:\n"
        "  enabled: false\n"
    )
    return path


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset process-wide state after each test."""
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)

    yield

    ConfigManager.reset()
    structlog.reset_defaults()
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take >1 second"
    )
