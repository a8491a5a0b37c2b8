"""
Pairwise distance matrix construction.

Builds the upper-triangular M x M distance matrix consumed by the density
neighborhood search. Only cells (i, j) with i < j are computed; the
diagonal and lower triangle hold NaN and are never read.
"""

import logging
from typing import Any

import numpy as np

from densecluster.utils.error_handling import DimensionMismatchError

logger = logging.getLogger(__name__)


def row_distances(metric: Any, row: np.ndarray, rows: np.ndarray) -> np.ndarray:
    pairwise = getattr(metric, "pairwise", None)
    if callable(pairwise):
        return np.asarray(pairwise(row, rows), dtype=np.float64)
    return np.array([metric.distance(row, other) for other in rows], dtype=np.float64)


def build_distance_matrix(data: np.ndarray, metric: Any) -> np.ndarray:
    """
    Compute the upper-triangular pairwise distance matrix.

    Pure function of its inputs: every stored cell is written exactly once.

    Args:
        data: M x N matrix
        metric: Object exposing ``distance(a, b)`` (and optionally
            ``pairwise(a, rows)``)

    Returns:
        M x M float64 array; ``d[i, j]`` for ``i < j`` is the distance

    Raises:
        DimensionMismatchError: If data is not 2D or the metric returns a
            row of the wrong length
    """
    data = np.asarray(data)
    if data.ndim != 2:
        raise DimensionMismatchError(
            f"Expected a 2D matrix, got {data.ndim} dimension(s)",
            details={"shape": list(data.shape)},
        )

    m = data.shape[0]
    dist_mat = np.full((m, m), np.nan, dtype=np.float64)

    for i in range(m - 1):
        row = row_distances(metric, data[i], data[i + 1:])
        if row.shape != (m - i - 1,):
            raise DimensionMismatchError(
                f"Metric returned {row.shape} distances for row {i}, "
                f"expected {m - i - 1}",
                details={"row": i, "shape": list(row.shape)},
            )
        dist_mat[i, i + 1:] = row

    logger.debug(f"Built {m} x {m} distance matrix")
    return dist_mat


def pair_distance(dist_mat: np.ndarray, i: int, j: int) -> float:
    """
    Read the stored distance between two distinct points.

    Raises:
        DimensionMismatchError: If ``i == j`` or either index is out of range
    """
    m = dist_mat.shape[0]
    if i == j or not (0 <= i < m and 0 <= j < m):
        raise DimensionMismatchError(
            f"Invalid index pair ({i}, {j}) for {m} x {m} distance matrix"
        )
    if i > j:
        i, j = j, i
    return float(dist_mat[i, j])
