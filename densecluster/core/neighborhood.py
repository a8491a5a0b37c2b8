"""
Radius-bounded neighborhood search.

Given a point and the upper-triangular distance matrix, finds every other
point within a radius, ordered by ascending distance with ties broken by
ascending index so that repeated runs always produce the same order.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from densecluster.core.distance_matrix import row_distances
from densecluster.utils.error_handling import (
    DimensionMismatchError,
    with_serial_fallback,
)
from densecluster.utils.parallel import ensure_memory_available, parallel_map_chunks


@dataclass(frozen=True)
class Neighborhood:
    """Ordered (index, distance) pairs within eps of a point."""

    index: int
    neighbors: Tuple[Tuple[int, float], ...]

    @property
    def indices(self) -> List[int]:
        return [j for j, _ in self.neighbors]

    @property
    def distances(self) -> List[float]:
        return [d for _, d in self.neighbors]

    @property
    def density(self) -> int:
        """Neighborhood size including the point itself."""
        return len(self.neighbors) + 1

    def __len__(self) -> int:
        return len(self.neighbors)

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        return iter(self.neighbors)


def _sorted_within(
    indices: np.ndarray, distances: np.ndarray, eps: float
) -> Tuple[Tuple[int, float], ...]:
    mask = distances <= eps
    indices = indices[mask]
    distances = distances[mask]
    # lexsort sorts by the last key first
    order = np.lexsort((indices, distances))
    return tuple((int(indices[k]), float(distances[k])) for k in order)


class NearestNeighborhood:
    """Neighborhood lookup for one point of a distance matrix."""

    def __init__(self, index: int, dist_mat: np.ndarray):
        """
        Args:
            index: Point index
            dist_mat: Upper-triangular M x M distance matrix

        Raises:
            DimensionMismatchError: If the matrix is not square or the
                index is out of range
        """
        if dist_mat.ndim != 2 or dist_mat.shape[0] != dist_mat.shape[1]:
            raise DimensionMismatchError(
                f"Distance matrix must be square, got {dist_mat.shape}"
            )
        m = dist_mat.shape[0]
        if not 0 <= index < m:
            raise DimensionMismatchError(
                f"Point index {index} out of range for {m} x {m} distance matrix",
                details={"index": index, "size": m},
            )

        self.index = index
        self.dist_mat = dist_mat

    def distances(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Distances from this point to every other point.

        Reads column ``index`` above the diagonal and row ``index`` right of
        it, so the diagonal is never touched.

        Returns:
            Tuple of (indices, distances), both length M - 1
        """
        i = self.index
        m = self.dist_mat.shape[0]
        indices = np.concatenate([np.arange(i), np.arange(i + 1, m)])
        distances = np.concatenate([self.dist_mat[:i, i], self.dist_mat[i, i + 1:]])
        return indices, distances

    def within_radius(self, eps: float) -> Neighborhood:
        """All other points with distance <= eps, nearest first."""
        indices, distances = self.distances()
        return Neighborhood(self.index, _sorted_within(indices, distances, eps))


def _neighborhood_slice(dist_mat: np.ndarray, eps: float, start: int, stop: int):
    return [NearestNeighborhood(i, dist_mat).within_radius(eps) for i in range(start, stop)]


def compute_neighborhoods_serial(
    dist_mat: np.ndarray,
    eps: float,
    n_jobs: Optional[int] = None,
    headroom: float = 0.1,
) -> List[Neighborhood]:
    """Neighborhood of every point, computed in index order."""
    return _neighborhood_slice(dist_mat, eps, 0, dist_mat.shape[0])


@with_serial_fallback(compute_neighborhoods_serial)
def compute_neighborhoods_parallel(
    dist_mat: np.ndarray,
    eps: float,
    n_jobs: Optional[int] = None,
    headroom: float = 0.1,
) -> List[Neighborhood]:
    """
    Neighborhood of every point, computed on a thread pool.

    Each worker handles a disjoint, contiguous slice of point indices and the
    slices are concatenated in index order, so the output is identical to the
    serial version. Refuses to start (and so falls back to serial) when
    the worst-case neighborhood storage would not fit in memory.
    """
    m = dist_mat.shape[0]
    # (index, distance) per pair in the worst case
    ensure_memory_available(m * m * 16, headroom=headroom)

    slices = parallel_map_chunks(
        lambda start, stop: _neighborhood_slice(dist_mat, eps, start, stop),
        m,
        n_jobs,
    )
    return [hood for chunk in slices for hood in chunk]


def compute_neighborhoods(
    dist_mat: np.ndarray,
    eps: float,
    n_jobs: Optional[int] = 1,
    on_fallback: Optional[Any] = None,
    headroom: float = 0.1,
) -> List[Neighborhood]:
    """
    Neighborhood of every point.

    Args:
        dist_mat: Upper-triangular distance matrix
        eps: Radius
        n_jobs: 1 for serial; None, -1 or > 1 for the thread-pool path
        on_fallback: Hook called if the parallel path falls back to serial
        headroom: Fraction of total memory the parallel path must leave free

    Returns:
        List of neighborhoods indexed by point
    """
    if n_jobs == 1:
        return compute_neighborhoods_serial(dist_mat, eps)
    return compute_neighborhoods_parallel(
        dist_mat, eps, n_jobs, headroom, on_fallback=on_fallback
    )


def radius_neighbors(
    record: np.ndarray,
    data: np.ndarray,
    metric: Any,
    eps: float,
    candidates: Optional[Sequence[int]] = None,
) -> Neighborhood:
    """
    Points of ``data`` within eps of an arbitrary record, using a live metric.

    Args:
        record: Vector with the same length as the rows of ``data``
        data: M x N matrix
        metric: Metric object
        eps: Radius
        candidates: Optional subset of row indices to consider

    Returns:
        Neighborhood with ``index == -1``

    Raises:
        DimensionMismatchError: If the record length does not match
    """
    record = np.asarray(record, dtype=np.float64)
    if record.ndim != 1 or record.shape[0] != data.shape[1]:
        raise DimensionMismatchError(
            f"Record has shape {record.shape}, expected ({data.shape[1]},)"
        )

    if candidates is None:
        indices = np.arange(data.shape[0])
    else:
        indices = np.asarray(candidates, dtype=np.intp)

    if indices.size == 0:
        return Neighborhood(-1, ())

    distances = row_distances(metric, record, data[indices])
    return Neighborhood(-1, _sorted_within(indices, distances, eps))
