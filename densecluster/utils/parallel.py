"""
parallel.py

Intra-process parallel execution helpers for densecluster.
Probes CPU and memory with psutil and runs data-parallel work on a thread pool.

Features:
- Worker count resolution (n_jobs semantics: None/-1 = all cores)
- Memory headroom checks before allocating per-worker buffers
- Chunked thread-pool map where each worker owns a disjoint slice
- Serial and parallel NaN scans with transparent serial fallback
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

import numpy as np
import psutil

from densecluster.utils.error_handling import (
    ResourceExhaustedError,
    with_serial_fallback,
)

logger = logging.getLogger(__name__)

# Below this many cells the pool overhead outweighs the scan
MIN_PARALLEL_CELLS = 10_000


def available_workers(n_jobs: Optional[int] = None) -> int:
    """
    Resolve the number of worker threads to use.

    Args:
        n_jobs: Requested workers. None or -1 means all logical cores;
            other negative values count back from the core count.

    Returns:
        Worker count, at least 1
    """
    cpu_count = psutil.cpu_count(logical=True) or 1

    if n_jobs is None or n_jobs == -1:
        return cpu_count
    if n_jobs < 0:
        return max(1, cpu_count + 1 + n_jobs)
    return max(1, min(n_jobs, cpu_count))


def ensure_memory_available(n_bytes: int, headroom: float = 0.1) -> None:
    """
    Check that an allocation fits in available memory.

    Args:
        n_bytes: Bytes about to be allocated
        headroom: Fraction of total memory that must remain free afterwards

    Raises:
        ResourceExhaustedError: If the allocation would exceed the budget
    """
    vm = psutil.virtual_memory()
    budget = vm.available - int(vm.total * headroom)

    if n_bytes > budget:
        raise ResourceExhaustedError(
            f"Requested {n_bytes} bytes but only {max(budget, 0)} bytes available",
            details={
                "requested_bytes": n_bytes,
                "available_bytes": vm.available,
                "headroom": headroom,
            },
        )


def chunk_bounds(n_items: int, n_chunks: int) -> List[Tuple[int, int]]:
    """
    Split ``range(n_items)`` into at most ``n_chunks`` contiguous slices.

    Returns:
        List of (start, stop) pairs covering every index exactly once
    """
    n_chunks = max(1, min(n_chunks, n_items))
    edges = np.linspace(0, n_items, n_chunks + 1).astype(int)
    return [(int(edges[k]), int(edges[k + 1])) for k in range(n_chunks)]


def parallel_map_chunks(
    func: Callable[[int, int], Any],
    n_items: int,
    n_jobs: Optional[int] = None,
) -> List[Any]:
    """
    Run ``func(start, stop)`` over disjoint index slices on a thread pool.

    Results are returned in slice order so callers can concatenate them
    deterministically regardless of scheduling.

    Args:
        func: Work function for one slice
        n_items: Total number of items
        n_jobs: Requested worker count

    Returns:
        List of per-slice results, ordered by start index

    Raises:
        ResourceExhaustedError: If fewer than two workers are available
        RuntimeError: If the pool cannot schedule the work
    """
    workers = available_workers(n_jobs)
    if workers < 2:
        raise ResourceExhaustedError(
            "Parallel execution requires at least two workers",
            details={"workers": workers},
        )

    bounds = chunk_bounds(n_items, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(func, start, stop) for start, stop in bounds]
        return [future.result() for future in futures]


# =============================================================================
# NaN Scans
# =============================================================================


def contains_nan(data: np.ndarray, n_jobs: Optional[int] = None) -> bool:
    """Serial NaN scan. ``n_jobs`` is accepted for signature parity."""
    return bool(np.isnan(data).any())


@with_serial_fallback(contains_nan)
def contains_nan_parallel(data: np.ndarray, n_jobs: Optional[int] = None) -> bool:
    """
    Row-chunked NaN scan on a thread pool.

    Falls back to :func:`contains_nan` when the pool cannot be scheduled
    or memory runs out.
    """
    if data.size < MIN_PARALLEL_CELLS:
        return contains_nan(data)

    def scan(start: int, stop: int) -> bool:
        return bool(np.isnan(data[start:stop]).any())

    results = parallel_map_chunks(scan, data.shape[0], n_jobs)
    logger.debug(f"Parallel NaN scan over {len(results)} chunks")
    return any(results)
