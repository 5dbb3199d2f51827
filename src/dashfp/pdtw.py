#!/usr/bin/env python3
"""Partial (subsequence) dynamic time warping.

Scores how well a short query fingerprint aligns against some contiguous
window of a longer template. Every start offset ``i`` and window length ``j``
is tried; each window is aligned with a DTW whose start is pinned to the
window's first element and whose step set lets one query element consume
zero, one or two template elements. The score is the minimum per-element
cost over all windows.

The ``(offset, window)`` pairs are independent, so they are flattened into one
index space and evaluated with a Numba ``prange`` loop.
"""

from __future__ import annotations

import math

import numpy as np
import numpy.typing as npt
from numba import jit, prange


@jit(nopython=True, cache=True, nogil=True)
def subsequence_cost(query: np.ndarray, template: np.ndarray) -> float:
    """Constrained DTW cost between a query and one template window.

    Args:
        query: Query fingerprint (n,)
        template: Template window (j,)

    Returns:
        Accumulated alignment cost divided by the query length.
    """
    n = query.shape[0]
    m = template.shape[0]

    grid = np.empty((n + 1, m + 1), dtype=np.float64)
    grid[0, 0] = 0.0
    for i in range(1, n + 1):
        grid[i, 0] = np.inf
    for k in range(1, m + 1):
        grid[0, k] = np.inf

    for i in range(1, n + 1):
        for k in range(1, m + 1):
            cost = abs(query[i - 1] - template[k - 1])
            best = min(grid[i - 1, k], grid[i - 1, k - 1])
            if k > 2:
                best = min(best, grid[i - 1, k - 2])
            grid[i, k] = cost + best

    return grid[n, m] / n


@jit(nopython=True, parallel=True, cache=True, nogil=True)
def _pair_costs(
    query: np.ndarray, template: np.ndarray, offsets: np.ndarray, windows: np.ndarray
) -> np.ndarray:
    """Cost of every (offset, window) pair, computed in parallel."""
    costs = np.empty(offsets.shape[0], dtype=np.float64)
    for p in prange(offsets.shape[0]):
        start = offsets[p]
        costs[p] = subsequence_cost(query, template[start : start + windows[p]])
    return costs


def search_space(n: int, m: int) -> tuple[np.ndarray, np.ndarray]:
    """Enumerate candidate windows of a length-m template for a length-n query.

    Offsets run over ``[0, m - n]``. For offset ``i`` the window length runs
    from 1 up to the remaining template length ``m - i``, and stays below
    ``2 * n``.

    Args:
        n: Query length
        m: Template length

    Returns:
        Tuple of (offsets, windows) int64 arrays of equal length.
    """
    if m < n:
        empty = np.empty(0, dtype=np.int64)
        return empty, empty

    offsets = np.arange(m - n + 1, dtype=np.int64)
    counts = np.minimum(m - offsets, 2 * n - 1)

    pair_offsets = np.repeat(offsets, counts)
    starts = np.repeat(np.cumsum(counts) - counts, counts)
    pair_windows = np.arange(pair_offsets.shape[0], dtype=np.int64) - starts + 1
    return pair_offsets, pair_windows


def _prepare(
    query: npt.ArrayLike, template: npt.ArrayLike
) -> tuple[np.ndarray, np.ndarray]:
    """Convert inputs to contiguous float64 arrays.

    Raises:
        ValueError: If the query is empty.
    """
    q = np.ascontiguousarray(query, dtype=np.float64)
    t = np.ascontiguousarray(template, dtype=np.float64)
    if q.ndim != 1 or t.ndim != 1:
        msg = "query and template must be one-dimensional"
        raise ValueError(msg)
    if q.shape[0] == 0:
        msg = "query must not be empty"
        raise ValueError(msg)
    return q, t


def reduce_min(costs: np.ndarray) -> float:
    """Minimum over window costs, skipping NaN.

    Returns:
        ``inf`` for an empty array, ``nan`` if every cost is NaN. The search
        space of :func:`partial_dtw` is never empty once ``m >= n``.
    """
    if costs.shape[0] == 0:
        return math.inf
    valid = costs[~np.isnan(costs)]
    if valid.shape[0] == 0:
        return math.nan
    return float(valid.min())


def partial_dtw(query: npt.ArrayLike, template: npt.ArrayLike) -> float:
    """Score a query against a template (parallel search).

    Args:
        query: Query fingerprint (n,)
        template: Template fingerprint (m,)

    Returns:
        Minimum window cost; ``inf`` if the template is shorter than the query.
    """
    q, t = _prepare(query, template)
    if t.shape[0] < q.shape[0]:
        return math.inf

    offsets, windows = search_space(q.shape[0], t.shape[0])
    return reduce_min(_pair_costs(q, t, offsets, windows))


def partial_dtw_serial(query: npt.ArrayLike, template: npt.ArrayLike) -> float:
    """Sequential reference for :func:`partial_dtw`.

    Walks offsets and window lengths in order with plain loops.
    """
    q, t = _prepare(query, template)
    n, m = q.shape[0], t.shape[0]
    if m < n:
        return math.inf

    costs = [
        subsequence_cost(q, t[i : i + j])
        for i in range(m - n + 1)
        for j in range(1, min(m - i, 2 * n - 1) + 1)
    ]
    return reduce_min(np.array(costs, dtype=np.float64))
