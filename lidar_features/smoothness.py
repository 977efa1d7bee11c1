"""
smoothness.py

Curvature proxy along the scan line.

For every extracted point with five neighbours on each side the curvature is
the squared difference between the sum of the ten neighbouring ranges and ten
times the point's own range.  It is near zero along smooth runs and large at
edges and corners.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

#: Neighbours on each side of a point in the smoothness window.
HALF_WINDOW = 5

#: Sort key for feature selection: curvature ``value`` and the extracted
#: index ``ind`` it belongs to.
SMOOTHNESS_DTYPE = np.dtype([("value", np.float64), ("ind", np.int64)])


def calculate_smoothness(
    ranges: np.ndarray,
    curvature: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Compute the curvature of every interior point of an extracted cloud.

    Args:
        ranges: 1-D array of extracted point ranges.
        curvature: Optional float64 buffer of at least ``len(ranges)``
            entries.  Interior entries are overwritten and entries outside
            the interior band are set to zero.

    Returns:
        Structured array of :data:`SMOOTHNESS_DTYPE` with one record per
        interior index ``i``, ``5 <= i < len(ranges) - 5``, in ascending
        index order.  Records are positioned so that ``records[k]`` belongs
        to index ``k + 5``.
    """
    ranges = np.asarray(ranges, dtype=np.float64)
    n = ranges.shape[0]
    if curvature is not None:
        curvature[:n] = 0.0

    n_interior = max(n - 2 * HALF_WINDOW, 0)
    records = np.empty(n_interior, dtype=SMOOTHNESS_DTYPE)
    if n_interior == 0:
        return records

    kernel = np.ones(2 * HALF_WINDOW + 1, dtype=np.float64)
    kernel[HALF_WINDOW] = -10.0
    diff = np.convolve(ranges, kernel, mode="valid")
    values = diff * diff

    records["value"] = values
    records["ind"] = np.arange(HALF_WINDOW, n - HALF_WINDOW)
    if curvature is not None:
        curvature[HALF_WINDOW:n - HALF_WINDOW] = values
    return records
