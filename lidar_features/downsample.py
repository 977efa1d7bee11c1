"""
downsample.py

Voxel grid reduction: one representative point per occupied cubic cell.

The representative is the centroid of the cell's points.  Floating point
fields are averaged; integer fields (such as ``ring``) are taken from the
first point of the cell in input order.  Output is ordered by ascending voxel
index, so the result only depends on the input and the leaf size.
"""

from __future__ import annotations

import numpy as np

from lidar_features.points import xyz as xyz_of


def voxel_downsample(points: np.ndarray, leaf_size: float) -> np.ndarray:
    """Reduce *points* to one centroid per ``leaf_size`` voxel.

    Args:
        points: Structured array with at least ``x``, ``y`` and ``z`` fields.
        leaf_size: Edge length of the cubic voxels (metres).

    Returns:
        Structured array with the same dtype as *points*.

    Raises:
        ValueError: If *leaf_size* is not positive.
    """
    if leaf_size <= 0.0:
        raise ValueError(f"leaf_size must be positive, got {leaf_size}.")
    points = np.asarray(points)
    if len(points) == 0:
        return points.copy()

    xyz = xyz_of(points).astype(np.float64)
    voxel = np.floor(xyz / float(leaf_size)).astype(np.int64)

    _, first, inverse, counts = np.unique(
        voxel, axis=0, return_index=True, return_inverse=True, return_counts=True
    )
    inverse = inverse.reshape(-1)

    out = np.empty(len(counts), dtype=points.dtype)
    for name in points.dtype.names:
        column = points[name]
        if np.issubdtype(column.dtype, np.floating):
            sums = np.bincount(inverse, weights=column.astype(np.float64), minlength=len(counts))
            out[name] = sums / counts
        else:
            out[name] = column[first]
    return out
