"""
projection.py

Range image projection and per-ring compaction.

Points are bucketed into a fixed ``n_scan × horizon_scan`` grid.  A cell
keeps the first point written to it during a scan; later points landing in
an occupied cell are dropped, so the result depends on input order.  The
occupied cells are then compacted ring by ring, in ascending column order,
into an :class:`ExtractedCloud`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from lidar_features.points import CANONICAL_POINT_DTYPE, empty_cloud

logger = logging.getLogger(__name__)

#: Sentinel range of an empty range image cell.
EMPTY_RANGE = np.float32(np.finfo(np.float32).max)

#: Points reserved at each end of a ring so the smoothness window stays in
#: bounds.
RING_MARGIN = 5


@dataclass
class RangeImage:
    """Range image plus the point stored in each occupied cell.

    Attributes:
        range: ``(n_scan, horizon_scan)`` float32 grid; :data:`EMPTY_RANGE`
            marks an empty cell.
        points: Flat canonical cloud of ``n_scan * horizon_scan`` points;
            cell ``(row, col)`` lives at ``col + row * horizon_scan``.
    """

    range: np.ndarray
    points: np.ndarray

    @classmethod
    def allocate(cls, n_scan: int, horizon_scan: int) -> "RangeImage":
        return cls(
            range=np.full((n_scan, horizon_scan), EMPTY_RANGE, dtype=np.float32),
            points=empty_cloud(n_scan * horizon_scan),
        )

    @property
    def n_scan(self) -> int:
        return self.range.shape[0]

    @property
    def horizon_scan(self) -> int:
        return self.range.shape[1]

    @property
    def occupied(self) -> np.ndarray:
        """Boolean ``(n_scan, horizon_scan)`` mask of written cells."""
        return self.range != EMPTY_RANGE

    def reset(self) -> None:
        self.range.fill(EMPTY_RANGE)
        self.points.fill(0)


@dataclass
class ExtractedCloud:
    """Occupied range image cells compacted into one ordered cloud.

    Attributes:
        points: Canonical cloud, ring by ring, ascending column within a ring.
        column_index: Range image column of each point.
        range: Range of each point (metres).
        start_ring_index: Per ring, first index usable for feature selection.
        end_ring_index: Per ring, last index usable for feature selection.
            A ring with ``start > end`` has too few points and must be
            skipped.
    """

    points: np.ndarray
    column_index: np.ndarray
    range: np.ndarray
    start_ring_index: np.ndarray
    end_ring_index: np.ndarray

    def __len__(self) -> int:
        return len(self.points)

    def ring_span(self, ring: int) -> tuple[int, int]:
        return int(self.start_ring_index[ring]), int(self.end_ring_index[ring])

    def ring_is_valid(self, ring: int) -> bool:
        start, end = self.ring_span(ring)
        return start <= end


def point_range(points: np.ndarray) -> np.ndarray:
    """Euclidean distance of each point from the sensor origin (float32)."""
    x = points["x"].astype(np.float32)
    y = points["y"].astype(np.float32)
    z = points["z"].astype(np.float32)
    return np.sqrt(x * x + y * y + z * z)


def azimuth_columns(points: np.ndarray, horizon_scan: int) -> np.ndarray:
    """Range image column of each point from its horizontal angle.

    ``column = -round((atan2(x, y)° - 90) / resolution) + horizon_scan // 2``,
    wrapped once into ``[0, horizon_scan)`` from above.  Rounding is half away
    from zero.
    """
    angle = np.degrees(np.arctan2(points["x"].astype(np.float64), points["y"].astype(np.float64)))
    resolution = 360.0 / float(horizon_scan)
    column = -_round_half_away(
        (angle - 90.0) / resolution
    ).astype(np.int64) + horizon_scan // 2
    column[column >= horizon_scan] -= horizon_scan
    return column


def sequential_columns(rings: np.ndarray) -> np.ndarray:
    """Per-ring arrival counter: the k-th point of a ring gets column k."""
    rings = np.asarray(rings, dtype=np.int64)
    if rings.size == 0:
        return np.empty(0, dtype=np.int64)
    order = np.argsort(rings, kind="stable")
    sorted_rings = rings[order]
    group_start = np.flatnonzero(np.r_[True, sorted_rings[1:] != sorted_rings[:-1]])
    group_sizes = np.diff(np.r_[group_start, sorted_rings.size])
    counter = np.arange(sorted_rings.size) - np.repeat(group_start, group_sizes)
    column = np.empty_like(counter)
    column[order] = counter
    return column


def project_points(
    points: np.ndarray,
    n_scan: int,
    horizon_scan: int,
    downsample_rate: int = 1,
    min_range: float = 1.0,
    max_range: float = 1000.0,
    sequential: bool = False,
    image: RangeImage | None = None,
) -> RangeImage:
    """Project canonical points into a range image.

    A point is dropped when its range is outside ``[min_range, max_range]``,
    its ring is outside ``[0, n_scan)`` or not a multiple of
    *downsample_rate*, or its column is outside ``[0, horizon_scan)``.
    Dropped points are expected and are not errors.

    Args:
        points: Array of :data:`~lidar_features.points.CANONICAL_POINT_DTYPE`.
        n_scan: Number of rings (rows).
        horizon_scan: Number of columns.
        downsample_rate: Keep only rings divisible by this factor.
        min_range: Minimum valid range (metres).
        max_range: Maximum valid range (metres).
        sequential: Assign columns by per-ring arrival order instead of
            azimuth.
        image: Range image to fill.  It is reset first.  A new one is
            allocated when omitted.

    Returns:
        The populated :class:`RangeImage`.

    Raises:
        ValueError: If *points* is not a canonical cloud or *image* has the
            wrong shape.
    """
    points = np.asarray(points)
    if points.dtype != CANONICAL_POINT_DTYPE:
        raise ValueError(f"points must use CANONICAL_POINT_DTYPE, got {points.dtype}.")
    if image is None:
        image = RangeImage.allocate(n_scan, horizon_scan)
    else:
        if image.range.shape != (n_scan, horizon_scan):
            raise ValueError(
                f"image must be shape ({n_scan}, {horizon_scan}), got {image.range.shape}."
            )
        image.reset()

    ranges = point_range(points)
    rings = points["ring"].astype(np.int64)
    keep = (ranges >= min_range) & (ranges <= max_range)
    keep &= rings < n_scan
    keep &= rings % downsample_rate == 0
    idx = np.flatnonzero(keep)

    if sequential:
        columns = sequential_columns(rings[idx])
    else:
        columns = azimuth_columns(points[idx], horizon_scan)

    in_bounds = (columns >= 0) & (columns < horizon_scan)
    if sequential and not in_bounds.all():
        logger.debug(
            "%d points exceeded the %d columns of their ring", int((~in_bounds).sum()), horizon_scan
        )
    idx = idx[in_bounds]
    cells = rings[idx] * horizon_scan + columns[in_bounds]

    # np.unique reports the first occurrence of each cell.
    _, first = np.unique(cells, return_index=True)
    cells = cells[first]
    idx = idx[first]

    image.range.ravel()[cells] = ranges[idx]
    image.points[cells] = points[idx]
    return image


def extract_cloud(image: RangeImage) -> ExtractedCloud:
    """Compact the occupied cells of *image* into an :class:`ExtractedCloud`.

    For ring ``r`` holding ``n_r`` points after ``c_r`` points of earlier
    rings, ``start = c_r + 5`` and ``end = c_r + n_r - 1 - 5``.
    """
    occupied = image.occupied
    counts = occupied.sum(axis=1).astype(np.int64)
    after = np.cumsum(counts)
    before = after - counts

    flat = np.flatnonzero(occupied.ravel())
    return ExtractedCloud(
        points=image.points[flat].copy(),
        column_index=(flat % image.horizon_scan).astype(np.int64),
        range=image.range.ravel()[flat].copy(),
        start_ring_index=before + RING_MARGIN,
        end_ring_index=after - 1 - RING_MARGIN,
    )


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.sign(values) * np.floor(np.abs(values) + 0.5)
