"""
features.py

Edge and surface feature selection.

Each ring's usable span is split into :data:`N_SECTORS` sectors.  Within a
sector, points are ranked by curvature:

1. From the highest curvature down, up to :data:`MAX_CORNERS_PER_SECTOR`
   unflagged points above the edge threshold become corner features.
2. From the lowest curvature up, unflagged points below the surface
   threshold are labelled surface points.
3. Every point of the sector that is not a corner is kept as a surface
   candidate.

Each accepted point suppresses up to five neighbours on each side, stopping
at the first column gap larger than :data:`SUPPRESSION_MAX_COLUMN_GAP`.
Surface candidates of a ring are voxel-downsampled before they are appended
to the scan's surface cloud.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from lidar_features.downsample import voxel_downsample
from lidar_features.points import FeatureTag, empty_cloud
from lidar_features.projection import ExtractedCloud

logger = logging.getLogger(__name__)

N_SECTORS = 6
MAX_CORNERS_PER_SECTOR = 20
SUPPRESSION_HALF_WINDOW = 5
SUPPRESSION_MAX_COLUMN_GAP = 10

LABEL_CORNER = 1
LABEL_SURFACE = -1


@dataclass
class FeatureSets:
    """Corner and surface clouds of one scan."""

    corner: np.ndarray = field(default_factory=empty_cloud)
    surface: np.ndarray = field(default_factory=empty_cloud)

    def clear(self) -> None:
        self.corner = empty_cloud()
        self.surface = empty_cloud()


def sector_bounds(start: int, end: int, sector: int) -> tuple[int, int]:
    """Inclusive ``(sp, ep)`` bounds of *sector* within ``[start, end]``.

    ``sp = (start * (6 - j) + end * j) // 6`` and
    ``ep = (start * (5 - j) + end * (j + 1)) // 6 - 1`` with truncating
    integer division.
    """
    sp = _trunc_div(start * (N_SECTORS - sector) + end * sector, N_SECTORS)
    ep = _trunc_div(start * (N_SECTORS - 1 - sector) + end * (sector + 1), N_SECTORS) - 1
    return sp, ep


def suppress_neighbors(
    ind: int,
    column_index: np.ndarray,
    neighbor_picked: np.ndarray,
) -> None:
    """Flag *ind* and its scan-line neighbours as picked.

    Walks at most five steps in each direction and stops a direction at the
    first step whose column gap exceeds :data:`SUPPRESSION_MAX_COLUMN_GAP`.
    """
    neighbor_picked[ind] = True
    for step in range(1, SUPPRESSION_HALF_WINDOW + 1):
        if abs(int(column_index[ind + step]) - int(column_index[ind + step - 1])) > SUPPRESSION_MAX_COLUMN_GAP:
            break
        neighbor_picked[ind + step] = True
    for step in range(1, SUPPRESSION_HALF_WINDOW + 1):
        if abs(int(column_index[ind - step]) - int(column_index[ind - step + 1])) > SUPPRESSION_MAX_COLUMN_GAP:
            break
        neighbor_picked[ind - step] = True


def extract_features(
    cloud: ExtractedCloud,
    smoothness: np.ndarray,
    curvature: np.ndarray,
    neighbor_picked: np.ndarray,
    label: np.ndarray,
    edge_threshold: float,
    surf_threshold: float,
    leaf_size: float,
    features: FeatureSets | None = None,
) -> FeatureSets:
    """Select corner and surface features from an extracted cloud.

    Args:
        cloud: Extracted cloud of the scan.  The ``tag`` field of its points
            is updated with the selected feature type.
        smoothness: Records from
            :func:`~lidar_features.smoothness.calculate_smoothness`, where
            ``smoothness[k]`` belongs to extracted index ``k + 5``.
        curvature: Dense curvature per extracted index.
        neighbor_picked: Flags shared with the occlusion marker, updated in
            place.
        label: Per-index label buffer, updated in place (1 corner, -1 surface
            seed, 0 otherwise).  Must be zeroed by the caller.
        edge_threshold: Minimum curvature of a corner feature.
        surf_threshold: Maximum curvature of a surface seed.
        leaf_size: Voxel size used to thin each ring's surface points.
        features: Output sets to fill.  They are cleared first.

    Returns:
        The populated :class:`FeatureSets`.
    """
    if features is None:
        features = FeatureSets()
    else:
        features.clear()

    points = cloud.points
    column_index = cloud.column_index
    corners: list[int] = []
    surface_rings: list[np.ndarray] = []

    for ring in range(len(cloud.start_ring_index)):
        if not cloud.ring_is_valid(ring):
            continue
        start, end = cloud.ring_span(ring)
        ring_surface: list[int] = []

        for sector in range(N_SECTORS):
            sp, ep = sector_bounds(start, end, sector)
            if sp >= ep:
                continue

            # Both ends are ranked, ep included. Leaving ep unsorted would
            # make it the first corner candidate regardless of curvature.
            records = smoothness[sp - 5:ep - 5 + 1]
            order = np.argsort(records["value"], kind="stable")
            ranked = records["ind"][order]

            picked = 0
            for ind in ranked[::-1]:
                if neighbor_picked[ind] or not curvature[ind] > edge_threshold:
                    continue
                picked += 1
                if picked > MAX_CORNERS_PER_SECTOR:
                    break
                label[ind] = LABEL_CORNER
                corners.append(int(ind))
                suppress_neighbors(ind, column_index, neighbor_picked)

            for ind in ranked:
                if neighbor_picked[ind] or not curvature[ind] < surf_threshold:
                    continue
                label[ind] = LABEL_SURFACE
                suppress_neighbors(ind, column_index, neighbor_picked)

            sector_idx = np.arange(sp, ep + 1)
            ring_surface.extend(sector_idx[label[sp:ep + 1] <= 0].tolist())

        if ring_surface:
            points["tag"][ring_surface] = FeatureTag.SURFACE
            surface_rings.append(voxel_downsample(points[ring_surface], leaf_size))

    if corners:
        points["tag"][corners] = FeatureTag.CORNER
        features.corner = points[corners].copy()
    if surface_rings:
        features.surface = np.concatenate(surface_rings)
    logger.debug(
        "Selected %d corner and %d surface features", len(features.corner), len(features.surface)
    )
    return features


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q
