"""
occlusion.py

Marks extracted points that are unreliable for feature selection.

Two cases are flagged in the shared ``neighbor_picked`` array:

* **Occlusion** – across a range jump of more than 0.3 m between scan-line
  neighbours less than 10 columns apart, the six points on the far side of
  the jump are flagged.
* **Parallel beam** – a point whose range differs from both neighbours by
  more than 2 % of its own range sits on a surface hit at grazing
  incidence.

Flags are only ever set, never cleared.
"""

from __future__ import annotations

import numpy as np

OCCLUSION_DEPTH_GAP = 0.3
OCCLUSION_MAX_COLUMN_GAP = 10
OCCLUSION_WINDOW = 6
PARALLEL_BEAM_RATIO = 0.02


def mark_occluded_points(
    ranges: np.ndarray,
    column_index: np.ndarray,
    neighbor_picked: np.ndarray,
) -> np.ndarray:
    """Flag occluded and parallel-beam points in place.

    Considers every index ``i`` with ``5 <= i < len(ranges) - 6``.

    Args:
        ranges: Extracted point ranges.
        column_index: Extracted point range image columns.
        neighbor_picked: Boolean flag array of at least ``len(ranges)``
            entries, updated in place.

    Returns:
        *neighbor_picked*.
    """
    ranges = np.asarray(ranges)
    n = ranges.shape[0]
    i = np.arange(5, n - 6)
    if i.size == 0:
        return neighbor_picked

    depth1 = ranges[i]
    depth2 = ranges[i + 1]
    column_gap = np.abs(column_index[i + 1].astype(np.int64) - column_index[i].astype(np.int64))
    close = column_gap < OCCLUSION_MAX_COLUMN_GAP

    far_before = i[close & (depth1 - depth2 > OCCLUSION_DEPTH_GAP)]
    far_after = i[close & (depth2 - depth1 > OCCLUSION_DEPTH_GAP)]
    for offset in range(OCCLUSION_WINDOW):
        neighbor_picked[far_before - offset] = True
        neighbor_picked[far_after + 1 + offset] = True

    diff1 = np.abs(ranges[i - 1] - depth1)
    diff2 = np.abs(ranges[i + 1] - depth1)
    threshold = PARALLEL_BEAM_RATIO * depth1
    neighbor_picked[i[(diff1 > threshold) & (diff2 > threshold)]] = True
    return neighbor_picked
