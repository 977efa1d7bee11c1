"""
sensors/velodyne.py

Velodyne point records (``PointXYZIRT`` layout).

Each point carries a ``time`` field holding seconds elapsed since the start
of the scan, so the last point's ``time`` is the scan duration.
"""

from __future__ import annotations

import os

import numpy as np

from lidar_features.points import CanonicalScan, RawFrame
from lidar_features.sensors.common import (
    SensorModel,
    read_records,
    native_times,
    relative_time,
    to_canonical,
    usable_duration,
)

VELODYNE_POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("ring", np.uint16),
        ("time", np.float32),
    ]
)

_TIME_FIELD = "time"


def normalize_velodyne(frame: RawFrame) -> CanonicalScan:
    """Convert a Velodyne frame to canonical points.

    ``time`` is normalised by the last point's time offset and the scan end
    is ``stamp + duration``.  Without a ``time`` field every point gets
    ``time = 0`` and the scan ends at the stamp.
    """
    points = frame.points
    out = to_canonical(points)
    times = native_times(frame, _TIME_FIELD)
    if len(points) == 0 or times is None:
        return CanonicalScan(out, frame.stamp, frame.stamp)

    duration = usable_duration(times[-1])
    out["time"] = relative_time(times, duration)
    return CanonicalScan(out, frame.stamp, frame.stamp + duration, duration)


def load_velodyne_bin(path: str | os.PathLike) -> np.ndarray:
    """Load a file of packed :data:`VELODYNE_POINT_DTYPE` records."""
    return read_records(path, VELODYNE_POINT_DTYPE, "Velodyne")


VELODYNE = SensorModel(
    time_field=_TIME_FIELD,
    normalize=normalize_velodyne,
)
