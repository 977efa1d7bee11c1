"""
sensors/livox.py

Livox point records as republished with ring and time channels.

Livox scans are non-repetitive, so azimuth does not identify a stable
column.  Points of one ring already arrive in scan order and the range image
column is simply the running count of points seen on that ring.
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

LIVOX_POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("tag", np.uint8),
        ("line", np.uint8),
        ("ring", np.uint16),
        ("time", np.float32),
    ]
)

_TIME_FIELD = "time"


def normalize_livox(frame: RawFrame) -> CanonicalScan:
    """Convert a Livox frame to canonical points."""
    points = frame.points
    out = to_canonical(points)
    times = native_times(frame, _TIME_FIELD)
    if len(points) == 0 or times is None:
        return CanonicalScan(out, frame.stamp, frame.stamp)

    duration = usable_duration(times[-1])
    out["time"] = relative_time(times, duration)
    return CanonicalScan(out, frame.stamp, frame.stamp + duration, duration)


def load_livox_bin(path: str | os.PathLike) -> np.ndarray:
    """Load a file of packed :data:`LIVOX_POINT_DTYPE` records."""
    return read_records(path, LIVOX_POINT_DTYPE, "Livox")


LIVOX = SensorModel(
    time_field=_TIME_FIELD,
    normalize=normalize_livox,
    sequential_columns=True,
)
