"""
sensors/robosense.py

RoboSense point records.

Every point carries an absolute ``timestamp`` in seconds and the driver
emits NaN coordinates for missing returns.  Those points are dropped here,
which is why this sensor kind is never rejected as non-dense.  The frame
stamp published by the driver is the time of the *last* point, so it is
already the end of the scan.
"""

from __future__ import annotations

import os

import numpy as np

from lidar_features.points import CanonicalScan, RawFrame, finite_mask
from lidar_features.sensors.common import (
    SensorModel,
    read_records,
    native_times,
    relative_time,
    to_canonical,
    usable_duration,
)

ROBOSENSE_POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("ring", np.uint16),
        ("timestamp", np.float64),
    ]
)

_TIME_FIELD = "timestamp"


def normalize_robosense(frame: RawFrame) -> CanonicalScan:
    """Convert a RoboSense frame to canonical points, dropping NaN points.

    The duration is measured over the whole raw frame (first to last point,
    valid or not) and ``time`` is the offset from the first point divided
    by it.  Without a ``timestamp`` field every point gets ``time = 0``.
    """
    points = frame.points
    if len(points) == 0:
        return CanonicalScan(to_canonical(points), frame.stamp, frame.stamp)

    valid_mask = finite_mask(points)
    out = to_canonical(points[valid_mask])
    times = native_times(frame, _TIME_FIELD)
    if times is None:
        return CanonicalScan(out, frame.stamp, frame.stamp)

    first = float(times[0])
    duration = usable_duration(float(times[-1]) - first)
    out["time"] = relative_time(times[valid_mask] - first, duration)
    return CanonicalScan(out, frame.stamp, frame.stamp, duration)


def load_robosense_bin(path: str | os.PathLike) -> np.ndarray:
    """Load a file of packed :data:`ROBOSENSE_POINT_DTYPE` records."""
    return read_records(path, ROBOSENSE_POINT_DTYPE, "RoboSense")


ROBOSENSE = SensorModel(
    time_field=_TIME_FIELD,
    normalize=normalize_robosense,
    requires_dense=False,
)
