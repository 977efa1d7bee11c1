"""
sensors/ouster.py

Ouster point records.

The ``t`` field is nanoseconds since the start of the scan.  The firmware
occasionally reports a bogus ``t`` on the very last point of a scan, so the
scan duration is read from the second-to-last point.
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

OUSTER_POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("t", np.uint32),
        ("reflectivity", np.uint16),
        ("ring", np.uint8),
        ("ambient", np.uint16),
        ("range", np.uint32),
    ]
)

_NS_TO_S = 1e-9
_TIME_FIELD = "t"


def normalize_ouster(frame: RawFrame) -> CanonicalScan:
    """Convert an Ouster frame to canonical points.

    ``time`` is ``t / duration`` with the duration in nanoseconds; the scan
    end is the stamp plus the duration converted to seconds.  A frame without
    ``t`` gets ``time = 0`` and ends at the stamp.
    """
    points = frame.points
    out = to_canonical(points)
    n = len(points)
    times = native_times(frame, _TIME_FIELD)
    if n == 0 or times is None:
        return CanonicalScan(out, frame.stamp, frame.stamp)

    duration = usable_duration(times[max(n - 2, 0)])
    out["time"] = relative_time(times, duration)
    return CanonicalScan(out, frame.stamp, frame.stamp + duration * _NS_TO_S, duration)


def load_ouster_bin(path: str | os.PathLike) -> np.ndarray:
    """Load a file of packed :data:`OUSTER_POINT_DTYPE` records."""
    return read_records(path, OUSTER_POINT_DTYPE, "Ouster")


OUSTER = SensorModel(
    time_field=_TIME_FIELD,
    normalize=normalize_ouster,
)
