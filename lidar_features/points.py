"""
points.py

Point containers shared by every pipeline stage.

All clouds are structured numpy arrays.  The canonical layout produced by the
sensor normalizers is :data:`CANONICAL_POINT_DTYPE`:

==========  =======  ==================================================
Field       Type     Description
==========  =======  ==================================================
x, y, z     float32  Cartesian coordinates in the sensor frame (metres)
intensity   float32  Return intensity as reported by the sensor
ring        uint16   Laser channel (scan line) index
time        float32  Time within the scan, normalised by scan duration
tag         float32  Feature tag: 0 none, 1 corner, 2 surface
==========  =======  ==================================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

CANONICAL_POINT_DTYPE = np.dtype(
    [
        ("x", np.float32),
        ("y", np.float32),
        ("z", np.float32),
        ("intensity", np.float32),
        ("ring", np.uint16),
        ("time", np.float32),
        ("tag", np.float32),
    ]
)


class FeatureTag(enum.IntEnum):
    """Values written to the ``tag`` field of output points."""

    NONE = 0
    CORNER = 1
    SURFACE = 2


@dataclass
class RawFrame:
    """One scan as delivered by the transport, still in sensor-native layout.

    Attributes:
        sensor: Sensor kind (a :class:`~lidar_features.sensors.SensorKind` or
            its string name).
        points: Structured numpy array in the sensor's native dtype.
        stamp: Scan base timestamp in seconds.
        is_dense: Whether the sender guarantees the cloud holds no invalid
            points.  When ``None`` it is derived from the data (every
            coordinate finite).
        fields: Names of the point fields present on the wire.  Defaults to
            the field names of *points*.
    """

    sensor: object
    points: np.ndarray
    stamp: float = 0.0
    is_dense: Optional[bool] = None
    fields: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points)
        if self.points.dtype.names is None:
            raise ValueError(
                f"RawFrame points must be a structured array, got dtype {self.points.dtype}."
            )
        if not self.fields:
            self.fields = tuple(self.points.dtype.names)
        if self.is_dense is None:
            self.is_dense = bool(finite_mask(self.points).all())

    def __len__(self) -> int:
        return len(self.points)

    def has_field(self, name: str) -> bool:
        return name in self.fields


@dataclass
class CanonicalScan:
    """Output of the point normalizer.

    Attributes:
        points: Array of :data:`CANONICAL_POINT_DTYPE`.
        scan_start: Scan base timestamp in seconds.
        scan_end: Timestamp of the end of the scan in seconds.
        scan_duration: Divisor used to normalise per-point time, in the
            sensor's native time unit.  ``0.0`` when the time channel was
            degenerate.
    """

    points: np.ndarray
    scan_start: float
    scan_end: float
    scan_duration: float = 0.0

    def __len__(self) -> int:
        return len(self.points)


def empty_cloud(n: int = 0) -> np.ndarray:
    """Return a zero-initialised canonical cloud of *n* points."""
    return np.zeros(n, dtype=CANONICAL_POINT_DTYPE)


def finite_mask(points: np.ndarray) -> np.ndarray:
    """Boolean mask of points whose ``x``, ``y`` and ``z`` are all finite."""
    return (
        np.isfinite(points["x"]) & np.isfinite(points["y"]) & np.isfinite(points["z"])
    )


def xyz(points: np.ndarray) -> np.ndarray:
    """Return an ``(N, 3)`` float array of ``[x, y, z]`` coordinates."""
    return np.column_stack([points["x"], points["y"], points["z"]])
