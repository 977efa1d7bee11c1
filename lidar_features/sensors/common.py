"""
sensors/common.py

Helpers shared by the per-sensor normalizers.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from lidar_features.points import CANONICAL_POINT_DTYPE, CanonicalScan, RawFrame


@dataclass(frozen=True)
class SensorModel:
    """Everything the pipeline needs to know about one sensor kind.

    Attributes:
        time_field: Native per-point time field.  Frames without it get a
            neutral relative time.
        normalize: Converts a :class:`RawFrame` into a :class:`CanonicalScan`.
        requires_dense: Whether a non-dense frame is a fatal fault.
        sequential_columns: Whether range-image columns are assigned by
            per-ring arrival order instead of by azimuth.
    """

    time_field: str
    normalize: Callable[[RawFrame], CanonicalScan]
    requires_dense: bool = True
    sequential_columns: bool = False


def to_canonical(points: np.ndarray) -> np.ndarray:
    """Copy the sensor-independent fields of *points* into a canonical cloud.

    ``time`` and ``tag`` are left at zero.
    """
    out = np.zeros(len(points), dtype=CANONICAL_POINT_DTYPE)
    for name in ("x", "y", "z", "intensity", "ring"):
        out[name] = points[name]
    return out


def native_times(frame: RawFrame, field: str) -> Optional[np.ndarray]:
    """Return the *field* column of *frame*, or ``None`` when it was not sent."""
    if not frame.has_field(field) or field not in (frame.points.dtype.names or ()):
        return None
    return frame.points[field]


def usable_duration(duration: float) -> float:
    """Return *duration*, or ``0.0`` when it cannot be used as a divisor."""
    duration = float(duration)
    if not math.isfinite(duration) or duration <= 0.0:
        return 0.0
    return duration


def relative_time(times: np.ndarray, duration: float) -> np.ndarray:
    """Normalise per-point *times* by *duration*.

    A degenerate duration (see :func:`usable_duration`) yields zeros.
    """
    times = np.asarray(times, dtype=np.float64)
    if duration <= 0.0:
        return np.zeros(times.shape, dtype=np.float32)
    return (times / duration).astype(np.float32)


def read_records(path: str | os.PathLike, dtype: np.dtype, label: str) -> np.ndarray:
    """Read a file of packed *dtype* records.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file size is not a multiple of the record size.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} binary file not found: {path}")
    file_size = path.stat().st_size
    if file_size % dtype.itemsize != 0:
        raise ValueError(
            f"Cannot read {label} binary file: size {file_size} bytes is not "
            f"divisible by the record size ({dtype.itemsize} bytes)."
        )
    return np.fromfile(path, dtype=dtype)
