"""
lidar_features.sensors

Per-sensor point normalizers for Velodyne, Ouster, RoboSense and Livox
LiDARs.  Each sensor kind is described by a
:class:`~lidar_features.sensors.common.SensorModel`; adding a sensor means
adding one module and one :class:`SensorKind` member.
"""

from __future__ import annotations

import enum
import logging

from lidar_features.errors import FatalConfigurationError
from lidar_features.points import CanonicalScan, RawFrame
from lidar_features.sensors.common import SensorModel
from lidar_features.sensors.livox import LIVOX, LIVOX_POINT_DTYPE, load_livox_bin, normalize_livox
from lidar_features.sensors.ouster import OUSTER, OUSTER_POINT_DTYPE, load_ouster_bin, normalize_ouster
from lidar_features.sensors.robosense import (
    ROBOSENSE,
    ROBOSENSE_POINT_DTYPE,
    load_robosense_bin,
    normalize_robosense,
)
from lidar_features.sensors.velodyne import (
    VELODYNE,
    VELODYNE_POINT_DTYPE,
    load_velodyne_bin,
    normalize_velodyne,
)

logger = logging.getLogger(__name__)


class SensorKind(str, enum.Enum):
    VELODYNE = "velodyne"
    OUSTER = "ouster"
    ROBOSENSE = "robosense"
    LIVOX = "livox"

    @property
    def model(self) -> SensorModel:
        return _MODELS[self]


_MODELS = {
    SensorKind.VELODYNE: VELODYNE,
    SensorKind.OUSTER: OUSTER,
    SensorKind.ROBOSENSE: ROBOSENSE,
    SensorKind.LIVOX: LIVOX,
}


def resolve_sensor(sensor) -> SensorKind:
    """Return the :class:`SensorKind` named by *sensor*.

    Raises:
        FatalConfigurationError: If *sensor* is not a known sensor kind.
    """
    if isinstance(sensor, SensorKind):
        return sensor
    try:
        return SensorKind(str(sensor).lower())
    except ValueError:
        known = "', '".join(kind.value for kind in SensorKind)
        logger.error("Invalid sensor type (must be one of '%s'): %r", known, sensor)
        raise FatalConfigurationError(
            f"Invalid sensor type {sensor!r}; must be one of '{known}'."
        ) from None


def normalize_frame(frame: RawFrame, sensor=None) -> CanonicalScan:
    """Convert *frame* to canonical points with relative per-point time.

    Args:
        frame: Raw frame in sensor-native layout.
        sensor: Sensor kind to interpret the frame as.  Defaults to
            ``frame.sensor``.

    Raises:
        FatalConfigurationError: If the sensor kind is unknown, the frame has
            no ``ring`` channel, or the frame is not dense for a sensor kind
            that must deliver dense clouds.
    """
    kind = resolve_sensor(frame.sensor if sensor is None else sensor)
    model = kind.model

    if not frame.has_field("ring"):
        logger.error("Point cloud ring channel not available for %s frame", kind.value)
        raise FatalConfigurationError(
            "Point cloud ring channel not available, please configure your point cloud data."
        )
    if model.requires_dense and not frame.is_dense:
        logger.error("Point cloud from %s is not in dense format", kind.value)
        raise FatalConfigurationError(
            "Point cloud is not in dense format, please remove NaN points first."
        )
    if not frame.has_field(model.time_field):
        logger.debug(
            "%s frame has no '%s' field; using zero per-point time", kind.value, model.time_field
        )

    return model.normalize(frame)


__all__ = [
    "SensorKind",
    "SensorModel",
    "resolve_sensor",
    "normalize_frame",
    "VELODYNE_POINT_DTYPE",
    "OUSTER_POINT_DTYPE",
    "ROBOSENSE_POINT_DTYPE",
    "LIVOX_POINT_DTYPE",
    "normalize_velodyne",
    "normalize_ouster",
    "normalize_robosense",
    "normalize_livox",
    "load_velodyne_bin",
    "load_ouster_bin",
    "load_robosense_bin",
    "load_livox_bin",
]
