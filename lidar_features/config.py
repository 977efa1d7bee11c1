"""
config.py

Feature extraction parameters.

The configuration can be loaded from and saved to YAML.  Keys follow the
parameter names used in ROS launch files, either at the top level or nested
under a ``feature_extract`` section::

    feature_extract:
      sensor: velodyne
      N_SCAN: 16
      Horizon_SCAN: 1800
      downsampleRate: 1
      lidarMinRange: 1.0
      lidarMaxRange: 1000.0
      edgeThreshold: 0.1
      surfThreshold: 0.1
      edgeFeatureMinValidNum: 10
      surfFeatureMinValidNum: 100
      odometrySurfLeafSize: 0.2
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from lidar_features.sensors import SensorKind, resolve_sensor

_SECTION = "feature_extract"

# attribute name -> YAML key
_KEYS = {
    "sensor": "sensor",
    "n_scan": "N_SCAN",
    "horizon_scan": "Horizon_SCAN",
    "downsample_rate": "downsampleRate",
    "lidar_min_range": "lidarMinRange",
    "lidar_max_range": "lidarMaxRange",
    "edge_threshold": "edgeThreshold",
    "surf_threshold": "surfThreshold",
    "edge_feature_min_valid_num": "edgeFeatureMinValidNum",
    "surf_feature_min_valid_num": "surfFeatureMinValidNum",
    "odometry_surf_leaf_size": "odometrySurfLeafSize",
    "lidar_frame": "lidarFrame",
}


@dataclass(frozen=True)
class FeatureExtractConfig:
    """Read-only parameters of a :class:`~lidar_features.extractor.FeatureExtractor`.

    Attributes:
        sensor: Sensor kind delivering the scans.
        n_scan: Number of rings of the range image.
        horizon_scan: Number of columns of the range image.
        downsample_rate: Only rings divisible by this factor are used.
        lidar_min_range: Minimum valid point range (metres).
        lidar_max_range: Maximum valid point range (metres).
        edge_threshold: Minimum curvature of a corner feature.
        surf_threshold: Maximum curvature of a surface seed.
        edge_feature_min_valid_num: Expected minimum corner count per scan.
            Advisory only.
        surf_feature_min_valid_num: Expected minimum surface count per scan.
            Advisory only.
        odometry_surf_leaf_size: Voxel size for thinning surface features.
        lidar_frame: Frame id attached to the output clouds.
    """

    sensor: SensorKind
    n_scan: int = 16
    horizon_scan: int = 1800
    downsample_rate: int = 1
    lidar_min_range: float = 1.0
    lidar_max_range: float = 1000.0
    edge_threshold: float = 0.1
    surf_threshold: float = 0.1
    edge_feature_min_valid_num: int = 10
    surf_feature_min_valid_num: int = 100
    odometry_surf_leaf_size: float = 0.2
    lidar_frame: str = "base_link"

    def __post_init__(self) -> None:
        object.__setattr__(self, "sensor", resolve_sensor(self.sensor))
        for name in ("n_scan", "horizon_scan", "downsample_rate"):
            if int(getattr(self, name)) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}.")
        if not 0.0 <= self.lidar_min_range <= self.lidar_max_range:
            raise ValueError(
                f"Invalid range limits: min {self.lidar_min_range}, max {self.lidar_max_range}."
            )
        if self.odometry_surf_leaf_size <= 0.0:
            raise ValueError(
                f"odometry_surf_leaf_size must be positive, got {self.odometry_surf_leaf_size}."
            )

    @property
    def capacity(self) -> int:
        """Number of cells in the range image."""
        return self.n_scan * self.horizon_scan

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            _SECTION: {
                "sensor": self.sensor.value,
                "N_SCAN": int(self.n_scan),
                "Horizon_SCAN": int(self.horizon_scan),
                "downsampleRate": int(self.downsample_rate),
                "lidarMinRange": float(self.lidar_min_range),
                "lidarMaxRange": float(self.lidar_max_range),
                "edgeThreshold": float(self.edge_threshold),
                "surfThreshold": float(self.surf_threshold),
                "edgeFeatureMinValidNum": int(self.edge_feature_min_valid_num),
                "surfFeatureMinValidNum": int(self.surf_feature_min_valid_num),
                "odometrySurfLeafSize": float(self.odometry_surf_leaf_size),
                "lidarFrame": str(self.lidar_frame),
            }
        }

    def to_yaml(self, path: str | os.PathLike) -> None:
        """Write the configuration to a YAML file."""
        Path(path).write_text(yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False))

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureExtractConfig":
        section = data.get(_SECTION, data)
        # An absent sensor is rejected like an unknown one.
        kwargs = {"sensor": ""}
        for attr, key in _KEYS.items():
            if key in section:
                kwargs[attr] = section[key]
        for attr in ("n_scan", "horizon_scan", "downsample_rate",
                     "edge_feature_min_valid_num", "surf_feature_min_valid_num"):
            if attr in kwargs:
                kwargs[attr] = int(kwargs[attr])
        for attr in ("lidar_min_range", "lidar_max_range", "edge_threshold",
                     "surf_threshold", "odometry_surf_leaf_size"):
            if attr in kwargs:
                kwargs[attr] = float(kwargs[attr])
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str | os.PathLike) -> "FeatureExtractConfig":
        """Load a configuration from a YAML file."""
        raw = yaml.safe_load(Path(path).read_text())
        return cls.from_dict(raw or {})
