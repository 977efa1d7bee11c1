"""
lidar_features: Edge and surface feature extraction for spinning and
solid-state LiDAR scans, ahead of a lidar odometry / mapping stage.
"""

from lidar_features.config import FeatureExtractConfig
from lidar_features.errors import FatalConfigurationError
from lidar_features.extractor import CloudInfo, FeatureExtractor, ScanBuffers
from lidar_features.points import CANONICAL_POINT_DTYPE, CanonicalScan, FeatureTag, RawFrame
from lidar_features.sensors import SensorKind, normalize_frame
from lidar_features import downsample
from lidar_features import features
from lidar_features import occlusion
from lidar_features import projection
from lidar_features import sensors
from lidar_features import smoothness

__all__ = [
    "FeatureExtractConfig",
    "FatalConfigurationError",
    "CloudInfo",
    "FeatureExtractor",
    "ScanBuffers",
    "CANONICAL_POINT_DTYPE",
    "CanonicalScan",
    "FeatureTag",
    "RawFrame",
    "SensorKind",
    "normalize_frame",
    "downsample",
    "features",
    "occlusion",
    "projection",
    "sensors",
    "smoothness",
]
