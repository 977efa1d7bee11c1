"""
extractor.py

Per-scan feature extraction pipeline.

:class:`FeatureExtractor` runs one scan at a time through

    normalize → project → compact → smoothness → occlusion → features

and returns a :class:`CloudInfo` with the corner, surface and full extracted
clouds plus the per-ring bookkeeping consumed by lidar odometry.  Scratch
buffers are sized once from the configuration and cleared at the start of
every scan; nothing else carries over between scans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from lidar_features.config import FeatureExtractConfig
from lidar_features.features import FeatureSets, extract_features
from lidar_features.occlusion import mark_occluded_points
from lidar_features.points import RawFrame
from lidar_features.projection import RangeImage, extract_cloud, project_points
from lidar_features.sensors import normalize_frame
from lidar_features.smoothness import calculate_smoothness

logger = logging.getLogger(__name__)


class ScanBuffers:
    """Per-index scratch arrays shared by the pipeline stages of one scan.

    Args:
        capacity: Maximum number of extracted points (``n_scan *
            horizon_scan``).
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = int(capacity)
        self.curvature = np.zeros(self.capacity, dtype=np.float64)
        self.neighbor_picked = np.zeros(self.capacity, dtype=bool)
        self.label = np.zeros(self.capacity, dtype=np.int8)

    def reset(self, n: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Clear the first *n* entries and return views of them.

        Returns:
            ``(curvature, neighbor_picked, label)`` views of length *n*.
        """
        if n > self.capacity:
            raise ValueError(f"Scan of {n} points exceeds buffer capacity {self.capacity}.")
        self.curvature[:n] = 0.0
        self.neighbor_picked[:n] = False
        self.label[:n] = 0
        return self.curvature[:n], self.neighbor_picked[:n], self.label[:n]


@dataclass
class CloudInfo:
    """Result of one scan.

    Attributes:
        stamp: Scan base timestamp (seconds).
        scan_end_time: Timestamp of the end of the scan (seconds).
        start_ring_index: First usable extracted index per ring.
        end_ring_index: Last usable extracted index per ring.
        point_col_ind: Range image column of each extracted point.
        point_range: Range of each extracted point.
        cloud_corner: Corner features.
        cloud_surface: Downsampled surface features.
        cloud_extracted: Every extracted point, tagged with its feature type.
        frame_id: Coordinate frame of the clouds.
    """

    stamp: float
    scan_end_time: float
    start_ring_index: np.ndarray
    end_ring_index: np.ndarray
    point_col_ind: np.ndarray
    point_range: np.ndarray
    cloud_corner: np.ndarray
    cloud_surface: np.ndarray
    cloud_extracted: np.ndarray
    frame_id: str = "base_link"

    @property
    def corner_count(self) -> int:
        return len(self.cloud_corner)

    @property
    def surface_count(self) -> int:
        return len(self.cloud_surface)


class FeatureExtractor:
    """Extracts edge and surface features from raw LiDAR scans.

    Args:
        config: Extraction parameters.  Read-only for the extractor's
            lifetime.

    Example::

        extractor = FeatureExtractor(FeatureExtractConfig.from_yaml("params.yaml"))
        info = extractor.process(RawFrame("velodyne", points, stamp=t))
        corners, surfaces = info.cloud_corner, info.cloud_surface

    Only one scan may be in flight per extractor; use one extractor per
    thread to process scans concurrently.
    """

    def __init__(self, config: FeatureExtractConfig) -> None:
        self._config = config
        self._image = RangeImage.allocate(config.n_scan, config.horizon_scan)
        self._buffers = ScanBuffers(config.capacity)
        self._features = FeatureSets()
        logger.info(
            "Feature extraction started: sensor=%s grid=%dx%d",
            config.sensor.value,
            config.n_scan,
            config.horizon_scan,
        )

    @property
    def config(self) -> FeatureExtractConfig:
        return self._config

    def process(self, frame: RawFrame) -> CloudInfo:
        """Run the full pipeline on one raw frame.

        Raises:
            FatalConfigurationError: If the frame reveals a configuration
                fault (see :func:`~lidar_features.sensors.normalize_frame`).
        """
        cfg = self._config
        scan = normalize_frame(frame, cfg.sensor)

        project_points(
            scan.points,
            cfg.n_scan,
            cfg.horizon_scan,
            downsample_rate=cfg.downsample_rate,
            min_range=cfg.lidar_min_range,
            max_range=cfg.lidar_max_range,
            sequential=cfg.sensor.model.sequential_columns,
            image=self._image,
        )
        cloud = extract_cloud(self._image)

        curvature, neighbor_picked, label = self._buffers.reset(len(cloud))
        smoothness = calculate_smoothness(cloud.range, curvature)
        mark_occluded_points(cloud.range, cloud.column_index, neighbor_picked)
        features = extract_features(
            cloud,
            smoothness,
            curvature,
            neighbor_picked,
            label,
            edge_threshold=cfg.edge_threshold,
            surf_threshold=cfg.surf_threshold,
            leaf_size=cfg.odometry_surf_leaf_size,
            features=self._features,
        )

        info = CloudInfo(
            stamp=scan.scan_start,
            scan_end_time=scan.scan_end,
            start_ring_index=cloud.start_ring_index.copy(),
            end_ring_index=cloud.end_ring_index.copy(),
            point_col_ind=cloud.column_index.copy(),
            point_range=cloud.range.copy(),
            cloud_corner=features.corner.copy(),
            cloud_surface=features.surface.copy(),
            cloud_extracted=cloud.points,
            frame_id=cfg.lidar_frame,
        )
        logger.debug(
            "Scan %.6f: %d input, %d extracted, %d corner, %d surface",
            scan.scan_start,
            len(scan),
            len(cloud),
            info.corner_count,
            info.surface_count,
        )
        self._check_feature_counts(info)
        return info

    def _check_feature_counts(self, info: CloudInfo) -> None:
        cfg = self._config
        if info.corner_count < cfg.edge_feature_min_valid_num:
            logger.warning(
                "Only %d corner features extracted (expected at least %d)",
                info.corner_count,
                cfg.edge_feature_min_valid_num,
            )
        if info.surface_count < cfg.surf_feature_min_valid_num:
            logger.warning(
                "Only %d surface features extracted (expected at least %d)",
                info.surface_count,
                cfg.surf_feature_min_valid_num,
            )
