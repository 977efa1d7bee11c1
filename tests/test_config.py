"""Tests for FeatureExtractConfig."""

import logging
import os
import tempfile
from pathlib import Path

import pytest
import yaml

from lidar_features.config import FeatureExtractConfig
from lidar_features.errors import FatalConfigurationError
from lidar_features.sensors import SensorKind


class TestDefaults:
    def test_defaults(self):
        cfg = FeatureExtractConfig(sensor="velodyne")
        assert cfg.sensor is SensorKind.VELODYNE
        assert cfg.n_scan == 16
        assert cfg.horizon_scan == 1800
        assert cfg.downsample_rate == 1
        assert cfg.lidar_min_range == pytest.approx(1.0)
        assert cfg.lidar_max_range == pytest.approx(1000.0)
        assert cfg.edge_threshold == pytest.approx(0.1)
        assert cfg.surf_threshold == pytest.approx(0.1)
        assert cfg.edge_feature_min_valid_num == 10
        assert cfg.surf_feature_min_valid_num == 100
        assert cfg.odometry_surf_leaf_size == pytest.approx(0.2)
        assert cfg.lidar_frame == "base_link"

    def test_capacity(self):
        assert FeatureExtractConfig(sensor="ouster", n_scan=64, horizon_scan=1024).capacity == 65536

    def test_frozen(self):
        cfg = FeatureExtractConfig(sensor="livox")
        with pytest.raises(AttributeError):
            cfg.n_scan = 32


class TestValidation:
    def test_unknown_sensor_is_fatal(self):
        with pytest.raises(FatalConfigurationError):
            FeatureExtractConfig(sensor="")

    @pytest.mark.parametrize("field", ["n_scan", "horizon_scan", "downsample_rate"])
    def test_non_positive_grid(self, field):
        with pytest.raises(ValueError, match=field):
            FeatureExtractConfig(sensor="velodyne", **{field: 0})

    def test_inverted_range_limits(self):
        with pytest.raises(ValueError, match="range limits"):
            FeatureExtractConfig(sensor="velodyne", lidar_min_range=10.0, lidar_max_range=5.0)

    def test_bad_leaf_size(self):
        with pytest.raises(ValueError, match="leaf_size"):
            FeatureExtractConfig(sensor="velodyne", odometry_surf_leaf_size=0.0)


class TestSerialisation:
    def setup_method(self):
        self.tmp = tempfile.NamedTemporaryFile(suffix=".yaml", delete=False)
        self.tmp.close()
        self.path = self.tmp.name

    def teardown_method(self):
        os.unlink(self.path)

    def test_from_nested_yaml(self):
        Path(self.path).write_text(
            "feature_extract:\n"
            "  sensor: ouster\n"
            "  N_SCAN: 64\n"
            "  Horizon_SCAN: 1024\n"
            "  downsampleRate: 2\n"
            "  lidarMinRange: 0.5\n"
            "  edgeThreshold: 1.0\n"
            "  odometrySurfLeafSize: 0.4\n"
            "  lidarFrame: os_sensor\n"
        )
        cfg = FeatureExtractConfig.from_yaml(self.path)
        assert cfg.sensor is SensorKind.OUSTER
        assert cfg.n_scan == 64
        assert cfg.horizon_scan == 1024
        assert cfg.downsample_rate == 2
        assert cfg.lidar_min_range == pytest.approx(0.5)
        assert cfg.edge_threshold == pytest.approx(1.0)
        assert cfg.odometry_surf_leaf_size == pytest.approx(0.4)
        assert cfg.lidar_frame == "os_sensor"
        # Unspecified keys keep their defaults.
        assert cfg.surf_threshold == pytest.approx(0.1)

    def test_from_flat_dict(self):
        cfg = FeatureExtractConfig.from_dict({"sensor": "livox", "N_SCAN": "6"})
        assert cfg.sensor is SensorKind.LIVOX
        assert cfg.n_scan == 6

    def test_missing_sensor(self, caplog):
        with caplog.at_level(logging.ERROR, logger="lidar_features.sensors"):
            with pytest.raises(FatalConfigurationError, match="Invalid sensor type"):
                FeatureExtractConfig.from_dict({"N_SCAN": 16})
        assert "Invalid sensor type" in caplog.text

    def test_empty_yaml_is_fatal(self):
        Path(self.path).write_text("")
        with pytest.raises(FatalConfigurationError):
            FeatureExtractConfig.from_yaml(self.path)

    def test_yaml_roundtrip(self):
        cfg = FeatureExtractConfig(sensor="robosense", n_scan=32, surf_threshold=0.05)
        cfg.to_yaml(self.path)
        assert FeatureExtractConfig.from_yaml(self.path) == cfg

    def test_to_dict_layout(self):
        data = FeatureExtractConfig(sensor="velodyne").to_dict()
        assert data["feature_extract"]["sensor"] == "velodyne"
        assert data["feature_extract"]["Horizon_SCAN"] == 1800
        assert yaml.safe_load(yaml.dump(data)) == data
