"""Tests for range image projection and per-ring compaction."""

import numpy as np
import pytest

from lidar_features.points import CANONICAL_POINT_DTYPE, empty_cloud
from lidar_features.projection import (
    EMPTY_RANGE,
    ExtractedCloud,
    RangeImage,
    azimuth_columns,
    extract_cloud,
    point_range,
    project_points,
    sequential_columns,
    _round_half_away,
)


def _cloud(rows) -> np.ndarray:
    """Build a canonical cloud from ``(x, y, z, ring)`` tuples."""
    pts = empty_cloud(len(rows))
    for i, (x, y, z, ring) in enumerate(rows):
        pts[i]["x"], pts[i]["y"], pts[i]["z"], pts[i]["ring"] = x, y, z, ring
    pts["intensity"] = np.arange(len(rows), dtype=np.float32)
    return pts


class TestAzimuthColumns:
    def test_cardinal_directions(self):
        # 360 columns, 1° resolution
        pts = _cloud([(0.0, 5.0, 0.0, 0), (5.0, 0.0, 0.0, 0),
                      (0.0, -5.0, 0.0, 0), (-5.0, 0.0, 0.0, 0)])
        np.testing.assert_array_equal(azimuth_columns(pts, 360), [270, 180, 90, 0])

    def test_columns_in_range(self):
        angles = np.linspace(-np.pi, np.pi, 721)
        pts = _cloud([(np.sin(a) * 10, np.cos(a) * 10, 0.0, 0) for a in angles])
        cols = azimuth_columns(pts, 1800)
        assert cols.min() >= 0
        assert cols.max() < 1800

    def test_round_half_away_from_zero(self):
        np.testing.assert_array_equal(
            _round_half_away(np.array([0.5, 1.5, 2.5, -0.5, -1.5, 0.49])),
            [1.0, 2.0, 3.0, -1.0, -2.0, 0.0],
        )


class TestSequentialColumns:
    def test_per_ring_counter(self):
        np.testing.assert_array_equal(sequential_columns(np.array([0, 1, 0, 0, 1, 2])),
                                      [0, 0, 1, 2, 1, 0])

    def test_empty(self):
        assert sequential_columns(np.array([], dtype=np.int64)).size == 0


class TestProjectPoints:
    def test_range_filter(self):
        pts = _cloud([(0.5, 0.0, 0.0, 0), (5.0, 0.0, 0.0, 0), (2000.0, 0.0, 0.0, 0)])
        image = project_points(pts, 1, 360, min_range=1.0, max_range=1000.0)
        assert image.occupied.sum() == 1
        assert image.range[0, 180] == pytest.approx(5.0)

    def test_range_limits_inclusive(self):
        pts = _cloud([(1.0, 0.0, 0.0, 0), (0.0, 4.0, 0.0, 0)])
        image = project_points(pts, 1, 360, min_range=1.0, max_range=4.0)
        assert image.occupied.sum() == 2

    def test_ring_out_of_bounds_dropped(self):
        pts = _cloud([(5.0, 0.0, 0.0, 3), (5.0, 0.0, 0.0, 4)])
        image = project_points(pts, 4, 360)
        assert image.occupied.sum() == 1
        assert image.occupied[3, 180]

    def test_row_decimation(self):
        pts = _cloud([(5.0, 0.0, 0.0, r) for r in range(4)])
        image = project_points(pts, 4, 360, downsample_rate=2)
        np.testing.assert_array_equal(image.occupied[:, 180], [True, False, True, False])

    def test_first_writer_wins(self):
        pts = _cloud([(5.0, 0.0, 0.0, 0), (3.0, 0.0, 0.0, 0)])
        image = project_points(pts, 1, 360)
        assert image.range[0, 180] == pytest.approx(5.0)
        assert image.points[180]["intensity"] == 0.0

    def test_point_buffer_layout(self):
        pts = _cloud([(0.0, 5.0, 0.0, 2)])
        image = project_points(pts, 4, 360)
        assert image.points[270 + 2 * 360]["y"] == pytest.approx(5.0)

    def test_sequential_columns(self):
        pts = _cloud([(5.0, 0.0, 0.0, 0), (5.0, 0.0, 0.0, 0), (5.0, 0.0, 0.0, 1)])
        image = project_points(pts, 2, 10, sequential=True)
        np.testing.assert_array_equal(image.occupied[0, :3], [True, True, False])
        assert image.occupied[1, 0]

    def test_sequential_overflow_dropped(self):
        pts = _cloud([(5.0, 0.0, 0.0, 0)] * 12)
        image = project_points(pts, 1, 10, sequential=True)
        assert image.occupied.sum() == 10

    def test_sequential_counter_skips_filtered_points(self):
        pts = _cloud([(0.1, 0.0, 0.0, 0), (5.0, 0.0, 0.0, 0)])
        image = project_points(pts, 1, 10, sequential=True)
        assert image.occupied[0, 0]
        assert not image.occupied[0, 1]

    def test_reuses_and_resets_image(self):
        image = RangeImage.allocate(1, 360)
        project_points(_cloud([(5.0, 0.0, 0.0, 0)]), 1, 360, image=image)
        project_points(_cloud([(0.0, 5.0, 0.0, 0)]), 1, 360, image=image)
        assert image.range[0, 180] == EMPTY_RANGE
        assert image.occupied.sum() == 1

    def test_wrong_image_shape_raises(self):
        with pytest.raises(ValueError, match="shape"):
            project_points(empty_cloud(), 2, 360, image=RangeImage.allocate(1, 360))

    def test_wrong_dtype_raises(self):
        with pytest.raises(ValueError, match="CANONICAL_POINT_DTYPE"):
            project_points(np.zeros(3, dtype=[("x", np.float32)]), 1, 360)


class TestExtractCloud:
    def setup_method(self):
        image = RangeImage.allocate(3, 100)
        # ring 0: 20 points, ring 1: empty, ring 2: 8 points
        for ring, cols in ((0, range(0, 40, 2)), (2, range(50, 58))):
            for c in cols:
                image.range[ring, c] = 10.0 + c
                image.points[c + ring * 100]["x"] = c
        self.cloud = extract_cloud(image)

    def test_length(self):
        assert len(self.cloud) == 28

    def test_ring_bounds(self):
        np.testing.assert_array_equal(self.cloud.start_ring_index, [5, 25, 25])
        np.testing.assert_array_equal(self.cloud.end_ring_index, [14, 14, 22])

    def test_inverted_spans(self):
        assert self.cloud.ring_is_valid(0)
        assert not self.cloud.ring_is_valid(1)
        assert not self.cloud.ring_is_valid(2)

    def test_columns_and_ranges(self):
        np.testing.assert_array_equal(self.cloud.column_index[:3], [0, 2, 4])
        np.testing.assert_array_equal(self.cloud.column_index[20:], range(50, 58))
        np.testing.assert_allclose(self.cloud.range[:3], [10.0, 12.0, 14.0])

    def test_columns_non_decreasing_within_ring(self):
        assert np.all(np.diff(self.cloud.column_index[:20]) > 0)

    def test_points_follow_cells(self):
        np.testing.assert_allclose(self.cloud.points["x"][20:], range(50, 58))

    def test_points_are_a_copy(self):
        assert self.cloud.points.dtype == CANONICAL_POINT_DTYPE
        assert isinstance(self.cloud, ExtractedCloud)


def test_point_range():
    pts = _cloud([(3.0, 4.0, 0.0, 0), (0.0, 0.0, -2.0, 0)])
    np.testing.assert_allclose(point_range(pts), [5.0, 2.0])
