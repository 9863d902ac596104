"""Tests for geographic-to-pixel projections.

Verifies that:
1. Equirectangular projection follows the linear formula exactly
2. Points on or outside any view edge are rejected (edges are exclusive)
3. Every accepted point lands inside the raster
4. Orthographic projection centres the view and hides the far hemisphere
"""

import numpy as np
import pytest

from geolapse.projection import (
    EquirectangularProjection,
    OrthographicProjection,
    ViewBox,
    create_projection,
)

WORLD = ViewBox(-180.0, -90.0, 180.0, 90.0)


class TestViewBox:
    """Test view box validation and raster sizing."""

    def test_world_raster_is_twice_as_wide(self):
        assert WORLD.raster_size(2) == (4, 2)
        assert WORLD.raster_size(1800) == (3600, 1800)

    def test_inverted_box_rejected(self):
        with pytest.raises(ValueError, match="right"):
            ViewBox(10.0, 0.0, 5.0, 10.0)
        with pytest.raises(ValueError, match="top"):
            ViewBox(0.0, 10.0, 10.0, 10.0)

    def test_from_string(self):
        view = ViewBox.from_string("-10, 35, 30, 60")
        assert view.as_tuple() == (-10.0, 35.0, 30.0, 60.0)

    def test_from_string_wrong_arity(self):
        with pytest.raises(ValueError, match="left,bottom,right,top"):
            ViewBox.from_string("1,2,3")

    def test_non_positive_height_rejected(self):
        with pytest.raises(ValueError):
            WORLD.raster_size(0)


class TestEquirectangularProjection:
    """Test the linear projection."""

    def test_origin_on_tiny_world_raster(self):
        """Height 2 (width 4): (0, 0) -> x = 2, y = 1 -> index 6."""
        projection = create_projection("equirectangular", WORLD, 2)
        assert (projection.width, projection.height) == (4, 2)
        assert projection.project(0.0, 0.0) == 1 * 4 + 2

    def test_corners_just_inside(self):
        projection = EquirectangularProjection(WORLD, 4, 2)
        assert projection.project(89.9, -179.9) == 0
        assert projection.project(-89.9, 179.9) == 7

    @pytest.mark.parametrize(
        "lat,lon",
        [
            (90.0, 0.0),     # top edge
            (-90.0, 0.0),    # bottom edge
            (0.0, -180.0),   # left edge
            (0.0, 180.0),    # right edge
            (91.0, 0.0),
            (0.0, 200.0),
        ],
    )
    def test_edges_and_outside_are_rejected(self, lat, lon):
        """Edge coordinates are exclusive to keep indices in range."""
        projection = EquirectangularProjection(WORLD, 4, 2)
        assert projection.project(lat, lon) is None

    def test_sub_box_formula(self):
        view = ViewBox(0.0, 0.0, 10.0, 10.0)
        projection = EquirectangularProjection(view, 10, 10)
        # x = int(0.25 * 10) = 2, y = int(0.75 * 10) = 7
        assert projection.project(2.5, 2.5) == 7 * 10 + 2

    def test_all_inside_points_in_range(self):
        rng = np.random.default_rng(0)
        view = ViewBox(-10.0, 35.0, 30.0, 60.0)
        projection = create_projection("equirectangular", view, 97)
        lats = rng.uniform(35.0, 60.0, 5000)
        lons = rng.uniform(-10.0, 30.0, 5000)
        for lat, lon in zip(lats, lons):
            index = projection.project(float(lat), float(lon))
            if index is not None:
                assert 0 <= index < projection.size

    def test_near_edge_points_stay_in_range(self):
        projection = EquirectangularProjection(WORLD, 3600, 1800)
        lat = np.nextafter(-90.0, 0.0)
        lon = np.nextafter(180.0, 0.0)
        index = projection.project(float(lat), float(lon))
        assert index == projection.size - 1

    def test_project_many_matches_scalar(self):
        rng = np.random.default_rng(1)
        projection = EquirectangularProjection(WORLD, 36, 18)
        lats = np.concatenate([rng.uniform(-95, 95, 200), [90.0, -90.0, 0.0]])
        lons = np.concatenate([rng.uniform(-190, 190, 200), [0.0, 0.0, 180.0]])

        batch = projection.project_many(lats, lons)
        for lat, lon, index in zip(lats, lons, batch):
            expected = projection.project(float(lat), float(lon))
            assert index == (-1 if expected is None else expected)


class TestOrthographicProjection:
    """Test the azimuthal projection."""

    @pytest.fixture
    def projection(self):
        view = ViewBox(-20.0, 20.0, 20.0, 60.0)
        return create_projection("orthographic", view, 100)

    def test_factory_builds_orthographic(self, projection):
        assert isinstance(projection, OrthographicProjection)
        assert projection.kind == "orthographic"
        assert (projection.width, projection.height) == (100, 100)

    def test_centroid_maps_to_centre_pixel(self, projection):
        index = projection.project(40.0, 0.0)
        assert index == 50 * 100 + 50

    def test_far_hemisphere_rejected(self, projection):
        assert projection.project(-40.0, 180.0) is None

    def test_north_is_up(self, projection):
        north = projection.project(60.0, 0.0)
        south = projection.project(20.0, 0.0)
        assert north is not None and south is not None
        assert north // 100 < south // 100

    def test_invalid_latitude_rejected(self, projection):
        assert projection.project(91.0, 0.0) is None

    def test_project_many_matches_scalar(self, projection):
        lats = np.array([40.0, -40.0, 60.0, 20.0, 0.0])
        lons = np.array([0.0, 180.0, 0.0, 0.0, 45.0])
        batch = projection.project_many(lats, lons)
        for lat, lon, index in zip(lats, lons, batch):
            expected = projection.project(float(lat), float(lon))
            assert index == (-1 if expected is None else expected)


def test_unknown_projection_rejected():
    with pytest.raises(ValueError, match="Unknown projection"):
        create_projection("mercator", WORLD, 10)
