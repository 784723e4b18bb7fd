"""Tests for point-in-polygon predicates and ring validation."""

import numpy as np
import pytest

from zonesmith.objects.polygonset import PolygonSet
from zonesmith.primitives.geometry import (
    bounding_box,
    locate_point,
    pack_polygons,
    point_in_polygon,
    signed_area,
    validate_polygons,
    validate_ring,
)
from zonesmith.utils.errors import GeometryError, ParameterError

SQUARE = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
HOLE = np.array([[3.0, 3.0], [7.0, 3.0], [7.0, 7.0], [3.0, 7.0]])


class TestLocatePoint:
    """Tests for locate_point."""

    def test_inside_and_outside(self):
        """Test interior and exterior points of a square."""
        assert locate_point((5.0, 5.0), [SQUARE]) == "inside"
        assert locate_point((15.0, 5.0), [SQUARE]) == "outside"
        assert locate_point((-0.1, 5.0), [SQUARE]) == "outside"

    def test_edges_and_vertices_are_boundary(self):
        """Test that points on edges and vertices report boundary."""
        assert locate_point((0.0, 5.0), [SQUARE]) == "boundary"
        assert locate_point((5.0, 10.0), [SQUARE]) == "boundary"
        for vertex in SQUARE:
            assert locate_point(vertex, [SQUARE]) == "boundary"

    def test_diagonal_edge_boundary(self):
        """Test boundary detection on a non-axis-aligned edge."""
        triangle = np.array([[0.0, 0.0], [4.0, 0.0], [0.0, 4.0]])
        assert locate_point((2.0, 2.0), [triangle]) == "boundary"
        assert locate_point((1.0, 1.0), [triangle]) == "inside"
        assert locate_point((3.0, 3.0), [triangle]) == "outside"

    def test_hole_excludes_interior(self):
        """Test that a point in a hole is outside the polygon."""
        rings = [SQUARE, HOLE]
        assert locate_point((5.0, 5.0), rings) == "outside"
        assert locate_point((1.0, 1.0), rings) == "inside"
        assert locate_point((3.0, 5.0), rings) == "boundary"

    def test_multipart_polygon(self):
        """Test that any part of a multipart polygon contains its points."""
        second = SQUARE + 20.0
        rings = [SQUARE, second]
        assert locate_point((25.0, 25.0), rings) == "inside"
        assert locate_point((15.0, 15.0), rings) == "outside"

    def test_concave_polygon(self):
        """Test a U-shaped polygon where the ray crosses several edges."""
        u_shape = np.array(
            [[0, 0], [9, 0], [9, 9], [6, 9], [6, 3], [3, 3], [3, 9], [0, 9]],
            dtype=float,
        )
        assert locate_point((1.5, 8.0), [u_shape]) == "inside"
        assert locate_point((4.5, 8.0), [u_shape]) == "outside"
        assert locate_point((7.5, 8.0), [u_shape]) == "inside"

    def test_ray_through_vertex(self):
        """Test a ray passing exactly through a vertex counts once."""
        diamond = np.array([[5.0, 0.0], [10.0, 5.0], [5.0, 10.0], [0.0, 5.0]])
        assert locate_point((2.0, 5.0), [diamond]) == "inside"
        assert locate_point((-2.0, 5.0), [diamond]) == "outside"

    def test_open_and_closed_rings_agree(self):
        """Test that closing the ring explicitly does not change results."""
        closed = np.vstack([SQUARE, SQUARE[:1]])
        for point in [(5.0, 5.0), (0.0, 0.0), (11.0, 1.0)]:
            assert locate_point(point, [SQUARE]) == locate_point(point, [closed])


class TestPointInPolygon:
    """Tests for point_in_polygon boundary policies."""

    def test_vertex_inside_by_default(self):
        """Test that a vertex counts as inside under the default policy."""
        results = {point_in_polygon((10.0, 10.0), [SQUARE]) for _ in range(20)}
        assert results == {True}

    def test_vertex_outside_policy(self):
        """Test that boundary='outside' excludes boundary points."""
        assert point_in_polygon((10.0, 10.0), [SQUARE], boundary="outside") is False
        assert point_in_polygon((5.0, 5.0), [SQUARE], boundary="outside") is True

    def test_invalid_policy(self):
        """Test that an unknown boundary policy raises ParameterError."""
        with pytest.raises(ParameterError, match="boundary"):
            point_in_polygon((5.0, 5.0), [SQUARE], boundary="maybe")


class TestValidateRing:
    """Tests for validate_ring."""

    def test_valid_ring_is_closed(self):
        """Test that a valid open ring comes back closed."""
        ring = validate_ring(SQUARE)
        assert len(ring) == 5
        np.testing.assert_array_equal(ring[0], ring[-1])

    def test_repeated_vertices_removed(self):
        """Test that consecutive duplicate vertices are dropped."""
        ring = np.array([[0, 0], [0, 0], [1, 0], [1, 1], [1, 1], [0, 1]], dtype=float)
        cleaned = validate_ring(ring)
        assert len(cleaned) == 5

    def test_too_few_vertices(self):
        """Test that a two-vertex ring is degenerate."""
        with pytest.raises(GeometryError, match="Degenerate"):
            validate_ring(np.array([[0.0, 0.0], [1.0, 1.0]]))

    def test_collinear_ring(self):
        """Test that a zero-area ring is degenerate."""
        with pytest.raises(GeometryError, match="collinear"):
            validate_ring(np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0]]))

    def test_self_intersecting_ring(self):
        """Test that a bow-tie ring is rejected."""
        bowtie = np.array([[0.0, 0.0], [4.0, 4.0], [4.0, 0.0], [0.0, 2.0]])
        with pytest.raises(GeometryError, match="Self-intersecting"):
            validate_ring(bowtie)

    def test_ring_doubling_back_on_itself(self):
        """Test that a ring retracing part of its own edge is rejected."""
        spike = np.array(
            [[0.0, 0.0], [4.0, 0.0], [4.0, 4.0], [4.0, 6.0], [4.0, 3.0], [0.0, 4.0]]
        )
        with pytest.raises(GeometryError, match="overlaps"):
            validate_ring(spike)

    def test_collinear_consecutive_edges_allowed(self):
        """Test that a midpoint vertex on a straight edge is valid."""
        ring = np.array([[0.0, 0.0], [5.0, 0.0], [10.0, 0.0], [10.0, 10.0], [0.0, 10.0]])
        assert len(validate_ring(ring)) == 6

    def test_touching_vertex_allowed(self):
        """Test that a ring touching itself at a single vertex is valid."""
        ring = np.array(
            [[0.0, 0.0], [4.0, 0.0], [2.0, 2.0], [4.0, 4.0], [0.0, 4.0], [2.0, 2.0]]
        )
        assert len(validate_ring(ring)) == 7

    def test_error_names_polygon_and_ring(self):
        """Test that validate_polygons reports where the bad ring is."""
        polygons = PolygonSet(rings=[[SQUARE], [SQUARE, np.array([[1.0, 1.0], [2.0, 2.0]])]])
        with pytest.raises(GeometryError) as excinfo:
            validate_polygons(polygons)
        assert excinfo.value.details["polygon"] == 1
        assert excinfo.value.details["ring"] == 1


class TestHelpers:
    """Tests for geometry helper functions."""

    def test_signed_area_orientation(self):
        """Test shoelace area sign for counter-clockwise and clockwise rings."""
        assert signed_area(SQUARE) == pytest.approx(100.0)
        assert signed_area(SQUARE[::-1]) == pytest.approx(-100.0)

    def test_bounding_box(self):
        """Test bounding box over several rings."""
        assert bounding_box([SQUARE, SQUARE + 20.0]) == (0.0, 0.0, 30.0, 30.0)

    def test_pack_polygons_offsets(self):
        """Test packed offsets line up with the ring layout."""
        polygons = PolygonSet(rings=[[SQUARE, HOLE], [SQUARE + 20.0]])
        coords, ring_offsets, polygon_offsets, bboxes = pack_polygons(polygons)

        assert coords.shape == (15, 2)
        assert ring_offsets.tolist() == [0, 5, 10, 15]
        assert polygon_offsets.tolist() == [0, 2, 3]
        assert bboxes[1].tolist() == [20.0, 20.0, 30.0, 30.0]
