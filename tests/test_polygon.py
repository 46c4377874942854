from __future__ import annotations

import numpy as np
import pytest

from stackloft.loft._polygon import (
    arc_length,
    ensure_winding_ccw,
    find_best_rotation,
    find_nearest_vertex,
    point_at_distance,
    point_in_triangle,
    regular_polygon,
    rotate_vertices,
    segments_intersect,
    signed_area,
    subdivide_and_align,
    subdivide_to_count,
)


def test_signed_area_and_winding(unit_square):
    assert signed_area(unit_square) == pytest.approx(1.0)
    clockwise = unit_square[::-1]
    assert signed_area(clockwise) == pytest.approx(-1.0)

    fixed = ensure_winding_ccw(clockwise)
    assert signed_area(fixed) == pytest.approx(1.0)
    # The input array is left alone.
    assert signed_area(clockwise) == pytest.approx(-1.0)


def test_arc_length_open_and_closed(unit_square):
    assert arc_length(unit_square) == pytest.approx(4.0)
    assert arc_length(unit_square, closed=False) == pytest.approx(3.0)
    assert arc_length(unit_square[:1]) == 0.0


def test_point_in_triangle_is_strict():
    a, b, c = np.array([0.0, 0.0]), np.array([1.0, 0.0]), np.array([0.0, 1.0])
    assert point_in_triangle(np.array([0.25, 0.25]), a, b, c)
    assert not point_in_triangle(np.array([0.5, 0.0]), a, b, c)
    assert not point_in_triangle(np.array([1.0, 1.0]), a, b, c)


@pytest.mark.parametrize(
    ("p1", "q1", "p2", "q2", "expected"),
    [
        ((0, 0), (2, 2), (0, 2), (2, 0), True),
        ((0, 0), (2, 0), (0, 1), (2, 1), False),
        ((0, 0), (2, 0), (1, 0), (1, 1), True),
        ((0, 0), (1, 0), (2, 0), (3, 0), False),
    ],
    ids=["x-crossing", "parallel", "t-junction", "collinear-disjoint"],
)
def test_segments_intersect(p1, q1, p2, q2, expected):
    pts = [np.asarray(p, dtype=float) for p in (p1, q1, p2, q2)]
    assert segments_intersect(*pts) is expected


def test_find_nearest_vertex_prefers_first_minimum(unit_square):
    index, distance = find_nearest_vertex(np.array([0.5, -0.1]), unit_square)
    assert index == 0
    assert distance == pytest.approx(np.hypot(0.5, 0.1))


def test_point_at_distance_clamps_to_end():
    polyline = np.array([(0.0, 0.0), (2.0, 0.0), (2.0, 2.0)])
    assert np.allclose(point_at_distance(polyline, 1.0), (1.0, 0.0))
    assert np.allclose(point_at_distance(polyline, 3.0), (2.0, 1.0))
    assert np.allclose(point_at_distance(polyline, 10.0), (2.0, 2.0))


def test_rotation_recovers_reference(unit_square):
    shifted = rotate_vertices(unit_square, 1)
    assert np.allclose(shifted[0], unit_square[1])
    rotation = find_best_rotation(unit_square, shifted)
    assert np.allclose(rotate_vertices(shifted, rotation), unit_square)


def test_subdivide_to_count_keeps_original_vertices(unit_square):
    result = subdivide_to_count(unit_square, 8)
    assert result.shape == (8, 2)
    assert np.allclose(result[::2], unit_square)
    assert np.allclose(result[1], (0.5, 0.0))


def test_subdivide_to_count_uneven_edges():
    rectangle = np.array([(0.0, 0.0), (3.0, 0.0), (3.0, 1.0), (0.0, 1.0)])
    result = subdivide_to_count(rectangle, 12)
    assert result.shape == (12, 2)
    for corner in rectangle:
        assert np.min(np.linalg.norm(result - corner, axis=1)) < 1e-12


def test_subdivide_to_count_never_shrinks(unit_square):
    assert np.allclose(subdivide_to_count(unit_square, 3), unit_square)


def test_subdivide_and_align_matches_reference(unit_square):
    reference = subdivide_to_count(unit_square, 8)
    rotated = rotate_vertices(unit_square, 2)
    aligned = subdivide_and_align(reference, rotated, 8)
    assert aligned.shape == (8, 2)
    assert np.allclose(aligned, reference)


def test_regular_polygon_is_ccw():
    square = regular_polygon(4, 2.0)
    assert square.shape == (4, 2)
    assert signed_area(square) == pytest.approx(2.0)
    assert np.allclose(np.linalg.norm(square, axis=1), 1.0)
