from __future__ import annotations

import numpy as np
import pytest

from stackloft.loft._polygon import find_nearest_vertex, regular_polygon, signed_area
from stackloft.loft.anchor_resample import (
    Anchor,
    anchor_resample,
    chunk_vertex_count,
    find_anchors,
    resample_with_anchors,
)
from stackloft.loft.uniform_resample import uniform_resample
from tests.helpers import subdivided_square


def test_identical_loops_anchor_every_vertex(unit_square):
    anchors = find_anchors(unit_square, unit_square + 0.1)
    assert anchors == [Anchor(i, i) for i in range(4)]


def test_anchors_are_mutual_nearest_neighbours():
    loop_a = subdivided_square(10.0, 3)
    loop_b = regular_polygon(9, 14.0) + 5.0
    anchors = find_anchors(loop_a, loop_b, epsilon=2.5)
    assert anchors
    for anchor in anchors:
        forward, distance = find_nearest_vertex(loop_a[anchor.index_a], loop_b)
        backward, _ = find_nearest_vertex(loop_b[anchor.index_b], loop_a)
        assert forward == anchor.index_b
        assert backward == anchor.index_a
        assert distance <= 2.5


def test_anchor_b_indices_strictly_increase():
    loop_a = subdivided_square(10.0, 0)
    loop_b = np.roll(subdivided_square(10.0, 0), -1, axis=0)
    anchors = find_anchors(loop_a, loop_b)
    indices = [anchor.index_b for anchor in anchors]
    assert indices == sorted(set(indices))
    assert anchors == [Anchor(0, 3)]


def test_anchors_respect_epsilon(unit_square):
    assert find_anchors(unit_square, unit_square + 5.0) == []


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [(1, 3, 2), (3, 1, 4), (2, 2, 6)],
)
def test_chunk_vertex_count(start, end, expected):
    assert chunk_vertex_count(6, start, end) == expected


def test_single_anchor_walks_the_whole_loop():
    square = subdivided_square(10.0, 0)
    rotated = np.roll(square, -1, axis=0)
    out_a, out_b = resample_with_anchors(square, rotated, [Anchor(0, 3)])
    assert np.allclose(out_a, square)
    assert np.allclose(out_b, square)


def test_without_anchors_both_loops_reach_the_larger_count():
    square = subdivided_square(10.0, 0)
    triangle = regular_polygon(3, 4.0) + 50.0
    out_a, out_b = resample_with_anchors(square, triangle, [])
    assert out_a.shape == out_b.shape == (4, 2)


@pytest.mark.parametrize(
    "loops",
    [
        [regular_polygon(4, 10.0), regular_polygon(7, 9.0)],
        [regular_polygon(5, 10.0), regular_polygon(5, 10.0) + 40.0, regular_polygon(11, 3.0)],
        [subdivided_square(10.0, 0), subdivided_square(10.0, 2), subdivided_square(10.0, 1)],
    ],
)
def test_anchor_resample_equalizes_counts(loops):
    result = anchor_resample(loops)
    assert len(result) == len(loops)
    counts = {loop.shape[0] for loop in result}
    assert len(counts) == 1
    assert counts.pop() >= max(loop.shape[0] for loop in loops)


def test_anchor_resample_keeps_matching_corners_aligned():
    coarse = subdivided_square(10.0, 0)
    fine = subdivided_square(10.0, 1)
    out_coarse, out_fine = anchor_resample([coarse, fine])
    assert out_coarse.shape == out_fine.shape == (8, 2)
    assert np.allclose(out_coarse, out_fine)


def test_anchor_resample_trivial_inputs(unit_square):
    assert anchor_resample([]) == []
    (only,) = anchor_resample([unit_square[::-1]])
    assert signed_area(only) > 0


def test_uniform_resample_preserves_originals():
    square = subdivided_square(10.0, 0)
    triangle = regular_polygon(3, 8.0)
    out_square, out_triangle = uniform_resample([square, triangle])
    assert out_square.shape == out_triangle.shape == (4, 2)
    for point in triangle:
        assert np.min(np.linalg.norm(out_triangle - point, axis=1)) < 1e-12
