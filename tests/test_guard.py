from __future__ import annotations

import numpy as np
import pytest

from stackloft.loft.guard import would_cause_self_intersection

PENTAGON = np.array([(-2.0, -2.0), (0.0, -2.0), (2.0, -2.0), (2.0, 2.0), (-2.0, 2.0)])
RIGHT_MID = np.array([(-2.0, -2.0), (2.0, -2.0), (2.0, 0.0), (2.0, 2.0), (-2.0, 2.0)])


def test_square_drag_to_center_is_allowed(guard_square):
    assert would_cause_self_intersection(guard_square, 0, (0.0, 0.0)) is False


def test_square_drag_across_right_edge_is_rejected(guard_square):
    assert would_cause_self_intersection(guard_square, 0, (3.0, 0.0)) is True


@pytest.mark.parametrize(
    ("loop", "index", "position", "expected"),
    [
        (PENTAGON, 1, (3.0, 1.0), True),
        (PENTAGON, 1, (0.0, 0.0), False),
        (RIGHT_MID, 2, (-3.0, 1.0), True),
        (RIGHT_MID, 2, (-1.0, 3.0), True),
        (RIGHT_MID, 2, (3.0, 0.0), False),
    ],
)
def test_five_vertex_drags(loop, index, position, expected):
    assert would_cause_self_intersection(loop, index, position) is expected


@pytest.mark.parametrize("position", [(0.0, 0.0), (100.0, -100.0), (0.2, 0.1)])
def test_triangles_never_self_intersect(position):
    triangle = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)]
    assert would_cause_self_intersection(triangle, 0, position) is False


def test_drag_index_wraps(guard_square):
    assert would_cause_self_intersection(guard_square, 4, (3.0, 0.0)) is True


def test_input_is_not_modified(guard_square):
    before = guard_square.copy()
    would_cause_self_intersection(guard_square, 0, (3.0, 0.0))
    assert np.array_equal(guard_square, before)
