from __future__ import annotations

from typing import Sequence

import numpy as np

from ._polygon import as_loop, segments_intersect


def would_cause_self_intersection(
    loop: Sequence[Sequence[float]] | np.ndarray,
    drag_index: int,
    new_position: Sequence[float],
) -> bool:
    """Check whether moving one vertex would make the polygon cross itself.

    The two edges that would replace the dragged vertex's edges are tested
    against every other edge. Edges that only share an endpoint with a
    candidate (the neighbours of ``prev`` and ``next``) are skipped, since
    they touch by construction.
    """

    pts = as_loop(loop)
    n = pts.shape[0]
    if n < 4:
        return False

    drag_index %= n
    prev = (drag_index - 1) % n
    nxt = (drag_index + 1) % n
    prev_prev = (prev - 1) % n
    next_next = (nxt + 1) % n
    moved = np.asarray(new_position, dtype=float).reshape(2)

    for j in range(n):
        j_next = (j + 1) % n
        if j == prev and j_next == drag_index:
            continue
        if j == drag_index and j_next == nxt:
            continue

        start = pts[j]
        end = pts[j_next]

        shares_prev = j == prev_prev and j_next == prev
        if not shares_prev and segments_intersect(pts[prev], moved, start, end):
            return True

        shares_next = j == nxt and j_next == next_next
        if not shares_next and segments_intersect(moved, pts[nxt], start, end):
            return True

    return False


__all__ = ["would_cause_self_intersection"]
