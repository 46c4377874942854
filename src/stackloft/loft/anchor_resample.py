"""Anchor-based resampling of loops to a shared vertex count.

Vertices that are mutual nearest neighbours across two loops are kept as
anchors; the arcs between consecutive anchors are resampled independently so
matching features stay matched. Without anchors both loops are subdivided
uniformly and rotated into the best alignment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ._polygon import (
    arc_length,
    as_loop,
    ensure_winding_ccw,
    find_nearest_vertex,
    point_at_distance,
    subdivide_and_align,
    subdivide_to_count,
)

ANCHOR_EPSILON = 0.5


@dataclass(frozen=True)
class Anchor:
    index_a: int
    index_b: int


def find_anchors(loop_a: np.ndarray, loop_b: np.ndarray, epsilon: float = ANCHOR_EPSILON) -> list[Anchor]:
    """Mutual nearest-neighbour pairs within ``epsilon``, filtered so none cross."""

    pts_a = as_loop(loop_a)
    pts_b = as_loop(loop_b)
    if pts_a.shape[0] == 0 or pts_b.shape[0] == 0:
        return []

    candidates: list[Anchor] = []
    for i, point in enumerate(pts_a):
        index_b, distance = find_nearest_vertex(point, pts_b)
        if distance > epsilon:
            continue
        index_a, back_distance = find_nearest_vertex(pts_b[index_b], pts_a)
        if index_a == i and back_distance <= epsilon:
            candidates.append(Anchor(i, index_b))

    candidates.sort(key=lambda anchor: anchor.index_a)
    kept: list[Anchor] = []
    for anchor in candidates:
        # No wrap handling: an anchor is kept only if index_b keeps increasing.
        if not kept or anchor.index_b > kept[-1].index_b:
            kept.append(anchor)
    return kept


def chunk_vertex_count(total: int, start: int, end: int) -> int:
    if end > start:
        return end - start
    if end == start:
        return total
    return total - start + end


def resample_chunk(points: np.ndarray, start: int, end: int, target_count: int) -> np.ndarray:
    """Resample the open arc ``start -> end`` to ``target_count`` points.

    The arc's end point is excluded; it begins the next chunk.
    """

    pts = as_loop(points)
    if target_count <= 0:
        return np.zeros((0, 2), dtype=float)

    n = pts.shape[0]
    indices = [start]
    i = (start + 1) % n
    while i != end:
        indices.append(i)
        i = (i + 1) % n
    if end != start or n > 1:
        indices.append(end)
    chunk = pts[indices]

    if chunk.shape[0] <= 1:
        return pts[start : start + 1].copy()

    total = arc_length(chunk, closed=False)
    if total == 0:
        return np.tile(pts[start], (target_count, 1))
    return np.asarray(
        [point_at_distance(chunk, (k / target_count) * total) for k in range(target_count)],
        dtype=float,
    )


def resample_with_anchors(
    loop_a: np.ndarray,
    loop_b: np.ndarray,
    anchors: Sequence[Anchor],
) -> tuple[np.ndarray, np.ndarray]:
    pts_a = as_loop(loop_a)
    pts_b = as_loop(loop_b)

    if not anchors:
        target = max(pts_a.shape[0], pts_b.shape[0])
        subdivided_a = subdivide_to_count(pts_a, target)
        return subdivided_a, subdivide_and_align(subdivided_a, pts_b, target)

    chunks_a = []
    chunks_b = []
    for i, anchor in enumerate(anchors):
        following = anchors[(i + 1) % len(anchors)]
        count_a = chunk_vertex_count(pts_a.shape[0], anchor.index_a, following.index_a)
        count_b = chunk_vertex_count(pts_b.shape[0], anchor.index_b, following.index_b)
        target = max(count_a, count_b)
        chunks_a.append(resample_chunk(pts_a, anchor.index_a, following.index_a, target))
        chunks_b.append(resample_chunk(pts_b, anchor.index_b, following.index_b, target))

    return np.vstack(chunks_a), np.vstack(chunks_b)


def anchor_resample(
    loops: Sequence[Sequence[Sequence[float]] | np.ndarray],
    epsilon: float = ANCHOR_EPSILON,
) -> list[np.ndarray]:
    """Resample every loop to one shared, index-aligned vertex count.

    Loops are processed pairwise, each against the already resampled previous
    loop. If counts still differ afterwards, one subdivision and alignment
    pass anchored on the first loop forces them equal.
    """

    if len(loops) == 0:
        return []
    normalized = [ensure_winding_ccw(loop) for loop in loops]
    if len(normalized) == 1:
        return normalized

    result = [normalized[0]]
    for current in normalized[1:]:
        previous = result[-1]
        anchors = find_anchors(previous, current, epsilon)
        resampled_prev, resampled_cur = resample_with_anchors(previous, current, anchors)
        result[-1] = resampled_prev
        result.append(resampled_cur)

    counts = [loop.shape[0] for loop in result]
    if len(set(counts)) > 1:
        result = _force_equal_counts(result, max(counts))
    return result


def _force_equal_counts(loops: list[np.ndarray], count: int) -> list[np.ndarray]:
    first = loops[0] if loops[0].shape[0] == count else subdivide_to_count(loops[0], count)
    aligned = [first]
    for loop in loops[1:]:
        aligned.append(subdivide_and_align(aligned[-1], loop, count))
    return aligned


__all__ = [
    "ANCHOR_EPSILON",
    "Anchor",
    "find_anchors",
    "chunk_vertex_count",
    "resample_chunk",
    "resample_with_anchors",
    "anchor_resample",
]
