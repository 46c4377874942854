from __future__ import annotations

import math
from typing import Sequence

import numpy as np

ORIENTATION_EPSILON = 1e-10


def as_loop(points: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """Copy ``points`` into an ``(n, 2)`` float array."""

    arr = np.array(points, dtype=float)
    if arr.size == 0:
        return np.zeros((0, 2), dtype=float)
    return arr.reshape(-1, 2)


def signed_area(points: np.ndarray) -> float:
    """Shoelace area; positive for counter-clockwise loops."""

    pts = as_loop(points)
    if pts.shape[0] < 3:
        return 0.0
    x = pts[:, 0]
    y = pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def ensure_winding_ccw(points: np.ndarray) -> np.ndarray:
    """Return a counter-clockwise copy of ``points``; the input is never modified."""

    pts = as_loop(points)
    if signed_area(pts) < 0:
        return pts[::-1].copy()
    return pts


def arc_length(points: np.ndarray, closed: bool = True) -> float:
    pts = as_loop(points)
    if pts.shape[0] < 2:
        return 0.0
    if closed:
        pts = np.vstack([pts, pts[0]])
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def point_in_triangle(p: np.ndarray, a: np.ndarray, b: np.ndarray, c: np.ndarray) -> bool:
    """Strict interior test; points on an edge are outside."""

    v0 = np.asarray(c, dtype=float) - a
    v1 = np.asarray(b, dtype=float) - a
    v2 = np.asarray(p, dtype=float) - a

    dot00 = float(np.dot(v0, v0))
    dot01 = float(np.dot(v0, v1))
    dot02 = float(np.dot(v0, v2))
    dot11 = float(np.dot(v1, v1))
    dot12 = float(np.dot(v1, v2))

    denom = dot00 * dot11 - dot01 * dot01
    if denom == 0:
        return False
    u = (dot11 * dot02 - dot01 * dot12) / denom
    v = (dot00 * dot12 - dot01 * dot02) / denom
    return u > 0 and v > 0 and (u + v) < 1


def orientation(p: np.ndarray, q: np.ndarray, r: np.ndarray, eps: float = ORIENTATION_EPSILON) -> int:
    """0 for collinear, 1 for clockwise, 2 for counter-clockwise."""

    val = (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])
    if abs(val) < eps:
        return 0
    return 1 if val > 0 else 2


def on_segment(p: np.ndarray, q: np.ndarray, r: np.ndarray) -> bool:
    """Whether ``q`` lies within the bounding box of segment ``pr``."""

    return (
        min(p[0], r[0]) <= q[0] <= max(p[0], r[0])
        and min(p[1], r[1]) <= q[1] <= max(p[1], r[1])
    )


def segments_intersect(p1: np.ndarray, q1: np.ndarray, p2: np.ndarray, q2: np.ndarray) -> bool:
    """Return True when segments ``p1q1`` and ``p2q2`` cross or touch."""

    o1 = orientation(p1, q1, p2)
    o2 = orientation(p1, q1, q2)
    o3 = orientation(p2, q2, p1)
    o4 = orientation(p2, q2, q1)

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and on_segment(p1, p2, q1):
        return True
    if o2 == 0 and on_segment(p1, q2, q1):
        return True
    if o3 == 0 and on_segment(p2, p1, q2):
        return True
    if o4 == 0 and on_segment(p2, q1, q2):
        return True
    return False


def find_nearest_vertex(point: np.ndarray, points: np.ndarray) -> tuple[int, float]:
    pts = as_loop(points)
    if pts.shape[0] == 0:
        return 0, math.inf
    distances = np.linalg.norm(pts - np.asarray(point, dtype=float), axis=1)
    index = int(np.argmin(distances))
    return index, float(distances[index])


def point_at_distance(polyline: np.ndarray, distance: float) -> np.ndarray:
    """Point ``distance`` along an open polyline, clamped to its last point."""

    pts = as_loop(polyline)
    if pts.shape[0] == 0:
        return np.zeros(2, dtype=float)
    if pts.shape[0] == 1:
        return pts[0].copy()

    accumulated = 0.0
    for i in range(pts.shape[0] - 1):
        edge_len = float(np.linalg.norm(pts[i + 1] - pts[i]))
        if accumulated + edge_len >= distance:
            t = (distance - accumulated) / edge_len if edge_len > 0 else 0.0
            return pts[i] + t * (pts[i + 1] - pts[i])
        accumulated += edge_len
    return pts[-1].copy()


def rotate_vertices(points: np.ndarray, offset: int) -> np.ndarray:
    """Return a copy whose element ``i`` is ``points[(i + offset) % n]``."""

    pts = as_loop(points)
    n = pts.shape[0]
    if n == 0:
        return pts
    return np.roll(pts, -(offset % n), axis=0)


def find_best_rotation(reference: np.ndarray, points: np.ndarray) -> int:
    """Rotation of ``points`` minimizing the summed squared distance to ``reference``."""

    ref = as_loop(reference)
    pts = as_loop(points)
    n = ref.shape[0]
    if n == 0 or n != pts.shape[0]:
        return 0

    best_rotation = 0
    best_distance = math.inf
    for rotation in range(n):
        rotated = np.roll(pts, -rotation, axis=0)
        total = float(np.sum((ref - rotated) ** 2))
        if total < best_distance:
            best_distance = total
            best_rotation = rotation
    return best_rotation


def subdivide_to_count(points: np.ndarray, target_count: int) -> np.ndarray:
    """Insert points until the loop has ``target_count`` vertices.

    Every original vertex is kept. New points go onto edges in proportion to
    edge length, evenly spaced within each edge.
    """

    pts = as_loop(points)
    n = pts.shape[0]
    if n == 0:
        return pts
    if target_count <= n:
        return pts.copy()

    to_add = target_count - n
    edge_lengths = np.linalg.norm(np.roll(pts, -1, axis=0) - pts, axis=1)
    total_length = float(edge_lengths.sum())

    add_per_edge = [0] * n
    accumulated = 0.0
    for i in range(n):
        fraction = edge_lengths[i] / total_length if total_length > 0 else 1.0 / n
        ideal = to_add * fraction + accumulated
        add_per_edge[i] = _round_half_up(ideal) - _round_half_up(accumulated)
        accumulated = ideal

    current_total = sum(add_per_edge)
    if current_total != to_add:
        add_per_edge[int(np.argmax(edge_lengths))] += to_add - current_total

    result = []
    for i in range(n):
        result.append(pts[i])
        count = add_per_edge[i]
        if count > 0:
            nxt = pts[(i + 1) % n]
            for j in range(1, count + 1):
                t = j / (count + 1)
                result.append(pts[i] + t * (nxt - pts[i]))
    return np.asarray(result, dtype=float)


def subdivide_and_align(reference: np.ndarray, points: np.ndarray, target_count: int) -> np.ndarray:
    """Subdivide ``points`` to ``target_count`` and rotate it onto ``reference``.

    Every start rotation is tried before subdividing, since it decides which
    edges receive the inserted points.
    """

    ref = as_loop(reference)
    pts = as_loop(points)
    n = pts.shape[0]
    if n == 0:
        return pts

    if target_count <= n:
        subdivided = subdivide_to_count(pts, target_count)
        return rotate_vertices(subdivided, find_best_rotation(ref, subdivided))

    best_result = pts
    best_distance = math.inf
    for start in range(n):
        subdivided = subdivide_to_count(rotate_vertices(pts, start), target_count)
        aligned = rotate_vertices(subdivided, find_best_rotation(ref, subdivided))
        if aligned.shape != ref.shape:
            continue
        dist = float(np.sum((ref - aligned) ** 2))
        if dist < best_distance:
            best_distance = dist
            best_result = aligned
    return best_result


def regular_polygon(sides: int, size: float) -> np.ndarray:
    """CCW regular polygon inscribed in a ``size`` circle; even counts sit flat."""

    sides = max(int(sides), 3)
    radius = size / 2.0
    start = np.pi / 2.0 + (np.pi / sides if sides % 2 == 0 else 0.0)
    angles = start + np.arange(sides) * (2.0 * np.pi / sides)
    return np.column_stack([radius * np.cos(angles), radius * np.sin(angles)])


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


__all__ = [
    "ORIENTATION_EPSILON",
    "as_loop",
    "signed_area",
    "ensure_winding_ccw",
    "arc_length",
    "point_in_triangle",
    "orientation",
    "on_segment",
    "segments_intersect",
    "find_nearest_vertex",
    "point_at_distance",
    "rotate_vertices",
    "find_best_rotation",
    "subdivide_to_count",
    "subdivide_and_align",
    "regular_polygon",
]
