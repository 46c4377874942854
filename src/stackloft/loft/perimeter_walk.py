"""Perimeter-walk lofting.

Both loops are parameterized by normalized perimeter distance and walked
together: whichever loop reaches its next vertex first advances, and a quad
is emitted when both reach their next vertex at the same parameter. Adjacent
collapse triangles that would share an edge are merged into one quad by a
one-step look-ahead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ._polygon import as_loop, ensure_winding_ccw, find_nearest_vertex, rotate_vertices
from .faces import LoftFace, LoftResult, lift
from .parameterized import ParameterizedLoop

PARAM_EPSILON = 1e-9


@dataclass(frozen=True)
class AdaptiveSubdivisionOptions:
    """Controls how loops are balanced before walking."""

    max_per_edge: float = math.inf
    enabled: bool = True


DEFAULT_SUBDIVISION = AdaptiveSubdivisionOptions()


class FaceBuilder:
    """Lift 2D loop points to their heights and collect faces."""

    def __init__(self, height_a: float, height_b: float) -> None:
        self.height_a = float(height_a)
        self.height_b = float(height_b)
        self._faces: list[LoftFace] = []

    @property
    def faces(self) -> list[LoftFace]:
        return self._faces

    def add_quad(self, a0: np.ndarray, a1: np.ndarray, b0: np.ndarray, b1: np.ndarray) -> None:
        # a0 -> a1 -> b1 -> b0 keeps the outward normal for CCW loops.
        self._faces.append(
            LoftFace(
                np.vstack(
                    [
                        lift(a0, self.height_a),
                        lift(a1, self.height_a),
                        lift(b1, self.height_b),
                        lift(b0, self.height_b),
                    ]
                )
            )
        )

    def add_triangle_collapse_b(self, a0: np.ndarray, a1: np.ndarray, b0: np.ndarray) -> None:
        """A advances while B stays on ``b0``."""

        self._faces.append(
            LoftFace(np.vstack([lift(a0, self.height_a), lift(a1, self.height_a), lift(b0, self.height_b)]))
        )

    def add_triangle_collapse_a(self, a0: np.ndarray, b0: np.ndarray, b1: np.ndarray) -> None:
        """B advances while A stays on ``a0``."""

        self._faces.append(
            LoftFace(np.vstack([lift(a0, self.height_a), lift(b1, self.height_b), lift(b0, self.height_b)]))
        )


def _can_merge_when_a_advances(
    loop_a: ParameterizedLoop,
    loop_b: ParameterizedLoop,
    i_a: int,
    i_b: int,
    t_next_b: float,
) -> bool:
    if i_a + 1 >= loop_a.count or i_b >= loop_b.count:
        return False
    return loop_a.param(i_a + 2) > t_next_b + PARAM_EPSILON


def _can_merge_when_b_advances(
    loop_a: ParameterizedLoop,
    loop_b: ParameterizedLoop,
    i_a: int,
    i_b: int,
    t_next_a: float,
) -> bool:
    if i_a >= loop_a.count or i_b + 1 >= loop_b.count:
        return False
    return loop_b.param(i_b + 2) > t_next_a + PARAM_EPSILON


def walk_perimeters(loop_a: ParameterizedLoop, loop_b: ParameterizedLoop, builder: FaceBuilder) -> None:
    i_a = 0
    i_b = 0
    n_a = loop_a.count
    n_b = loop_b.count

    while i_a < n_a or i_b < n_b:
        t_next_a = loop_a.param(i_a + 1)
        t_next_b = loop_b.param(i_b + 1)
        a0 = loop_a.vertex(i_a)
        b0 = loop_b.vertex(i_b)

        if i_a >= n_a:
            builder.add_triangle_collapse_a(a0, b0, loop_b.vertex(i_b + 1))
            i_b += 1
        elif i_b >= n_b:
            builder.add_triangle_collapse_b(a0, loop_a.vertex(i_a + 1), b0)
            i_a += 1
        elif abs(t_next_a - t_next_b) < PARAM_EPSILON:
            builder.add_quad(a0, loop_a.vertex(i_a + 1), b0, loop_b.vertex(i_b + 1))
            i_a += 1
            i_b += 1
        elif t_next_a < t_next_b:
            a1 = loop_a.vertex(i_a + 1)
            if _can_merge_when_a_advances(loop_a, loop_b, i_a, i_b, t_next_b):
                builder.add_quad(a0, a1, b0, loop_b.vertex(i_b + 1))
                i_a += 1
                i_b += 1
            else:
                builder.add_triangle_collapse_b(a0, a1, b0)
                i_a += 1
        else:
            b1 = loop_b.vertex(i_b + 1)
            if _can_merge_when_b_advances(loop_a, loop_b, i_a, i_b, t_next_a):
                builder.add_quad(a0, loop_a.vertex(i_a + 1), b0, b1)
                i_a += 1
                i_b += 1
            else:
                builder.add_triangle_collapse_a(a0, b0, b1)
                i_b += 1


def align_loop_starts(loop_a: np.ndarray, loop_b: np.ndarray) -> np.ndarray:
    """Rotate ``loop_b`` so its vertex nearest ``loop_a[0]`` comes first."""

    index, _ = find_nearest_vertex(loop_a[0], loop_b)
    if index == 0:
        return loop_b
    return rotate_vertices(loop_b, index)


def _params_in_range(other: ParameterizedLoop, t0: float, t1: float) -> list[float]:
    wraps = t1 < t0
    params = []
    for i in range(other.count):
        t = other.param(i)
        if wraps:
            if t >= t0 or t < t1:
                params.append(t)
        elif t0 <= t < t1:
            params.append(t)
    return params


def _circular_distance(a: float, b: float) -> float:
    d = abs(a - b)
    return min(d, 1.0 - d)


def subdivide_loop_adaptively(
    loop: ParameterizedLoop,
    other: ParameterizedLoop,
    options: AdaptiveSubdivisionOptions = DEFAULT_SUBDIVISION,
) -> np.ndarray:
    """Insert points on edges of ``loop`` that span two or more ``other`` vertices.

    Other-loop vertices close to an existing endpoint are ignored; a single
    mismatch is left for the walk to absorb as one triangle.
    """

    if not options.enabled:
        return loop.vertices.copy()

    tolerance = 0.5 / max(loop.count, other.count)
    result: list[np.ndarray] = []

    for i in range(loop.count):
        result.append(loop.vertex(i))
        t0 = loop.param(i)
        t1 = loop.param(i + 1)

        candidates = [
            t
            for t in _params_in_range(other, t0, t1)
            if _circular_distance(t, t0) > tolerance and _circular_distance(t, t1) > tolerance
        ]
        if len(candidates) < 2:
            continue

        if t1 < t0:
            candidates.sort(key=lambda t: t + 1.0 if t < t0 else t)
        else:
            candidates.sort()
        if options.max_per_edge < math.inf:
            candidates = candidates[: int(options.max_per_edge)]
        for t in candidates:
            result.append(loop.interpolate(i, t))

    return np.asarray(result, dtype=float)


def adaptively_balance_loops(
    loop_a: np.ndarray,
    loop_b: np.ndarray,
    options: AdaptiveSubdivisionOptions = DEFAULT_SUBDIVISION,
) -> tuple[np.ndarray, np.ndarray]:
    """Balance two loops without moving or dropping any original vertex."""

    loop_a = as_loop(loop_a)
    loop_b = as_loop(loop_b)
    if loop_a.shape[0] == loop_b.shape[0]:
        return loop_a.copy(), loop_b.copy()

    param_a = ParameterizedLoop(loop_a)
    param_b = ParameterizedLoop(loop_b)
    return (
        subdivide_loop_adaptively(param_a, param_b, options),
        subdivide_loop_adaptively(param_b, param_a, options),
    )


def perimeter_walk(
    loop_a: Sequence[Sequence[float]] | np.ndarray,
    height_a: float,
    loop_b: Sequence[Sequence[float]] | np.ndarray,
    height_b: float,
    options: AdaptiveSubdivisionOptions = DEFAULT_SUBDIVISION,
) -> LoftResult:
    """Connect two loops into a band of quads and triangles.

    Loops with fewer than three points produce an empty result.
    """

    pts_a = as_loop(loop_a)
    pts_b = as_loop(loop_b)
    if pts_a.shape[0] < 3 or pts_b.shape[0] < 3:
        return LoftResult()

    balanced_a, balanced_b = adaptively_balance_loops(
        ensure_winding_ccw(pts_a), ensure_winding_ccw(pts_b), options
    )
    aligned_b = align_loop_starts(balanced_a, balanced_b)

    builder = FaceBuilder(height_a, height_b)
    walk_perimeters(ParameterizedLoop(balanced_a), ParameterizedLoop(aligned_b), builder)
    return LoftResult(builder.faces)


__all__ = [
    "AdaptiveSubdivisionOptions",
    "FaceBuilder",
    "walk_perimeters",
    "align_loop_starts",
    "subdivide_loop_adaptively",
    "adaptively_balance_loops",
    "perimeter_walk",
]
