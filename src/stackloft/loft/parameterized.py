from __future__ import annotations

from typing import Sequence

import numpy as np

from ._polygon import ensure_winding_ccw


class ParameterizedLoop:
    """A closed CCW loop with a normalized arc-length parameter per vertex.

    ``param(i)`` is the distance travelled from vertex 0 to vertex ``i``
    divided by the perimeter, so it lies in ``[0, 1)``; ``param(count)`` is
    the virtual wrap back to vertex 0 and is always ``1.0``.
    """

    def __init__(self, points: Sequence[Sequence[float]] | np.ndarray) -> None:
        self.vertices = ensure_winding_ccw(points)
        n = self.vertices.shape[0]
        if n == 0:
            self.total_length = 0.0
            self.params = np.zeros(0, dtype=float)
            return

        edges = np.roll(self.vertices, -1, axis=0) - self.vertices
        lengths = np.linalg.norm(edges, axis=1)
        total = float(lengths.sum())
        self.total_length = total
        cumulative = np.concatenate([[0.0], np.cumsum(lengths)[:-1]])
        if total > 0:
            self.params = cumulative / total
        else:
            self.params = np.zeros(n, dtype=float)

    @property
    def count(self) -> int:
        return int(self.vertices.shape[0])

    def param(self, i: int) -> float:
        if i >= self.count:
            return 1.0
        return float(self.params[i])

    def vertex(self, i: int) -> np.ndarray:
        return self.vertices[i % self.count]

    def interpolate(self, i: int, t: float) -> np.ndarray:
        """Point on edge ``i -> i+1`` at global parameter ``t``."""

        v0 = self.vertex(i)
        v1 = self.vertex(i + 1)
        t0 = self.param(i)
        t1 = self.param(i + 1)

        # The wrap edge ends at param 0 of the next lap.
        span = t1 - t0 if t1 > t0 else (1.0 - t0) + t1
        if span == 0:
            return v0.copy()
        u = (t - t0) / span
        return v0 + u * (v1 - v0)

    def __len__(self) -> int:
        return self.count


__all__ = ["ParameterizedLoop"]
