from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


@dataclass
class LoftFace:
    """A triangle or quad in the band between two heights.

    Vertices are stored as a ``(k, 3)`` array in winding order.
    """

    vertices: np.ndarray

    def __post_init__(self) -> None:
        self.vertices = np.array(self.vertices, dtype=float).reshape(-1, 3)
        if self.vertices.shape[0] not in (3, 4):
            raise ValueError("LoftFace requires 3 or 4 vertices.")

    @property
    def is_triangle(self) -> bool:
        return self.vertices.shape[0] == 3

    @property
    def is_quad(self) -> bool:
        return self.vertices.shape[0] == 4

    def copy(self) -> "LoftFace":
        return LoftFace(self.vertices.copy())


@dataclass
class LoftResult:
    faces: list[LoftFace] = field(default_factory=list)

    @property
    def triangle_count(self) -> int:
        return sum(1 for face in self.faces if face.is_triangle)

    @property
    def quad_count(self) -> int:
        return sum(1 for face in self.faces if face.is_quad)

    def __len__(self) -> int:
        return len(self.faces)


def lift(point: Sequence[float], height: float) -> np.ndarray:
    return np.array([point[0], point[1], height], dtype=float)


__all__ = ["LoftFace", "LoftResult", "lift"]
