from __future__ import annotations

from enum import Enum
from typing import Callable, Sequence

import numpy as np

from ._polygon import as_loop
from .anchor_resample import ANCHOR_EPSILON, anchor_resample
from .faces import LoftResult
from .perimeter_walk import FaceBuilder, perimeter_walk
from .uniform_resample import uniform_resample

Resampler = Callable[[Sequence[np.ndarray]], list[np.ndarray]]


class LoftStrategy(str, Enum):
    PERIMETER_WALK = "perimeter-walk"
    ANCHOR_RESAMPLE = "anchor-resample"
    UNIFORM_RESAMPLE = "uniform-resample"

    @classmethod
    def parse(cls, name: "str | LoftStrategy") -> "LoftStrategy":
        if isinstance(name, LoftStrategy):
            return name
        key = str(name).strip().lower().replace("_", "-")
        for strategy in cls:
            if strategy.value == key:
                return strategy
        choices = ", ".join(strategy.value for strategy in cls)
        raise ValueError(f"Unknown loft strategy {name!r}; expected one of: {choices}.")

    @property
    def resamples(self) -> bool:
        return self in _RESAMPLERS


def _anchor_resampler(anchor_epsilon: float) -> Resampler:
    return lambda loops: anchor_resample(loops, epsilon=anchor_epsilon)


_RESAMPLERS: dict[LoftStrategy, Callable[[float], Resampler]] = {
    LoftStrategy.ANCHOR_RESAMPLE: _anchor_resampler,
    LoftStrategy.UNIFORM_RESAMPLE: lambda _epsilon: uniform_resample,
}


def make_loftable(
    loops: Sequence[Sequence[Sequence[float]] | np.ndarray],
    strategy: LoftStrategy | str = LoftStrategy.ANCHOR_RESAMPLE,
    anchor_epsilon: float = ANCHOR_EPSILON,
) -> list[np.ndarray]:
    """Resample ``loops`` to index-aligned arrays with a shared vertex count."""

    strategy = LoftStrategy.parse(strategy)
    if not strategy.resamples:
        raise ValueError(f"{strategy.value} does not produce matched vertex arrays.")
    resampler = _RESAMPLERS[strategy](anchor_epsilon)
    return resampler([as_loop(loop) for loop in loops])


def faces_from_matched(
    loop_a: np.ndarray,
    height_a: float,
    loop_b: np.ndarray,
    height_b: float,
) -> LoftResult:
    """Quads between two index-aligned loops of equal length."""

    builder = FaceBuilder(height_a, height_b)
    n = min(loop_a.shape[0], loop_b.shape[0])
    for i in range(n):
        j = (i + 1) % n
        builder.add_quad(loop_a[i], loop_a[j], loop_b[i], loop_b[j])
    return LoftResult(builder.faces)


def build_segment(
    strategy: LoftStrategy | str,
    loop_a: Sequence[Sequence[float]] | np.ndarray,
    height_a: float,
    loop_b: Sequence[Sequence[float]] | np.ndarray,
    height_b: float,
    anchor_epsilon: float = ANCHOR_EPSILON,
) -> LoftResult:
    """Build the faces of one segment with the selected strategy."""

    strategy = LoftStrategy.parse(strategy)
    pts_a = as_loop(loop_a)
    pts_b = as_loop(loop_b)
    if strategy is LoftStrategy.PERIMETER_WALK:
        return perimeter_walk(pts_a, height_a, pts_b, height_b)
    if pts_a.shape[0] < 3 or pts_b.shape[0] < 3:
        return LoftResult()
    matched_a, matched_b = make_loftable([pts_a, pts_b], strategy, anchor_epsilon)
    return faces_from_matched(matched_a, height_a, matched_b, height_b)


__all__ = ["LoftStrategy", "make_loftable", "faces_from_matched", "build_segment"]
