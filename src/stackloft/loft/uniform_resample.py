from __future__ import annotations

from typing import Sequence

import numpy as np

from ._polygon import ensure_winding_ccw, subdivide_and_align, subdivide_to_count


def uniform_resample(loops: Sequence[Sequence[Sequence[float]] | np.ndarray]) -> list[np.ndarray]:
    """Subdivide every loop up to the largest vertex count.

    Original vertices are preserved. Each loop after the first is subdivided
    and rotated to best match the loop before it.
    """

    if len(loops) == 0:
        return []
    normalized = [ensure_winding_ccw(loop) for loop in loops]
    target = max(loop.shape[0] for loop in normalized)

    result = [subdivide_to_count(normalized[0], target)]
    for loop in normalized[1:]:
        result.append(subdivide_and_align(result[-1], loop, target))
    return result


__all__ = ["uniform_resample"]
