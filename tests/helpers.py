from __future__ import annotations

import numpy as np
import pyvista as pv


def is_watertight(mesh: pv.DataSet) -> tuple[bool, int]:
    edges = mesh.extract_feature_edges(boundary_edges=True, feature_edges=False, non_manifold_edges=True, manifold_edges=False)
    open_edges = edges.n_cells
    return open_edges == 0, open_edges


def subdivided_square(size: float, per_edge: int) -> np.ndarray:
    """CCW square with ``per_edge`` evenly spaced points on every edge."""
    corners = np.array([(0.0, 0.0), (size, 0.0), (size, size), (0.0, size)])
    points = []
    for i in range(4):
        start = corners[i]
        end = corners[(i + 1) % 4]
        for k in range(per_edge + 1):
            points.append(start + (k / (per_edge + 1)) * (end - start))
    return np.asarray(points)
