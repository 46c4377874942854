from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np

WELD_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MeshAnalysis:
    """Edge-use and face-area statistics for a triangle mesh."""

    degenerate_faces: int
    boundary_edges: int
    nonmanifold_edges: int

    @property
    def is_watertight(self) -> bool:
        return self.boundary_edges == 0 and self.nonmanifold_edges == 0

    @property
    def has_degenerate_faces(self) -> bool:
        return self.degenerate_faces > 0

    def issues(self) -> list[str]:
        found = []
        if self.degenerate_faces:
            found.append(f"{self.degenerate_faces} zero-area faces")
        if self.boundary_edges:
            found.append(f"{self.boundary_edges} open edges")
        if self.nonmanifold_edges:
            found.append(f"{self.nonmanifold_edges} edges shared by more than two faces")
        return found


@dataclass
class Mesh:
    """Indexed triangle mesh handed to renderers and exporters."""

    vertices: np.ndarray
    faces: np.ndarray
    metadata: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.vertices = np.array(self.vertices, dtype=float).reshape(-1, 3)
        self.faces = np.array(self.faces, dtype=np.int64).reshape(-1, 3)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_faces(self) -> int:
        return int(self.faces.shape[0])


def triangulate_faces(face_list: Iterable[Sequence[int]]) -> np.ndarray:
    """Fan-triangulate polygons given as vertex index lists."""

    triangles = [
        (face[0], face[k], face[k + 1])
        for face in face_list
        for k in range(1, len(face) - 1)
    ]
    return np.asarray(triangles, dtype=np.int64).reshape(-1, 3)


def mesh_from_polygons(polygons: Iterable[np.ndarray], tolerance: float = WELD_TOLERANCE) -> Mesh:
    """Weld polygons given by 3D corner positions into an indexed mesh.

    Corners that round to the same ``tolerance`` grid cell share one vertex,
    so neighbouring loft faces become connected.
    """

    lookup: dict[tuple[int, int, int], int] = {}
    vertices: list[np.ndarray] = []
    index_faces: list[list[int]] = []
    for polygon in polygons:
        corners = np.asarray(polygon, dtype=float).reshape(-1, 3)
        keys = np.rint(corners / tolerance).astype(np.int64)
        indices = []
        for corner, key in zip(corners, map(tuple, keys)):
            if key not in lookup:
                lookup[key] = len(vertices)
                vertices.append(corner)
            indices.append(lookup[key])
        index_faces.append(indices)

    return Mesh(np.asarray(vertices, dtype=float).reshape(-1, 3), triangulate_faces(index_faces))


def analyze_mesh(mesh: Mesh, area_epsilon: float = 1e-12) -> MeshAnalysis:
    """Count zero-area faces and edges used once (open) or more than twice."""

    if mesh.n_faces == 0:
        return MeshAnalysis(degenerate_faces=0, boundary_edges=0, nonmanifold_edges=0)

    corners = mesh.vertices[mesh.faces]
    areas = 0.5 * np.linalg.norm(
        np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0]), axis=1
    )

    edges = np.concatenate([mesh.faces[:, [0, 1]], mesh.faces[:, [1, 2]], mesh.faces[:, [2, 0]]])
    _, uses = np.unique(np.sort(edges, axis=1), axis=0, return_counts=True)

    return MeshAnalysis(
        degenerate_faces=int(np.count_nonzero(areas <= area_epsilon)),
        boundary_edges=int(np.count_nonzero(uses == 1)),
        nonmanifold_edges=int(np.count_nonzero(uses > 2)),
    )


def mesh_to_pyvista(mesh: Mesh):
    import pyvista as pv

    if mesh.n_faces == 0:
        return pv.PolyData(mesh.vertices, deep=True)
    cells = np.column_stack([np.full(mesh.n_faces, 3, dtype=np.int64), mesh.faces]).ravel()
    return pv.PolyData(mesh.vertices, cells, deep=True)


__all__ = [
    "Mesh",
    "MeshAnalysis",
    "triangulate_faces",
    "mesh_from_polygons",
    "analyze_mesh",
    "mesh_to_pyvista",
]
