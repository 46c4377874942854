from __future__ import annotations

from pathlib import Path

import numpy as np

from stackloft.mesh import Mesh

_STL_HEADER = b"StackLoft STL"
_FACET_DTYPE = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("corners", "<f4", (3, 3)),
        ("attribute", "<u2"),
    ]
)


def face_normals(mesh: Mesh) -> np.ndarray:
    """Unit normals per triangle; degenerate triangles get a zero normal."""

    if mesh.n_faces == 0:
        return np.zeros((0, 3), dtype=float)
    corners = mesh.vertices[mesh.faces]
    normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    unit = np.zeros_like(normals)
    np.divide(normals, lengths, out=unit, where=lengths > 0)
    return unit


def write_stl(mesh: Mesh, path: Path, ascii: bool = False) -> Path:
    """Write ``mesh`` as binary (default) or ASCII STL and return the path."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    normals = face_normals(mesh)
    corners = mesh.vertices[mesh.faces] if mesh.n_faces else np.zeros((0, 3, 3), dtype=float)

    if ascii:
        lines = ["solid stackloft"]
        for normal, tri in zip(normals, corners):
            lines.append("  facet normal {:.6e} {:.6e} {:.6e}".format(*normal))
            lines.append("    outer loop")
            lines.extend("      vertex {:.6e} {:.6e} {:.6e}".format(*corner) for corner in tri)
            lines.append("    endloop")
            lines.append("  endfacet")
        lines.append("endsolid stackloft")
        path.write_text("\n".join(lines) + "\n")
        return path

    records = np.zeros(mesh.n_faces, dtype=_FACET_DTYPE)
    records["normal"] = normals
    records["corners"] = corners
    with path.open("wb") as handle:
        handle.write(_STL_HEADER.ljust(80, b"\0"))
        handle.write(np.array(mesh.n_faces, dtype="<u4").tobytes())
        handle.write(records.tobytes())
    return path


__all__ = ["face_normals", "write_stl"]
