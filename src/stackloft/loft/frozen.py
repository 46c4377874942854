"""Frozen (locked) segments.

Locking a segment snapshots its face connectivity together with the
provenance of every face vertex. While the segment stays locked its faces are
never rebuilt; instead each vertex is repositioned from its source against
the current loops, so a sketch can be edited (or twisted) without the band
re-triangulating under it.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import numpy as np

from ._polygon import as_loop
from .faces import LoftFace

LoopSide = Literal["bottom", "top"]

POSITION_TOLERANCE = 1e-4
HEIGHT_TOLERANCE = 1e-4


class FrozenRecordError(ValueError):
    """Raised when a serialized frozen segment cannot be decoded."""


@dataclass(frozen=True)
class SketchSource:
    """The vertex coincides with loop vertex ``index``."""

    loop: LoopSide
    index: int


@dataclass(frozen=True)
class InterpolatedSource:
    """The vertex lies on edge ``edge_start -> edge_end`` at fraction ``t``."""

    loop: LoopSide
    edge_start: int
    edge_end: int
    t: float


VertexSource = SketchSource | InterpolatedSource


@dataclass
class FrozenFace:
    vertices: np.ndarray
    sources: tuple[VertexSource, ...]

    def __post_init__(self) -> None:
        self.vertices = np.array(self.vertices, dtype=float).reshape(-1, 3)
        self.sources = tuple(self.sources)
        if len(self.sources) != self.vertices.shape[0]:
            raise ValueError("FrozenFace requires one source per vertex.")


@dataclass
class FrozenSegment:
    faces: list[FrozenFace] = field(default_factory=list)

    def loft_faces(self) -> list[LoftFace]:
        """Detached copies of the current face positions."""

        return [LoftFace(face.vertices.copy()) for face in self.faces]

    def to_record(self) -> dict[str, Any]:
        return {
            "faces": [
                {
                    "vertices": [[float(c) for c in vertex] for vertex in face.vertices],
                    "sources": [source_to_record(source) for source in face.sources],
                }
                for face in self.faces
            ]
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "FrozenSegment":
        try:
            face_records = record["faces"]
        except (KeyError, TypeError) as exc:
            raise FrozenRecordError("Frozen segment record must contain a 'faces' list.") from exc
        if not isinstance(face_records, list):
            raise FrozenRecordError("Frozen segment record must contain a 'faces' list.")

        faces: list[FrozenFace] = []
        for face_record in face_records:
            if not isinstance(face_record, dict):
                raise FrozenRecordError(f"Frozen face record must be an object, got {face_record!r}.")
            vertices = face_record.get("vertices", [])
            sources = face_record.get("sources", [])
            if not isinstance(vertices, list) or not isinstance(sources, list):
                raise FrozenRecordError("Frozen face 'vertices' and 'sources' must be lists.")
            # Tolerate disagreeing lengths by keeping the common prefix.
            count = min(len(vertices), len(sources))
            if count < 3:
                continue
            if count > 4:
                raise FrozenRecordError(f"Frozen faces have 3 or 4 corners, got {count}.")
            decoded = tuple(source_from_record(item) for item in sources[:count])
            try:
                corners = np.asarray(vertices[:count], dtype=float)
                if corners.shape != (count, 3):
                    raise ValueError(f"expected {count} (x, y, z) corners, got shape {corners.shape}")
                faces.append(FrozenFace(vertices=corners, sources=decoded))
            except (TypeError, ValueError) as exc:
                raise FrozenRecordError(f"Malformed frozen face vertices: {exc}") from exc
        return cls(faces=faces)


def source_to_record(source: VertexSource) -> dict[str, Any]:
    if isinstance(source, SketchSource):
        return {"type": "sketch", "loop": source.loop, "index": source.index}
    if isinstance(source, InterpolatedSource):
        return {
            "type": "interpolated",
            "loop": source.loop,
            "edgeStart": source.edge_start,
            "edgeEnd": source.edge_end,
            "t": source.t,
        }
    raise TypeError(f"Unsupported vertex source: {source!r}")


def source_from_record(data: dict[str, Any]) -> VertexSource:
    if not isinstance(data, dict):
        raise FrozenRecordError(f"Vertex source must be an object, got {data!r}.")
    kind = data.get("type")
    loop = data.get("loop")
    if loop not in ("bottom", "top"):
        raise FrozenRecordError(f"Vertex source loop must be 'bottom' or 'top', got {loop!r}.")
    try:
        if kind == "sketch":
            return SketchSource(loop=loop, index=int(data["index"]))
        if kind == "interpolated":
            return InterpolatedSource(
                loop=loop,
                edge_start=int(data["edgeStart"]),
                edge_end=int(data["edgeEnd"]),
                t=float(data["t"]),
            )
    except KeyError as exc:
        raise FrozenRecordError(f"Vertex source is missing field {exc.args[0]!r}.") from exc
    except (TypeError, ValueError) as exc:
        raise FrozenRecordError(f"Malformed vertex source: {exc}") from exc
    raise FrozenRecordError(f"Unknown vertex source type {kind!r}.")


def _find_exact_vertex(point: np.ndarray, loop: np.ndarray) -> int | None:
    if loop.shape[0] == 0:
        return None
    distances = np.linalg.norm(loop - point, axis=1)
    matches = np.nonzero(distances < POSITION_TOLERANCE)[0]
    if matches.size == 0:
        return None
    return int(matches[0])


def _find_edge_position(point: np.ndarray, loop: np.ndarray) -> tuple[int, int, float]:
    best = (0, 1, 0.0)
    best_distance = math.inf
    n = loop.shape[0]
    for i in range(n):
        j = (i + 1) % n
        p0 = loop[i]
        edge = loop[j] - p0
        length_sq = float(np.dot(edge, edge))
        if length_sq < POSITION_TOLERANCE * POSITION_TOLERANCE:
            continue
        t = float(np.dot(edge, point - p0)) / length_sq
        t = min(max(t, 0.0), 1.0)
        distance = float(np.linalg.norm(point - (p0 + t * edge)))
        if distance < best_distance:
            best_distance = distance
            best = (i, j, t)
    return best


def compute_vertex_source(
    vertex: np.ndarray,
    bottom: np.ndarray,
    bottom_height: float,
    top: np.ndarray,
    top_height: float,
) -> VertexSource:
    """Classify where a face vertex came from relative to the two loops."""

    z = float(vertex[2])
    is_bottom = abs(z - bottom_height) < HEIGHT_TOLERANCE
    is_top = abs(z - top_height) < HEIGHT_TOLERANCE
    if not is_bottom and not is_top:
        warnings.warn(
            f"Loft vertex at unexpected height {z:.6g} (expected {bottom_height:.6g} or {top_height:.6g}).",
            RuntimeWarning,
        )
        return InterpolatedSource(loop="bottom", edge_start=0, edge_end=1, t=0.0)

    side: LoopSide = "bottom" if is_bottom else "top"
    loop = bottom if is_bottom else top
    point = np.asarray(vertex[:2], dtype=float)

    index = _find_exact_vertex(point, loop)
    if index is not None:
        return SketchSource(loop=side, index=index)

    edge_start, edge_end, t = _find_edge_position(point, loop)
    return InterpolatedSource(loop=side, edge_start=edge_start, edge_end=edge_end, t=t)


def freeze_segment(
    faces: Sequence[LoftFace],
    bottom: Sequence[Sequence[float]] | np.ndarray,
    bottom_height: float,
    top: Sequence[Sequence[float]] | np.ndarray,
    top_height: float,
) -> FrozenSegment:
    """Snapshot ``faces`` and the provenance of each of their vertices.

    ``bottom`` and ``top`` must be the loops exactly as the faces were built
    from them; indices in the sources refer to these arrays.
    """

    bottom_pts = as_loop(bottom)
    top_pts = as_loop(top)
    frozen_faces = []
    for face in faces:
        vertices = np.array(face.vertices, dtype=float)
        sources = tuple(
            compute_vertex_source(vertex, bottom_pts, bottom_height, top_pts, top_height)
            for vertex in vertices
        )
        frozen_faces.append(FrozenFace(vertices=vertices, sources=sources))
    return FrozenSegment(faces=frozen_faces)


def update_frozen_positions(
    frozen: FrozenSegment,
    bottom: Sequence[Sequence[float]] | np.ndarray,
    bottom_height: float,
    top: Sequence[Sequence[float]] | np.ndarray,
    top_height: float,
) -> None:
    """Move every frozen vertex to follow the current loops, in place.

    Face connectivity is untouched. Sources pointing past the end of the
    current loop leave their vertex where it was.
    """

    loops = {
        "bottom": (as_loop(bottom), float(bottom_height)),
        "top": (as_loop(top), float(top_height)),
    }
    for face in frozen.faces:
        buffer = face.vertices
        for i, source in enumerate(face.sources):
            points, height = loops[source.loop]
            count = points.shape[0]
            if isinstance(source, SketchSource):
                if not 0 <= source.index < count:
                    continue
                x, y = points[source.index]
            elif isinstance(source, InterpolatedSource):
                if not (0 <= source.edge_start < count and 0 <= source.edge_end < count):
                    continue
                p0 = points[source.edge_start]
                p1 = points[source.edge_end]
                x, y = p0 + source.t * (p1 - p0)
            else:
                raise TypeError(f"Unsupported vertex source: {source!r}")
            buffer[i, 0] = x
            buffer[i, 1] = y
            buffer[i, 2] = height


__all__ = [
    "POSITION_TOLERANCE",
    "HEIGHT_TOLERANCE",
    "FrozenRecordError",
    "SketchSource",
    "InterpolatedSource",
    "VertexSource",
    "FrozenFace",
    "FrozenSegment",
    "source_to_record",
    "source_from_record",
    "compute_vertex_source",
    "freeze_segment",
    "update_frozen_positions",
]
