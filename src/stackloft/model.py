"""Stacked cross-sections and the loft geometry derived from them.

A :class:`SketchModel` owns the cross-sections (sorted bottom to top) and one
lock slot per adjacent pair. A slot holds the segment's
:class:`~stackloft.loft.frozen.FrozenSegment` while it is locked and ``None``
otherwise, so a segment can never be locked without frozen topology.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

import numpy as np

from stackloft.loft._polygon import as_loop, ensure_winding_ccw
from stackloft.loft.anchor_resample import ANCHOR_EPSILON
from stackloft.loft.faces import LoftFace
from stackloft.loft.frozen import FrozenSegment, freeze_segment, update_frozen_positions
from stackloft.loft.guard import would_cause_self_intersection
from stackloft.loft.strategies import LoftStrategy, build_segment
from stackloft.mesh import Mesh, mesh_from_polygons

RING_TOLERANCE = 1e-4


@dataclass
class CrossSection:
    points: np.ndarray
    height: float
    name: str = ""

    def __post_init__(self) -> None:
        self.points = as_loop(self.points)
        self.height = float(self.height)

    @property
    def vertex_count(self) -> int:
        return int(self.points.shape[0])


@dataclass
class LoftSegment:
    bottom: CrossSection
    top: CrossSection
    faces: list[LoftFace]
    locked: bool = False

    @property
    def triangle_count(self) -> int:
        return sum(1 for face in self.faces if face.is_triangle)

    @property
    def quad_count(self) -> int:
        return sum(1 for face in self.faces if face.is_quad)


@dataclass
class LoftGeometry:
    """Faces for every segment of a model; rebuilt on each edit."""

    segments: list[LoftSegment] = field(default_factory=list)

    def heights(self) -> list[float]:
        if not self.segments:
            return []
        return [self.segments[0].bottom.height] + [segment.top.height for segment in self.segments]

    def roof_vertices(self) -> np.ndarray | None:
        if not self.segments:
            return None
        return self.segments[-1].top.points.copy()

    def roof_height(self) -> float:
        if not self.segments:
            return 0.0
        return self.segments[-1].top.height

    def faces(self) -> list[LoftFace]:
        return [face for segment in self.segments for face in segment.faces]

    def to_mesh(self, cap_ends: bool = False) -> Mesh:
        """Weld all segment faces into one triangle mesh, optionally capped."""

        polygons = [face.vertices for face in self.faces()]
        if cap_ends and self.segments:
            first = self.segments[0]
            last = self.segments[-1]
            bottom_ring = boundary_ring(first.faces, first.bottom.height)
            top_ring = boundary_ring(last.faces, last.top.height)
            polygons.extend(tri[::-1] for tri in _cap_triangles(bottom_ring))
            polygons.extend(_cap_triangles(top_ring))
        mesh = mesh_from_polygons(polygons)
        mesh.metadata["segments"] = len(self.segments)
        return mesh

    def debug_data(self) -> dict[str, Any]:
        """Loft inputs and face statistics, for reproducing problem cases."""

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "segmentCount": len(self.segments),
            "segments": [
                {
                    "index": index,
                    "locked": segment.locked,
                    "bottom": {
                        "height": segment.bottom.height,
                        "vertices": segment.bottom.points.tolist(),
                    },
                    "top": {
                        "height": segment.top.height,
                        "vertices": segment.top.points.tolist(),
                    },
                    "faceCount": len(segment.faces),
                    "faceTypes": {
                        "triangles": segment.triangle_count,
                        "quads": segment.quad_count,
                    },
                }
                for index, segment in enumerate(self.segments)
            ],
        }


def _ring_key(point: np.ndarray) -> tuple[float, float]:
    return (round(float(point[0]), 6), round(float(point[1]), 6))


def boundary_ring(faces: Iterable[LoftFace], height: float) -> np.ndarray:
    """The loop the band actually uses at ``height``, as a CCW ring.

    Face edges lying entirely at ``height`` are chained end to start, which
    recovers any points the loft inserted on the original loop edges.
    """

    edges: dict[tuple[float, float], tuple[np.ndarray, np.ndarray]] = {}
    for face in faces:
        corners = face.vertices
        k = corners.shape[0]
        for i in range(k):
            p = corners[i]
            q = corners[(i + 1) % k]
            if abs(p[2] - height) >= RING_TOLERANCE or abs(q[2] - height) >= RING_TOLERANCE:
                continue
            if _ring_key(p) == _ring_key(q):
                continue
            edges[_ring_key(p)] = (p, q)

    if not edges:
        return np.zeros((0, 3), dtype=float)

    ring: list[np.ndarray] = []
    key = next(iter(edges))
    while key in edges:
        p, q = edges.pop(key)
        ring.append(p[:2])
        key = _ring_key(q)

    xy = ensure_winding_ccw(np.asarray(ring, dtype=float))
    return np.column_stack([xy, np.full(xy.shape[0], float(height))])


def _snapshot(section: CrossSection) -> CrossSection:
    return CrossSection(section.points.copy(), section.height, section.name)


def _cap_triangles(ring: np.ndarray) -> list[np.ndarray]:
    if ring.shape[0] < 3:
        return []
    try:
        import mapbox_earcut as earcut
    except ImportError as exc:  # pragma: no cover - runtime dependency
        raise ImportError("mapbox_earcut is required for cap triangulation.") from exc

    vertices = ring[:, :2].astype(np.float64)
    ring_ends = np.asarray([ring.shape[0]], dtype=np.uint32)
    indices = earcut.triangulate_float64(vertices, ring_ends)
    triangles = _restore_skipped_vertices(np.asarray(indices, dtype=np.int64).reshape(-1, 3), ring.shape[0])
    result = []
    for tri in triangles:
        a, b, c = vertices[tri]
        if (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0]) < 0:
            tri = tri[::-1]
        result.append(ring[tri])
    return result


def _restore_skipped_vertices(triangles: np.ndarray, count: int) -> np.ndarray:
    """Fan cap triangles over ring vertices earcut dropped as collinear.

    Without this the cap edge would jump over vertices the side faces use,
    leaving T-junctions in the welded mesh.
    """

    used = {int(i) for i in triangles.ravel()}

    def skipped(a: int, b: int) -> list[int]:
        chain = []
        i = (a + 1) % count
        while i != b:
            if i in used:
                return []
            chain.append(i)
            i = (i + 1) % count
        return chain

    pending = [tuple(int(i) for i in tri) for tri in triangles]
    result: list[tuple[int, int, int]] = []
    while pending:
        a, b, c = pending.pop()
        for p, q, r in ((a, b, c), (b, c, a), (c, a, b)):
            forward = skipped(p, q)
            path = [p, *forward, q] if forward else [q, *skipped(q, p), p]
            if len(path) > 2:
                used.update(path)
                pending.extend((path[k], path[k + 1], r) for k in range(len(path) - 1))
                break
        else:
            result.append((a, b, c))
    return np.asarray(result, dtype=np.int64).reshape(-1, 3)


class SketchModel:
    """Cross-sections stacked by height plus per-segment lock state."""

    def __init__(
        self,
        name: str = "building",
        sections: Sequence[CrossSection] = (),
        strategy: LoftStrategy | str = LoftStrategy.PERIMETER_WALK,
        anchor_epsilon: float = ANCHOR_EPSILON,
    ) -> None:
        self.name = name
        self.strategy = LoftStrategy.parse(strategy)
        self.anchor_epsilon = float(anchor_epsilon)
        self._sections: list[CrossSection] = sorted(sections, key=lambda section: section.height)
        self._frozen: list[FrozenSegment | None] = [None] * max(0, len(self._sections) - 1)

    @property
    def sections(self) -> tuple[CrossSection, ...]:
        return tuple(self._sections)

    @property
    def segment_count(self) -> int:
        return len(self._frozen)

    def section(self, index: int) -> CrossSection:
        return self._sections[self._check_section(index)]

    def add_section(self, section: CrossSection) -> int:
        """Insert ``section`` by height and return its index.

        A section landing between two others splits that segment, which is
        unlocked since its frozen topology no longer applies.
        """

        heights = [existing.height for existing in self._sections]
        index = bisect.bisect_right(heights, section.height)
        before = len(self._sections)
        self._sections.insert(index, section)
        if before == 0:
            return index
        if index == 0:
            self._frozen.insert(0, None)
        elif index == before:
            self._frozen.append(None)
        else:
            self._frozen[index - 1] = None
            self._frozen.insert(index, None)
        return index

    def remove_section(self, index: int) -> CrossSection:
        """Remove a section; the two segments it joined merge unlocked."""

        index = self._check_section(index)
        count = len(self._sections)
        removed = self._sections.pop(index)
        if count == 1:
            return removed
        if index == 0:
            del self._frozen[0]
        elif index == count - 1:
            del self._frozen[-1]
        else:
            del self._frozen[index]
            self._frozen[index - 1] = None
        return removed

    def set_section_points(self, index: int, points: Sequence[Sequence[float]] | np.ndarray) -> None:
        self._sections[self._check_section(index)].points = as_loop(points)

    def set_section_height(self, index: int, height: float) -> None:
        index = self._check_section(index)
        height = float(height)
        if index > 0 and height <= self._sections[index - 1].height:
            raise ValueError("Section height must stay above the section beneath it.")
        if index < len(self._sections) - 1 and height >= self._sections[index + 1].height:
            raise ValueError("Section height must stay below the section over it.")
        self._sections[index].height = height

    def move_vertex(self, section_index: int, vertex_index: int, position: Sequence[float]) -> bool:
        """Move one vertex unless that would make the section self-intersect."""

        section = self.section(section_index)
        count = section.vertex_count
        if not 0 <= vertex_index < count:
            raise ValueError(f"Vertex index {vertex_index} out of range for {count} vertices.")
        if would_cause_self_intersection(section.points, vertex_index, position):
            return False
        points = section.points.copy()
        points[vertex_index] = np.asarray(position, dtype=float).reshape(2)
        section.points = points
        return True

    def is_segment_locked(self, index: int) -> bool:
        return self._frozen[self._check_segment(index)] is not None

    def frozen_segment(self, index: int) -> FrozenSegment | None:
        return self._frozen[self._check_segment(index)]

    def lock_segment(self, index: int) -> FrozenSegment:
        """Freeze the segment's current faces; locking twice keeps the first snapshot."""

        index = self._check_segment(index)
        existing = self._frozen[index]
        if existing is not None:
            return existing
        bottom = self._sections[index]
        top = self._sections[index + 1]
        if top.height == bottom.height:
            raise ValueError(f"Segment {index} has zero height and cannot be locked.")
        result = build_segment(
            self.strategy,
            bottom.points,
            bottom.height,
            top.points,
            top.height,
            anchor_epsilon=self.anchor_epsilon,
        )
        frozen = freeze_segment(result.faces, bottom.points, bottom.height, top.points, top.height)
        self._frozen[index] = frozen
        return frozen

    def unlock_segment(self, index: int) -> None:
        self._frozen[self._check_segment(index)] = None

    def restore_lock(self, index: int, frozen: FrozenSegment) -> None:
        """Install a previously saved snapshot for segment ``index``."""

        self._frozen[self._check_segment(index)] = frozen

    def build_geometry(self) -> LoftGeometry:
        """Rebuild unlocked segments and replay locked ones."""

        segments: list[LoftSegment] = []
        for index, frozen in enumerate(self._frozen):
            bottom = self._sections[index]
            top = self._sections[index + 1]
            if frozen is not None:
                update_frozen_positions(frozen, bottom.points, bottom.height, top.points, top.height)
                faces = frozen.loft_faces()
            else:
                faces = build_segment(
                    self.strategy,
                    bottom.points,
                    bottom.height,
                    top.points,
                    top.height,
                    anchor_epsilon=self.anchor_epsilon,
                ).faces
            segments.append(
                LoftSegment(_snapshot(bottom), _snapshot(top), faces, locked=frozen is not None)
            )
        return LoftGeometry(segments)

    def _check_section(self, index: int) -> int:
        if not 0 <= index < len(self._sections):
            raise ValueError(f"Section index {index} out of range for {len(self._sections)} sections.")
        return index

    def _check_segment(self, index: int) -> int:
        if not 0 <= index < len(self._frozen):
            raise ValueError(f"Segment index {index} out of range for {len(self._frozen)} segments.")
        return index


__all__ = [
    "CrossSection",
    "LoftSegment",
    "LoftGeometry",
    "SketchModel",
    "boundary_ring",
]
