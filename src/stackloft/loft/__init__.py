"""Loft geometry engine: band construction, correspondence, freezing, guards."""

from __future__ import annotations

from .anchor_resample import Anchor, anchor_resample, find_anchors
from .faces import LoftFace, LoftResult
from .frozen import (
    FrozenFace,
    FrozenRecordError,
    FrozenSegment,
    InterpolatedSource,
    SketchSource,
    VertexSource,
    freeze_segment,
    update_frozen_positions,
)
from .guard import would_cause_self_intersection
from .parameterized import ParameterizedLoop
from .perimeter_walk import AdaptiveSubdivisionOptions, FaceBuilder, perimeter_walk
from .strategies import LoftStrategy, build_segment, make_loftable
from .uniform_resample import uniform_resample

__all__ = [
    "Anchor",
    "anchor_resample",
    "find_anchors",
    "LoftFace",
    "LoftResult",
    "FrozenFace",
    "FrozenRecordError",
    "FrozenSegment",
    "InterpolatedSource",
    "SketchSource",
    "VertexSource",
    "freeze_segment",
    "update_frozen_positions",
    "would_cause_self_intersection",
    "ParameterizedLoop",
    "AdaptiveSubdivisionOptions",
    "FaceBuilder",
    "perimeter_walk",
    "LoftStrategy",
    "build_segment",
    "make_loftable",
    "uniform_resample",
]
