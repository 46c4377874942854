"""Building documents: cross-sections plus per-segment lock state as JSON."""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any

from stackloft.loft.frozen import FrozenRecordError, FrozenSegment
from stackloft.loft.strategies import LoftStrategy
from stackloft.model import CrossSection, SketchModel

FORMAT_VERSION = 1


class BuildingFormatError(ValueError):
    """Raised when a building document cannot be read."""


def serialize_model(model: SketchModel) -> dict[str, Any]:
    planes = []
    xs: list[float] = []
    ys: list[float] = []
    zs: list[float] = []
    for section in model.sections:
        zs.append(section.height)
        xs.extend(float(x) for x in section.points[:, 0])
        ys.extend(float(y) for y in section.points[:, 1])
        plane: dict[str, Any] = {
            "z": section.height,
            "vertices": [[float(x), float(y)] for x, y in section.points],
        }
        if section.name:
            plane["name"] = section.name
        planes.append(plane)

    segments = []
    for index in range(model.segment_count):
        frozen = model.frozen_segment(index)
        segments.append(
            {
                "locked": frozen is not None,
                "frozen": None if frozen is None else frozen.to_record(),
            }
        )

    return {
        "version": FORMAT_VERSION,
        "name": model.name,
        "strategy": model.strategy.value,
        "bounds": {
            "min": [min(xs, default=0.0), min(ys, default=0.0), min(zs, default=0.0)],
            "max": [max(xs, default=0.0), max(ys, default=0.0), max(zs, default=0.0)],
        },
        "planes": planes,
        "segments": segments,
    }


def deserialize_model(data: dict[str, Any]) -> SketchModel:
    """Rebuild a model from a building document.

    Segment entries beyond the model's segment count are ignored and missing
    ones load unlocked. A locked entry without a frozen snapshot also loads
    unlocked.
    """

    if not isinstance(data, dict):
        raise BuildingFormatError("Building document must be a JSON object.")
    version = data.get("version")
    if version != FORMAT_VERSION:
        raise BuildingFormatError(f"Unsupported building format version {version!r}.")

    planes = data.get("planes", [])
    if not isinstance(planes, list):
        raise BuildingFormatError("Building 'planes' must be a list.")
    try:
        sections = []
        for plane in planes:
            if not isinstance(plane, dict):
                raise TypeError(f"expected an object, got {plane!r}")
            sections.append(
                CrossSection(
                    points=plane.get("vertices", []),
                    height=plane["z"],
                    name=plane.get("name", ""),
                )
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise BuildingFormatError(f"Malformed plane entry: {exc}") from exc

    try:
        strategy = LoftStrategy.parse(data.get("strategy", LoftStrategy.PERIMETER_WALK))
    except ValueError as exc:
        raise BuildingFormatError(str(exc)) from exc
    model = SketchModel(name=str(data.get("name", "building")), sections=sections, strategy=strategy)

    entries = data.get("segments") or []
    if not isinstance(entries, list):
        raise BuildingFormatError("Building 'segments' must be a list.")
    entries = entries[: model.segment_count]
    for index, entry in enumerate(entries):
        if entry is not None and not isinstance(entry, dict):
            raise BuildingFormatError(f"Segment {index} must be an object, got {entry!r}.")

    # Segment i joins planes i and i + 1 as stored.
    heights = [section.height for section in sections]
    has_locks = any(entry and entry.get("locked") for entry in entries)
    if has_locks and any(lower >= upper for lower, upper in zip(heights, heights[1:])):
        raise BuildingFormatError("Planes must be stored in increasing height order when segments are locked.")

    for index, entry in enumerate(entries):
        if not entry or not entry.get("locked"):
            continue
        record = entry.get("frozen")
        if record is None:
            warnings.warn(
                f"Segment {index} is marked locked but has no frozen data; loading it unlocked.",
                RuntimeWarning,
            )
            continue
        try:
            frozen = FrozenSegment.from_record(record)
        except FrozenRecordError as exc:
            raise BuildingFormatError(f"Segment {index}: {exc}") from exc
        model.restore_lock(index, frozen)
    return model


def save_model(model: SketchModel, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(serialize_model(model), indent=2) + "\n")
    return path


def load_model(path: Path) -> SketchModel:
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise BuildingFormatError(f"{path} is not valid JSON: {exc}") from exc
    return deserialize_model(data)


__all__ = [
    "FORMAT_VERSION",
    "BuildingFormatError",
    "serialize_model",
    "deserialize_model",
    "save_model",
    "load_model",
]
