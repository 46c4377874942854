from __future__ import annotations

import json

import numpy as np
import pytest

from stackloft.io.building import (
    FORMAT_VERSION,
    BuildingFormatError,
    deserialize_model,
    load_model,
    save_model,
    serialize_model,
)
from stackloft.loft.strategies import LoftStrategy
from stackloft.model import CrossSection, SketchModel
from tests.helpers import subdivided_square


def _model() -> SketchModel:
    return SketchModel(
        name="annex",
        sections=[
            CrossSection(subdivided_square(4.0, 0), 0.0, name="ground"),
            CrossSection(subdivided_square(4.0, 2), 3.0),
            CrossSection(subdivided_square(3.0, 0) + 0.5, 6.0, name="roof"),
        ],
        strategy=LoftStrategy.ANCHOR_RESAMPLE,
    )


def test_serialize_layout():
    model = _model()
    model.lock_segment(1)
    data = serialize_model(model)

    assert data["version"] == FORMAT_VERSION
    assert data["name"] == "annex"
    assert data["strategy"] == "anchor-resample"
    assert data["bounds"] == {"min": [0.0, 0.0, 0.0], "max": [4.0, 4.0, 6.0]}
    assert [plane["z"] for plane in data["planes"]] == [0.0, 3.0, 6.0]
    assert data["planes"][0]["name"] == "ground"
    assert "name" not in data["planes"][1]
    assert [segment["locked"] for segment in data["segments"]] == [False, True]
    assert data["segments"][0]["frozen"] is None
    assert data["segments"][1]["frozen"]["faces"]


def test_empty_model_bounds_are_zero():
    data = serialize_model(SketchModel())
    assert data["bounds"] == {"min": [0.0, 0.0, 0.0], "max": [0.0, 0.0, 0.0]}
    assert data["planes"] == []
    assert data["segments"] == []


def test_save_and_load_round_trip(tmp_path):
    model = _model()
    model.lock_segment(0)
    path = save_model(model, tmp_path / "nested" / "annex.json")

    loaded = load_model(path)

    assert loaded.name == "annex"
    assert loaded.strategy is LoftStrategy.ANCHOR_RESAMPLE
    assert [section.name for section in loaded.sections] == ["ground", "", "roof"]
    for original, restored in zip(model.sections, loaded.sections):
        assert np.allclose(original.points, restored.points)
        assert original.height == restored.height
    assert loaded.is_segment_locked(0)
    assert not loaded.is_segment_locked(1)

    original_faces = model.build_geometry().segments[0].faces
    loaded_faces = loaded.build_geometry().segments[0].faces
    assert len(original_faces) == len(loaded_faces)
    for a, b in zip(original_faces, loaded_faces):
        assert np.allclose(a.vertices, b.vertices)


def test_extra_segment_entries_are_ignored():
    data = serialize_model(_model())
    data["segments"].append({"locked": True, "frozen": {"faces": []}})
    model = deserialize_model(data)
    assert model.segment_count == 2


def test_missing_segment_entries_load_unlocked():
    model = _model()
    model.lock_segment(0)
    data = serialize_model(model)
    data["segments"] = data["segments"][:1]
    loaded = deserialize_model(data)
    assert loaded.segment_count == 2
    assert loaded.is_segment_locked(0)
    assert not loaded.is_segment_locked(1)


def test_locked_without_frozen_data_loads_unlocked():
    data = serialize_model(_model())
    data["segments"][0] = {"locked": True, "frozen": None}
    with pytest.warns(RuntimeWarning, match="no frozen data"):
        model = deserialize_model(data)
    assert not model.is_segment_locked(0)


def test_missing_strategy_defaults_to_perimeter_walk():
    data = serialize_model(_model())
    del data["strategy"]
    assert deserialize_model(data).strategy is LoftStrategy.PERIMETER_WALK


@pytest.mark.parametrize(
    "mutate",
    [
        lambda data: data.update(version=2),
        lambda data: data.pop("version"),
        lambda data: data.update(strategy="spline"),
        lambda data: data["planes"][0].pop("z"),
        lambda data: data["segments"].__setitem__(0, {"locked": True, "frozen": {"nope": []}}),
    ],
    ids=["future-version", "no-version", "bad-strategy", "plane-without-z", "bad-frozen"],
)
def test_malformed_documents_raise(mutate):
    data = serialize_model(_model())
    mutate(data)
    with pytest.raises(BuildingFormatError):
        deserialize_model(data)


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{ not json")
    with pytest.raises(BuildingFormatError):
        load_model(path)


def test_document_must_be_an_object():
    with pytest.raises(BuildingFormatError):
        deserialize_model(json.loads("[1, 2, 3]"))


def _locked_data() -> dict:
    model = _model()
    model.lock_segment(0)
    return serialize_model(model)


def _flatten_frozen_vertices(data):
    face = data["segments"][0]["frozen"]["faces"][0]
    face["vertices"] = [vertex[:2] for vertex in face["vertices"]]


@pytest.mark.parametrize(
    "mutate",
    [
        lambda data: data["planes"].__setitem__(0, 5),
        lambda data: data.update(planes={"z": 0.0}),
        lambda data: data["segments"].__setitem__(0, True),
        lambda data: data.update(segments={"0": {"locked": True}}),
        lambda data: data["segments"][0]["frozen"]["faces"][0].update(vertices=7),
        _flatten_frozen_vertices,
    ],
    ids=["plane-number", "planes-object", "segment-bool", "segments-object", "vertices-number", "2d-vertices"],
)
def test_malformed_locked_documents_raise_format_errors(mutate):
    data = _locked_data()
    mutate(data)
    with pytest.raises(BuildingFormatError):
        deserialize_model(data)


def test_unsorted_planes_with_locks_are_rejected():
    data = _locked_data()
    data["planes"].reverse()
    with pytest.raises(BuildingFormatError, match="increasing height"):
        deserialize_model(data)


def test_unsorted_planes_without_locks_are_sorted():
    data = serialize_model(_model())
    data["planes"].reverse()
    model = deserialize_model(data)
    assert [section.height for section in model.sections] == [0.0, 3.0, 6.0]
    assert not any(model.is_segment_locked(index) for index in range(model.segment_count))
