from __future__ import annotations

from rich.console import Console

from stackloft._config import get_loft_settings
from stackloft.io.building import save_model
from stackloft.model import CrossSection, SketchModel
from stackloft.preview import LOCKED_COLOR, UNLOCKED_COLOR, LoftPreviewer
from tests.helpers import subdivided_square


class RecordingPlotter:
    def __init__(self) -> None:
        self.meshes: list[tuple[str, object, dict]] = []
        self.cleared = 0
        self.bounds_labels: dict = {}

    def clear(self) -> None:
        self.cleared += 1
        self.meshes.clear()

    def add_axes(self, **kwargs) -> None:
        pass

    def show_bounds(self, **kwargs) -> None:
        self.bounds_labels = kwargs

    def add_mesh(self, mesh, name: str, **kwargs) -> None:
        self.meshes.append((name, mesh, kwargs))


def _building(tmp_path):
    outline = subdivided_square(4.0, 0)
    model = SketchModel(sections=[CrossSection(outline, 3.0 * level) for level in range(3)])
    model.lock_segment(1)
    return save_model(model, tmp_path / "tower.json")


def test_apply_geometry_tints_locked_segments(tmp_path):
    previewer = LoftPreviewer(console=Console(quiet=True), settings=get_loft_settings())
    geometry = previewer._load(_building(tmp_path))
    plotter = RecordingPlotter()

    previewer._apply_geometry(plotter, geometry, show_edges=False)

    assert plotter.cleared == 1
    assert [name for name, _, _ in plotter.meshes] == ["segment-0", "segment-1"]
    assert [kwargs["color"] for _, _, kwargs in plotter.meshes] == [UNLOCKED_COLOR, LOCKED_COLOR]
    assert all(mesh.n_cells == 8 for _, mesh, _ in plotter.meshes)
    assert plotter.bounds_labels["xlabel"] == "X (m)"


def test_reapplying_replaces_meshes(tmp_path):
    previewer = LoftPreviewer(console=Console(quiet=True))
    geometry = previewer._load(_building(tmp_path))
    plotter = RecordingPlotter()
    previewer._apply_geometry(plotter, geometry, show_edges=True)
    previewer._apply_geometry(plotter, geometry, show_edges=True)
    assert plotter.cleared == 2
    assert len(plotter.meshes) == 2
