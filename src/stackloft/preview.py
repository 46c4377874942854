from __future__ import annotations

import queue
import threading
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from watchfiles import watch

from stackloft._config import LoftSettings, get_loft_settings
from stackloft.io.building import load_model
from stackloft.mesh import mesh_to_pyvista
from stackloft.model import LoftGeometry, LoftSegment

UNLOCKED_COLOR = "#6ab0ff"
LOCKED_COLOR = "#f58f7c"


class PreviewBackendError(RuntimeError):
    """Raised when a preview backend cannot run."""


class LoftPreviewer:
    """Render a building's loft with PyVista, reloading when the file changes."""

    def __init__(self, console: Console, settings: LoftSettings | None = None) -> None:
        self.console = console
        self.settings = settings or get_loft_settings()
        self._pv = None

    def show(
        self,
        building_path: Path,
        watch_file: bool = True,
        screenshot_path: Path | None = None,
        show_edges: bool = True,
    ) -> None:
        pv = self._ensure_backend()
        plotter = pv.Plotter(window_size=(1280, 800))
        self._apply_geometry(plotter, self._load(building_path), show_edges)

        if screenshot_path is not None:
            screenshot_path.parent.mkdir(parents=True, exist_ok=True)
            plotter.show(title="StackLoft Preview", auto_close=True, screenshot=str(screenshot_path))
            plotter.close()
            return

        if not watch_file:
            plotter.show(title="StackLoft Preview")
            plotter.close()
            return

        reload_queue: queue.Queue[float] = queue.Queue()
        stop_event = threading.Event()
        watcher = threading.Thread(
            target=self._watch_building,
            args=(building_path, reload_queue, stop_event),
            name="stackloft-watch",
            daemon=True,
        )
        watcher.start()

        def process_queue() -> None:
            requested = False
            while True:
                try:
                    reload_queue.get_nowait()
                    requested = True
                except queue.Empty:
                    break
            if not requested:
                return
            try:
                geometry = self._load(building_path)
            except Exception as exc:  # pragma: no cover - surfaced via console
                self.console.print(Panel.fit(str(exc), title="Reload failed", style="red"))
                return
            self._apply_geometry(plotter, geometry, show_edges)
            plotter.render()
            self.console.print(f"[green]Reloaded {building_path}[/green]")

        callback_id = plotter.add_callback(process_queue, interval=100)
        try:
            plotter.show(title="StackLoft Preview", auto_close=False)
        finally:
            stop_event.set()
            remove_callback = getattr(plotter, "remove_callback", None)
            if callable(remove_callback):
                remove_callback(callback_id)
            plotter.close()

    def _ensure_backend(self):
        if self._pv is None:
            try:
                import pyvista as pv
            except ImportError as exc:  # pragma: no cover - runtime dep
                raise PreviewBackendError(
                    "PyVista is required for previewing. Install stackloft with `pip install -e .`."
                ) from exc
            pv.set_plot_theme("document")
            self._pv = pv
        return self._pv

    def _load(self, building_path: Path) -> LoftGeometry:
        model = load_model(building_path)
        model.anchor_epsilon = self.settings.anchor_epsilon
        return model.build_geometry()

    def _apply_geometry(self, plotter, geometry: LoftGeometry, show_edges: bool) -> None:
        plotter.clear()
        plotter.add_axes(interactive=True)
        label = self.settings.unit_label
        plotter.show_bounds(grid="front", xlabel=f"X ({label})", ylabel=f"Y ({label})", zlabel=f"Z ({label})")
        for index, segment in enumerate(geometry.segments):
            if not segment.faces:
                continue
            plotter.add_mesh(
                mesh_to_pyvista(_segment_mesh(segment)),
                name=f"segment-{index}",
                color=LOCKED_COLOR if segment.locked else UNLOCKED_COLOR,
                show_edges=show_edges,
                smooth_shading=False,
            )

    def _watch_building(
        self,
        building_path: Path,
        reload_queue: "queue.Queue[float]",
        stop_event: threading.Event,
    ) -> None:
        resolved = building_path.resolve()
        for changes in watch(str(resolved.parent), stop_event=stop_event, debounce=300):
            if stop_event.is_set():
                return
            if any(Path(changed).resolve() == resolved for _, changed in changes):
                reload_queue.put_nowait(0.0)


def _segment_mesh(segment: LoftSegment):
    return LoftGeometry([segment]).to_mesh()


__all__ = ["LoftPreviewer", "PreviewBackendError"]
