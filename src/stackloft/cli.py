from __future__ import annotations

import json
import pathlib

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stackloft._config import LoftSettings, get_loft_settings
from stackloft.io.building import BuildingFormatError, load_model, save_model
from stackloft.io.stl import write_stl
from stackloft.loft._polygon import regular_polygon
from stackloft.loft.guard import would_cause_self_intersection
from stackloft.loft.strategies import LoftStrategy
from stackloft.mesh import analyze_mesh
from stackloft.model import CrossSection, SketchModel
from stackloft.preview import LoftPreviewer, PreviewBackendError

console = Console()
app = typer.Typer(help="Loft stacked floor-plan sketches into building shells.")


def _log_active_units(settings: LoftSettings) -> None:
    console.print(f"[magenta]Units: {settings.units} ({settings.unit_label}).[/magenta]")


def _next_available_path(path: pathlib.Path) -> pathlib.Path:
    """Return a non-conflicting path by appending ' (n)' before the suffix."""

    if not path.exists():
        return path

    parent = path.parent
    stem = path.stem
    suffix = path.suffix
    n = 1
    while True:
        candidate = parent / f"{stem} ({n}){suffix}"
        if not candidate.exists():
            return candidate
        n += 1


def _parse_strategy(name: str | None) -> LoftStrategy | None:
    if name is None:
        return None
    try:
        return LoftStrategy.parse(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_model(
    building: pathlib.Path,
    settings: LoftSettings,
    strategy: LoftStrategy | None = None,
) -> SketchModel:
    if not building.exists():
        raise typer.BadParameter(f"Building path {building} does not exist.")
    try:
        model = load_model(building)
    except BuildingFormatError as exc:
        raise typer.BadParameter(str(exc)) from exc
    model.anchor_epsilon = settings.anchor_epsilon
    if strategy is not None:
        model.strategy = strategy
    return model


@app.command()
def init(
    building: pathlib.Path = typer.Argument(..., help="Path of the building document to create."),
    sides: int = typer.Option(4, min=3, help="Vertex count of each floor outline."),
    size: float = typer.Option(10.0, min=0.0, help="Circumradius of each floor outline."),
    levels: int = typer.Option(2, min=2, help="Number of stacked cross-sections."),
    level_height: float = typer.Option(3.0, min=0.0, help="Vertical spacing between cross-sections."),
    strategy: str | None = typer.Option(None, "--strategy", help="Loft strategy stored in the document."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Allow replacing an existing document."),
) -> None:
    """
    Write a starter building: identical regular outlines stacked at even heights.
    """

    if building.exists() and not overwrite:
        raise typer.BadParameter(f"{building} already exists; pass --overwrite to replace it.")

    settings = get_loft_settings()
    chosen = _parse_strategy(strategy) or settings.default_strategy
    outline = regular_polygon(sides, size)
    model = SketchModel(
        name=building.stem,
        sections=[
            CrossSection(outline, level * level_height, name=f"level-{level}") for level in range(levels)
        ],
        strategy=chosen,
    )
    save_model(model, building)
    console.print(
        Panel(
            f"Wrote {levels} cross-sections to [green]{building}[/green] using {chosen.value}.",
            title="Building created",
            border_style="green",
        )
    )


@app.command()
def info(
    building: pathlib.Path = typer.Argument(..., help="Building document to summarize."),
    strategy: str | None = typer.Option(None, "--strategy", help="Override the document's loft strategy."),
    debug: bool = typer.Option(False, "--debug", help="Print loft inputs and face statistics as JSON."),
) -> None:
    """
    Rebuild the loft and report per-segment face statistics.
    """

    settings = get_loft_settings()
    model = _open_model(building, settings, _parse_strategy(strategy))
    geometry = model.build_geometry()

    if debug:
        typer.echo(json.dumps(geometry.debug_data(), indent=2))
        return

    table = Table(title=f"{model.name} ({model.strategy.value})")
    table.add_column("Segment", justify="right")
    table.add_column(f"Bottom ({settings.unit_label})", justify="right")
    table.add_column(f"Top ({settings.unit_label})", justify="right")
    table.add_column("Quads", justify="right")
    table.add_column("Triangles", justify="right")
    table.add_column("Locked")
    for index, segment in enumerate(geometry.segments):
        table.add_row(
            str(index),
            f"{segment.bottom.height:.4g}",
            f"{segment.top.height:.4g}",
            str(segment.quad_count),
            str(segment.triangle_count),
            "[red]yes[/red]" if segment.locked else "no",
        )
    console.print(table)
    console.print(f"{len(model.sections)} cross-sections, {model.segment_count} segments.")


@app.command()
def export(
    building: pathlib.Path = typer.Argument(..., help="Building document to export."),
    output: pathlib.Path = typer.Option(
        pathlib.Path("building.stl"),
        "--output",
        "-o",
        help="Path to the STL file that will be produced.",
    ),
    caps: bool = typer.Option(True, "--caps/--no-caps", help="Close the ground floor and roof."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Allow replacing an existing STL."),
    ascii: bool = typer.Option(False, "--ascii", help="Write ASCII STL instead of binary."),
    strategy: str | None = typer.Option(None, "--strategy", help="Override the document's loft strategy."),
) -> None:
    """
    Loft every segment into a single mesh and save it as an STL file.
    """

    settings = get_loft_settings()
    model = _open_model(building, settings, _parse_strategy(strategy))
    _log_active_units(settings)

    final_output = output
    if output.exists():
        if not overwrite:
            final_output = _next_available_path(output)
            if final_output != output:
                console.print(f"[yellow]Output {output} exists; writing to {final_output} instead.[/yellow]")

    mesh = model.build_geometry().to_mesh(cap_ends=caps)
    if mesh.n_faces == 0:
        raise typer.BadParameter(f"{building} has no segments to export.")
    analysis = analyze_mesh(mesh)
    for issue in analysis.issues():
        console.print(f"[yellow]Mesh check: {issue}.[/yellow]")
    try:
        write_stl(mesh, final_output, ascii=ascii)
    except OSError as exc:  # pragma: no cover - filesystem failure
        raise typer.BadParameter(f"Failed to export STL: {exc}") from exc

    mode = "ASCII" if ascii else "binary"
    console.print(
        Panel(
            f"Wrote {mode} STL with {mesh.n_faces} triangles to [green]{final_output}[/green].",
            title="Export complete",
            border_style="green",
        )
    )


@app.command()
def lock(
    building: pathlib.Path = typer.Argument(..., help="Building document to edit in place."),
    segment: int = typer.Argument(..., help="Index of the segment to lock (0 is the ground floor)."),
) -> None:
    """
    Freeze a segment's current topology so later edits only move its vertices.
    """

    settings = get_loft_settings()
    model = _open_model(building, settings)
    try:
        already = model.is_segment_locked(segment)
        frozen = model.lock_segment(segment)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    save_model(model, building)
    if already:
        console.print(f"[yellow]Segment {segment} was already locked.[/yellow]")
        return
    console.print(f"[green]Locked segment {segment} with {len(frozen.faces)} faces.[/green]")


@app.command()
def unlock(
    building: pathlib.Path = typer.Argument(..., help="Building document to edit in place."),
    segment: int = typer.Argument(..., help="Index of the segment to unlock."),
) -> None:
    """
    Drop a segment's frozen topology so it is lofted afresh.
    """

    settings = get_loft_settings()
    model = _open_model(building, settings)
    try:
        model.unlock_segment(segment)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    save_model(model, building)
    console.print(f"[green]Unlocked segment {segment}.[/green]")


@app.command("move-vertex")
def move_vertex(
    building: pathlib.Path = typer.Argument(..., help="Building document to edit."),
    section: int = typer.Argument(..., help="Cross-section index."),
    vertex: int = typer.Argument(..., help="Vertex index within the cross-section."),
    x: float = typer.Argument(..., help="New x coordinate."),
    y: float = typer.Argument(..., help="New y coordinate."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only check whether the move is allowed."),
) -> None:
    """
    Move one outline vertex, refusing moves that would make the outline self-intersect.
    """

    settings = get_loft_settings()
    model = _open_model(building, settings)
    try:
        if dry_run:
            accepted = _check_move(model, section, vertex, x, y)
        else:
            accepted = model.move_vertex(section, vertex, (x, y))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not accepted:
        console.print(
            Panel.fit(
                f"Moving vertex {vertex} of section {section} to ({x:g}, {y:g}) would self-intersect.",
                title="Move rejected",
                style="red",
            )
        )
        raise typer.Exit(code=1)

    if dry_run:
        console.print(f"[green]Move of vertex {vertex} in section {section} is allowed.[/green]")
        return
    save_model(model, building)
    console.print(f"[green]Moved vertex {vertex} of section {section} to ({x:g}, {y:g}).[/green]")


def _check_move(model: SketchModel, section: int, vertex: int, x: float, y: float) -> bool:
    points = model.section(section).points
    if not 0 <= vertex < points.shape[0]:
        raise ValueError(f"Vertex index {vertex} out of range for {points.shape[0]} vertices.")
    return not would_cause_self_intersection(points, vertex, (x, y))


@app.command()
def preview(
    building: pathlib.Path = typer.Argument(..., help="Building document to preview."),
    watch: bool = typer.Option(True, help="Watch the document for changes and hot-reload."),
    screenshot: pathlib.Path | None = typer.Option(
        None, "--screenshot", help="Optional path to save a screenshot of the preview."
    ),
    show_edges: bool = typer.Option(True, "--show-edges/--hide-edges", help="Toggle face edge rendering."),
) -> None:
    """
    Open an interactive PyVista window; locked segments are tinted.
    """

    settings = get_loft_settings()
    _open_model(building, settings)

    console.rule("StackLoft Preview")
    console.print(f"Using building [green]{building}[/green]")
    if watch and screenshot is None:
        console.print("[cyan]Watching for changes; save to reload, close the window to stop.[/cyan]")
    _log_active_units(settings)

    previewer = LoftPreviewer(console=console, settings=settings)
    try:
        previewer.show(
            building,
            watch_file=watch,
            screenshot_path=screenshot,
            show_edges=show_edges,
        )
    except PreviewBackendError as exc:
        raise typer.BadParameter(str(exc)) from exc


if __name__ == "__main__":
    app()
