"""Project commands: render, info, route, extract, restyle."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import EngineConfig
from ..engine import Engine
from ..errors import NotFoundError, RenderError, ValidationError
from ..ingest import IngestResult
from ..models import SCHEMATIC
from ..router import canonical_suffix, embedded_path
from ..style.presets import load_preset_file
from ..style.schema import LayerStyles


def _report(console: Console, result: IngestResult) -> None:
    for warning in result.warnings:
        console.print(f"warning: {warning}", style="yellow")
    if result.message:
        console.print(result.message, style="red" if not result.applied else "yellow")


def _load_style(console: Console, style_file: Path) -> LayerStyles | None:
    try:
        _, style = load_preset_file(style_file)
    except (OSError, ValidationError) as e:
        console.print(f"Cannot load style {style_file}: {e}", style="bold red")
        return None
    return style


def _open_project(console: Console, config: EngineConfig, project: Path) -> Engine | None:
    engine = Engine(config)
    result = engine.ingest_file(project)
    _report(console, result)
    if not result.applied:
        return None
    return engine


def _write_archive(console: Console, engine: Engine, out: Path) -> int:
    data = engine.export_project()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    console.print(f"Project written to {out} ({len(data)} bytes)", style="green")
    return 0


def run_render(
    config: EngineConfig,
    description: Path,
    out: Path | None = None,
    preset: str | None = None,
    style_file: Path | None = None,
) -> int:
    """Render a description (or re-open an archive) and write a project archive.

    Args:
        config: Engine configuration
        description: `.json` description or `.zip` project
        out: Output archive (defaults to the export file name in the working directory)
        preset: Name of a preset to render with
        style_file: YAML/JSON style file to render with (wins over `preset`)

    Returns:
        Exit code
    """
    console = Console(stderr=True)
    engine = Engine(config)

    style = None
    if preset:
        try:
            style = engine.styles.get_preset(preset)
        except NotFoundError as e:
            console.print(str(e), style="bold red")
            console.print(f"Available: {', '.join(engine.preset_names())}", style="dim")
            return 1
    if style_file:
        style = _load_style(console, style_file)
        if style is None:
            return 1

    result = engine.ingest_file(description, style)
    _report(console, result)
    if not result.applied:
        return 1
    if preset and not style_file:
        engine.set_preset(preset, apply=False)

    console.print(f"Rendered {len(result.symbol_keys)} symbols", style="dim")
    code = _write_archive(console, engine, out or Path(engine.export_filename()))
    return code if result.schematic_ok else 1


def run_info(config: EngineConfig, project: Path) -> int:
    """Show the entities, style and history of a project."""
    err = Console(stderr=True)
    engine = _open_project(err, config, project)
    if engine is None:
        return 1

    console = Console()
    table = Table(title=f"Project: {project.name}")
    table.add_column("path", style="cyan", no_wrap=True)
    table.add_column("kind", style="magenta")
    table.add_column("bytes", justify="right")
    table.add_column("sha256", style="dim")
    for key in engine.store.keys():
        artifact = engine.store.get(key)
        table.add_row(
            embedded_path(key),
            artifact.kind.value,
            str(artifact.size),
            engine.store.digest(key)[:12] + "…",
        )
    console.print(table)

    style_name = engine.styles.current_name or "(unnamed)"
    console.print(f"Style: {style_name}" + (" [yellow](unsaved changes)[/yellow]" if engine.has_style_drift else ""))
    console.print(f"Presets: {', '.join(engine.preset_names())}", style="dim")
    console.print(f"Description: {'included' if engine.description is not None else 'not included'}", style="dim")
    if not engine.has_schematic():
        console.print("No schematic in project", style="yellow")
    return 0


def run_route(config: EngineConfig, project: Path, path: str) -> int:
    """Print what the viewer receives for `path`."""
    err = Console(stderr=True)
    engine = _open_project(err, config, project)
    if engine is None:
        return 1
    try:
        content = engine.route(path)
    except NotFoundError as e:
        err.print(str(e), style="bold red")
        return 1
    print(content)
    return 0


def run_extract(config: EngineConfig, project: Path, directory: Path) -> int:
    """Write every diagram of a project under `directory` using its route suffix."""
    console = Console(stderr=True)
    engine = _open_project(console, config, project)
    if engine is None:
        return 1

    written = 0
    for key in engine.store.keys():
        dest = directory / canonical_suffix(key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(engine.content(key), encoding="utf-8")
        written += 1
    console.print(f"Extracted {written} diagrams to {directory}", style="green")
    if not engine.has_schematic():
        console.print(f"{canonical_suffix(SCHEMATIC)} missing from project", style="yellow")
    return 0


def run_restyle(config: EngineConfig, project: Path, style_file: Path, out: Path | None = None) -> int:
    """Apply a style file to a project and save it as the fixed style."""
    console = Console(stderr=True)
    style = _load_style(console, style_file)
    if style is None:
        return 1
    engine = _open_project(console, config, project)
    if engine is None:
        return 1

    try:
        diff = engine.apply_style(style)
    except RenderError as e:
        console.print(str(e), style="bold red")
        return 1
    engine.fix_style()

    if not diff.changed:
        console.print("Style unchanged", style="dim")
    elif diff.only_visibility_changed:
        console.print("Applied visibility changes", style="dim")
    else:
        console.print("Re-rendered all diagrams", style="dim")
    return _write_archive(console, engine, out or project.with_name(f"{project.stem}.restyled.zip"))
