"""Demo commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import EngineConfig
from ..demo import load_demo
from ..engine import Engine
from ..errors import NotFoundError


def run_demos(config: EngineConfig) -> int:
    console = Console()
    engine = Engine(config)

    table = Table(title="Demos")
    table.add_column("name", style="cyan")
    table.add_column("design")
    table.add_column("symbols", justify="right")
    table.add_column("style")
    for name in engine.demo_names():
        demo = load_demo(name)
        design = demo.description.get("design", {})
        table.add_row(
            name,
            f"{design.get('lib')}/{design.get('cell')}",
            str(len(demo.description.get("symbols", []))),
            "bundled" if demo.style is not None else "current",
        )
    console.print(table)
    return 0


def run_demo(config: EngineConfig, name: str, out: Path | None = None) -> int:
    """Load a demo and write it as a project archive."""
    console = Console(stderr=True)
    engine = Engine(config)
    try:
        result = engine.load_demo(name)
    except NotFoundError as e:
        console.print(str(e), style="bold red")
        console.print(f"Available: {', '.join(engine.demo_names())}", style="dim")
        return 1
    if not result.applied:
        console.print(result.message, style="bold red")
        return 1

    out = out or Path(engine.export_filename())
    data = engine.export_project()
    out.write_bytes(data)
    console.print(f"Demo {name} written to {out} ({len(result.symbol_keys)} symbols)", style="green")
    return 0
