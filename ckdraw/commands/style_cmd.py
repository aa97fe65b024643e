"""Style preset listing."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ..config import EngineConfig
from ..engine import Engine
from ..style.schema import LAYERS


def run_presets(config: EngineConfig) -> int:
    console = Console()
    engine = Engine(config)

    table = Table(title="Style presets")
    table.add_column("name", style="cyan")
    table.add_column("layer order (top first)")
    table.add_column("hidden in schematic", style="dim")
    table.add_column("junctions")
    for name in engine.preset_names():
        style = engine.styles.get_preset(name)
        hidden = [layer for layer in LAYERS if not style.layer(layer).sch_visible]
        table.add_row(
            name + (" (default)" if name == config.default_preset else ""),
            " > ".join(style.layer_order),
            ", ".join(hidden) or "-",
            f"x{style.wire_intersection_scale:g}" if style.wire_show_intersection else "off",
        )
    console.print(table)
    return 0
