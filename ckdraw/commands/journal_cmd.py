"""Journal command - show recorded operations."""

from __future__ import annotations

from rich.console import Console

from ..config import EngineConfig
from ..journal import format_journal_entry, read_journal


def run_journal(config: EngineConfig, last_n: int | None = None) -> int:
    console = Console()
    if config.journal_path is None:
        Console(stderr=True).print("No journal configured (set [journal] path in ckdraw.toml)", style="yellow")
        return 1

    entries = read_journal(config.journal_path, last_n)
    if not entries:
        console.print("Journal is empty", style="dim")
        return 0
    for entry in entries:
        console.print(format_journal_entry(entry), highlight=False)
        console.print()
    return 0
