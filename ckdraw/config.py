"""
Engine configuration.

Settings live in `ckdraw.toml`, found by walking up from the working
directory. Every key is optional:

    [history]
    max_entries = 50

    [export]
    filename = "drawckt_project.zip"

    [styles]
    preset_dirs = ["styles"]
    default_preset = "default"

    [journal]
    path = ".ckdraw/journal.log"

Relative paths are resolved against the directory holding the file.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ValidationError
from .store.history import DEFAULT_HISTORY_LIMIT
from .style.registry import DEFAULT_PRESET

CONFIG_FILENAME = "ckdraw.toml"
DEFAULT_EXPORT_FILENAME = "drawckt_project.zip"


@dataclass(frozen=True)
class EngineConfig:
    history_limit: int = DEFAULT_HISTORY_LIMIT
    export_filename: str = DEFAULT_EXPORT_FILENAME
    preset_dirs: tuple[Path, ...] = ()
    default_preset: str = DEFAULT_PRESET
    journal_path: Path | None = None
    source: Path | None = field(default=None, compare=False)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def find_config(start: Path) -> Path | None:
    """Find `ckdraw.toml` by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def parse_config(data: dict[str, Any], base_dir: Path) -> EngineConfig:
    """
    Build a config from decoded TOML.

    Raises:
        ValidationError: Any value has the wrong type or range
    """
    errors: list[str] = []

    history = _coerce_dict(data.get("history"))
    limit = history.get("max_entries", DEFAULT_HISTORY_LIMIT)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        errors.append("history.max_entries must be a positive integer")
        limit = DEFAULT_HISTORY_LIMIT

    export = _coerce_dict(data.get("export"))
    filename = export.get("filename", DEFAULT_EXPORT_FILENAME)
    if not isinstance(filename, str) or not filename.strip() or "/" in filename:
        errors.append("export.filename must be a plain file name")
        filename = DEFAULT_EXPORT_FILENAME
    elif not filename.endswith(".zip"):
        filename += ".zip"

    styles = _coerce_dict(data.get("styles"))
    raw_dirs = styles.get("preset_dirs", [])
    if not isinstance(raw_dirs, list) or not all(isinstance(d, str) for d in raw_dirs):
        errors.append("styles.preset_dirs must be a list of paths")
        raw_dirs = []
    default_preset = styles.get("default_preset", DEFAULT_PRESET)
    if not isinstance(default_preset, str) or not default_preset.strip():
        errors.append("styles.default_preset must be a non-empty string")
        default_preset = DEFAULT_PRESET

    journal = _coerce_dict(data.get("journal"))
    journal_raw = journal.get("path")
    if journal_raw is not None and (not isinstance(journal_raw, str) or not journal_raw.strip()):
        errors.append("journal.path must be a path string")
        journal_raw = None

    if errors:
        raise ValidationError(errors)

    return EngineConfig(
        history_limit=limit,
        export_filename=filename,
        preset_dirs=tuple((base_dir / d).resolve() for d in raw_dirs),
        default_preset=default_preset.strip(),
        journal_path=(base_dir / journal_raw).resolve() if journal_raw else None,
    )


def load_config(path: Path) -> EngineConfig:
    """Load a config file."""
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValidationError(f"{path.name}: {exc}") from exc
    config = parse_config(data, path.parent.resolve())
    return EngineConfig(
        history_limit=config.history_limit,
        export_filename=config.export_filename,
        preset_dirs=config.preset_dirs,
        default_preset=config.default_preset,
        journal_path=config.journal_path,
        source=path.resolve(),
    )


def resolve_config(explicit: Path | None = None, start: Path | None = None) -> EngineConfig:
    """Explicit file, else the nearest `ckdraw.toml`, else defaults."""
    if explicit is not None:
        return load_config(explicit)
    found = find_config(start or Path.cwd())
    return load_config(found) if found else EngineConfig()
