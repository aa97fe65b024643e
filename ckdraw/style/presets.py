"""
Loading style presets from files.

Presets are YAML or JSON documents holding a single style mapping. The
preset name is the file stem unless the document sets `name`. Built-in
presets ship as package data under `ckdraw/presets`.
"""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from ..errors import ValidationError
from .schema import LayerStyles

logger = logging.getLogger(__name__)

PRESET_SUFFIXES = {".yaml", ".yml", ".json"}


def parse_style_text(text: str, fmt: str = "json") -> LayerStyles:
    """
    Parse an uploaded style payload.

    Args:
        text: Raw document text
        fmt: "json" or "yaml"

    Raises:
        ValidationError: Text does not parse or does not describe a style
    """
    try:
        if fmt == "json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValidationError(f"style is not valid {fmt.upper()}: {exc}") from exc
    if isinstance(data, dict):
        data = {k: v for k, v in data.items() if k != "name"}
    return LayerStyles.from_dict(data)


def load_preset_file(path: Path) -> tuple[str, LayerStyles]:
    """
    Load one preset file.

    Returns:
        (name, style)
    """
    text = path.read_text(encoding="utf-8")
    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    name = path.stem
    try:
        raw: Any = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValidationError(f"{path.name}: not valid {fmt.upper()}: {exc}") from exc
    if isinstance(raw, dict) and isinstance(raw.get("name"), str) and raw["name"].strip():
        name = raw["name"].strip()
    try:
        style = parse_style_text(text, fmt)
    except ValidationError as exc:
        raise ValidationError([f"{path.name}: {e}" for e in exc.errors]) from exc
    return name, style


def load_preset_dir(directory: Path) -> dict[str, LayerStyles]:
    """
    Load every preset file in a directory, sorted by file name.

    Files that cannot be read or do not describe a style are skipped with a
    warning, so one bad preset never blocks the rest.
    """
    presets: dict[str, LayerStyles] = {}
    if not directory.is_dir():
        logger.warning("preset directory %s does not exist", directory)
        return presets
    for path in sorted(directory.iterdir()):
        if not (path.is_file() and path.suffix.lower() in PRESET_SUFFIXES):
            continue
        try:
            name, style = load_preset_file(path)
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("skipping preset %s: %s", path, exc)
            continue
        presets[name] = style
    return presets


def builtin_presets() -> dict[str, LayerStyles]:
    """Presets bundled with the package."""
    presets: dict[str, LayerStyles] = {}
    root = resources.files("ckdraw") / "presets"
    for entry in sorted(root.iterdir(), key=lambda e: e.name):
        suffix = Path(entry.name).suffix.lower()
        if suffix not in PRESET_SUFFIXES:
            continue
        text = entry.read_text(encoding="utf-8")
        fmt = "json" if suffix == ".json" else "yaml"
        raw = yaml.safe_load(text) if fmt == "yaml" else json.loads(text)
        name = raw.get("name") if isinstance(raw, dict) and raw.get("name") else Path(entry.name).stem
        presets[name] = parse_style_text(text, fmt)
    return presets
