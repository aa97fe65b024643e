"""
Bundled demo sets.

A demo is a schematic description (`demos/<name>.json`) with an optional
style (`demos/<name>.style.yaml`). Demos are read-only package data.
"""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from typing import Any

from .errors import NotFoundError
from .render.description import load_description_text
from .style.presets import parse_style_text
from .style.schema import LayerStyles

_DESCRIPTION_SUFFIX = ".json"
_STYLE_SUFFIX = ".style.yaml"


@dataclass(frozen=True)
class Demo:
    name: str
    description: dict[str, Any]
    style: LayerStyles | None = None


def _root():
    return resources.files("ckdraw") / "demos"


def list_demos() -> list[str]:
    """Demo names, e.g. "rc_filter.json"."""
    return sorted(
        entry.name
        for entry in _root().iterdir()
        if entry.name.endswith(_DESCRIPTION_SUFFIX)
    )


def load_demo(name: str) -> Demo:
    """
    Load a demo by name, with or without the `.json` extension.

    Raises:
        NotFoundError: No such demo
    """
    stem = name[: -len(_DESCRIPTION_SUFFIX)] if name.endswith(_DESCRIPTION_SUFFIX) else name
    entry = _root() / f"{stem}{_DESCRIPTION_SUFFIX}"
    if "/" in stem or not entry.is_file():
        raise NotFoundError(f"demo {name!r} not found")
    description = load_description_text(entry.read_text(encoding="utf-8"))

    style = None
    style_entry = _root() / f"{stem}{_STYLE_SUFFIX}"
    if style_entry.is_file():
        style = parse_style_text(style_entry.read_text(encoding="utf-8"), fmt="yaml")
    return Demo(name=f"{stem}{_DESCRIPTION_SUFFIX}", description=description, style=style)
