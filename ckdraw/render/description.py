"""
Schematic description records.

A description is the structured document the renderer consumes: the design
name, placed instances, wires, top-level pins, labels and shapes, and the
symbol templates the instances refer to. Parsing collects every problem and
raises a single RenderError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..errors import RenderError, ValidationError
from ..models import SymbolKey
from ..style.schema import LAYERS

SHAPE_TYPES = ("polygon", "rect", "label", "line", "ellipse")

ORIENTATIONS = ("R0", "R90", "R180", "R270", "MX", "MY", "MXR90", "MYR90")

JUSTIFY = (
    "upperLeft",
    "upperCenter",
    "upperRight",
    "centerLeft",
    "centerCenter",
    "centerRight",
    "lowerLeft",
    "lowerCenter",
    "lowerRight",
)

Point = tuple[float, float]


@dataclass(frozen=True)
class Shape:
    type: str  # polygon, rect, label, line, ellipse
    layer: str
    points: tuple[Point, ...] = ()  # polygon/line points, rect/ellipse bBox corners
    fill_style: int = 1  # 1 = outline only
    text: str = ""
    xy: Point = (0.0, 0.0)
    orient: str = "R0"
    height: float = 0.0
    justify: str = "centerCenter"


@dataclass(frozen=True)
class TemplatePin:
    name: str
    direction: str
    x: float
    y: float


@dataclass(frozen=True)
class SymbolTemplate:
    lib: str
    cell: str
    shapes: tuple[Shape, ...] = ()
    pins: tuple[TemplatePin, ...] = ()

    @property
    def key(self) -> SymbolKey:
        return SymbolKey(self.lib, self.cell)


@dataclass(frozen=True)
class Instance:
    name: str
    lib: str
    cell: str
    x: float
    y: float
    orient: str = "R0"

    @property
    def key(self) -> SymbolKey:
        return SymbolKey(self.lib, self.cell)


@dataclass(frozen=True)
class Wire:
    net: str
    points: tuple[Point, ...]


@dataclass
class SchematicDescription:
    lib: str
    cell: str
    instances: list[Instance] = field(default_factory=list)
    wires: list[Wire] = field(default_factory=list)
    pins: list[TemplatePin] = field(default_factory=list)
    symbols: list[SymbolTemplate] = field(default_factory=list)
    labels: list[Shape] = field(default_factory=list)
    shapes: list[Shape] = field(default_factory=list)

    @property
    def design_key(self) -> SymbolKey:
        return SymbolKey(self.lib, self.cell)

    def symbol_keys(self) -> list[SymbolKey]:
        return [s.key for s in self.symbols]


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


def _num(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _point(raw: Any, where: str, errors: list[str]) -> Point:
    if isinstance(raw, (list, tuple)) and len(raw) == 2 and all(_num(v) for v in raw):
        return (float(raw[0]), float(raw[1]))
    errors.append(f"{where}: expected [x, y], got {raw!r}")
    return (0.0, 0.0)


def _points(raw: Any, where: str, errors: list[str], minimum: int) -> tuple[Point, ...]:
    if not isinstance(raw, list):
        errors.append(f"{where}: expected a list of points")
        return ()
    pts = tuple(_point(p, f"{where}[{i}]", errors) for i, p in enumerate(raw))
    if len(pts) < minimum:
        errors.append(f"{where}: needs at least {minimum} points")
    return pts


def _str(raw: dict[str, Any], key: str, where: str, errors: list[str], allow_empty: bool = False) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or (not allow_empty and not value):
        errors.append(f"{where}.{key}: expected a{'' if allow_empty else ' non-empty'} string")
        return ""
    return value


def _float(raw: dict[str, Any], key: str, where: str, errors: list[str]) -> float:
    value = raw.get(key)
    if not _num(value):
        errors.append(f"{where}.{key}: expected a number")
        return 0.0
    return float(value)


def parse_shape(raw: Any, where: str, errors: list[str]) -> Shape | None:
    if not isinstance(raw, dict):
        errors.append(f"{where}: shape must be an object")
        return None
    kind = raw.get("type")
    if kind not in SHAPE_TYPES:
        errors.append(f"{where}.type: unknown shape type {kind!r}")
        return None
    layer = raw.get("layer")
    if layer not in LAYERS:
        errors.append(f"{where}.layer: unknown layer {layer!r}")
        return None

    fill_style = raw.get("fillStyle", 1)
    if isinstance(fill_style, bool) or not isinstance(fill_style, int):
        errors.append(f"{where}.fillStyle: expected an integer")
        fill_style = 1

    if kind in ("polygon", "line"):
        pts = _points(raw.get("points"), f"{where}.points", errors, minimum=2)
        return Shape(type=kind, layer=layer, points=pts, fill_style=fill_style)
    if kind in ("rect", "ellipse"):
        pts = _points(raw.get("bBox"), f"{where}.bBox", errors, minimum=2)
        return Shape(type=kind, layer=layer, points=pts[:2], fill_style=fill_style)

    orient = raw.get("orient", "R0")
    if orient not in ORIENTATIONS:
        errors.append(f"{where}.orient: unknown orientation {orient!r}")
    justify = raw.get("justify", "centerCenter")
    if justify not in JUSTIFY:
        errors.append(f"{where}.justify: unknown justification {justify!r}")
    return Shape(
        type=kind,
        layer=layer,
        text=_str(raw, "text", where, errors, allow_empty=True),
        xy=_point(raw.get("xy"), f"{where}.xy", errors),
        orient=orient,
        height=_float(raw, "height", where, errors),
        justify=justify,
    )


def _pin(raw: Any, where: str, errors: list[str]) -> TemplatePin | None:
    if not isinstance(raw, dict):
        errors.append(f"{where}: pin must be an object")
        return None
    return TemplatePin(
        name=_str(raw, "name", where, errors),
        direction=_str(raw, "direction", where, errors, allow_empty=True),
        x=_float(raw, "x", where, errors),
        y=_float(raw, "y", where, errors),
    )


def _list(data: dict[str, Any], key: str, errors: list[str]) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        errors.append(f"{key}: expected a list")
        return []
    return value


def parse_description(data: Any) -> SchematicDescription:
    """
    Validate and convert a raw description mapping.

    Raises:
        RenderError: The description is malformed (all problems listed)
    """
    errors: list[str] = []
    if not isinstance(data, dict):
        raise RenderError("schematic description must be a JSON object")

    design = data.get("design")
    if not isinstance(design, dict):
        errors.append("design: expected an object with lib and cell")
        design = {}
    lib = _str(design, "lib", "design", errors)
    cell = _str(design, "cell", "design", errors)

    symbols: list[SymbolTemplate] = []
    seen: set[tuple[str, str]] = set()
    for i, raw in enumerate(_list(data, "symbols", errors)):
        where = f"symbols[{i}]"
        if not isinstance(raw, dict):
            errors.append(f"{where}: symbol must be an object")
            continue
        s_lib = _str(raw, "lib", where, errors)
        s_cell = _str(raw, "cell", where, errors)
        if (s_lib, s_cell) in seen:
            errors.append(f"{where}: duplicate symbol {s_lib}/{s_cell}")
        seen.add((s_lib, s_cell))
        shapes = [parse_shape(s, f"{where}.shapes[{j}]", errors) for j, s in enumerate(_list(raw, "shapes", errors))]
        pins = [_pin(p, f"{where}.pins[{j}]", errors) for j, p in enumerate(_list(raw, "pins", errors))]
        symbols.append(
            SymbolTemplate(
                lib=s_lib,
                cell=s_cell,
                shapes=tuple(s for s in shapes if s is not None),
                pins=tuple(p for p in pins if p is not None),
            )
        )

    instances: list[Instance] = []
    instance_names: set[str] = set()
    for i, raw in enumerate(_list(data, "instances", errors)):
        where = f"instances[{i}]"
        if not isinstance(raw, dict):
            errors.append(f"{where}: instance must be an object")
            continue
        orient = raw.get("orient", "R0")
        if orient not in ORIENTATIONS:
            errors.append(f"{where}.orient: unknown orientation {orient!r}")
        inst = Instance(
            name=_str(raw, "name", where, errors),
            lib=_str(raw, "lib", where, errors),
            cell=_str(raw, "cell", where, errors),
            x=_float(raw, "x", where, errors),
            y=_float(raw, "y", where, errors),
            orient=orient,
        )
        if inst.lib and inst.cell and (inst.lib, inst.cell) not in seen:
            errors.append(f"{where}: references unknown symbol {inst.lib}/{inst.cell}")
        if inst.name and inst.name in instance_names:
            errors.append(f"{where}: duplicate instance name {inst.name!r}")
        instance_names.add(inst.name)
        instances.append(inst)

    wires: list[Wire] = []
    for i, raw in enumerate(_list(data, "wires", errors)):
        where = f"wires[{i}]"
        if not isinstance(raw, dict):
            errors.append(f"{where}: wire must be an object")
            continue
        net = raw.get("net", "")
        if not isinstance(net, str):
            errors.append(f"{where}.net: expected a string")
            net = ""
        wires.append(Wire(net=net, points=_points(raw.get("points"), f"{where}.points", errors, minimum=2)))

    pins = [_pin(p, f"pins[{i}]", errors) for i, p in enumerate(_list(data, "pins", errors))]
    labels = [parse_shape(s, f"labels[{i}]", errors) for i, s in enumerate(_list(data, "labels", errors))]
    shapes = [parse_shape(s, f"shapes[{i}]", errors) for i, s in enumerate(_list(data, "shapes", errors))]

    if not errors:
        # Key parts become path segments
        for key_parts in [(lib, cell), *seen]:
            try:
                SymbolKey(*key_parts)
            except ValidationError as exc:
                errors.extend(f"{key_parts[0]}/{key_parts[1]}: {e}" for e in exc.errors)

    if errors:
        raise RenderError("invalid schematic description: " + "; ".join(errors[:10]) + (
            f" (and {len(errors) - 10} more)" if len(errors) > 10 else ""
        ))

    return SchematicDescription(
        lib=lib,
        cell=cell,
        instances=instances,
        wires=wires,
        pins=[p for p in pins if p is not None],
        symbols=symbols,
        labels=[s for s in labels if s is not None],
        shapes=[s for s in shapes if s is not None],
    )


def load_description_text(text: str) -> dict[str, Any]:
    """
    Decode description JSON text.

    Raises:
        RenderError: Text is not a JSON object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RenderError(f"schematic description is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise RenderError("schematic description must be a JSON object")
    return data
