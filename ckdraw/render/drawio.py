"""
Reference renderer producing draw.io documents.

Each document holds one page. A page starts with one container cell per
logical layer (`layer-<name>-shape`, `layer-<name>-label`, plus
`layer-wire-intersection` next to the wire layer). Later containers draw on
top, so the first entry of `layer_order` is emitted last. Shapes hang off
those containers, which is what lets visibility and order change without
touching any shape.

Schematic coordinates are y-up; draw.io is y-down, so y is negated and all
coordinates are scaled by SCALE.
"""

from __future__ import annotations

import base64
import logging
import math
import re
import xml.etree.ElementTree as ET
import zlib
from collections import Counter, defaultdict
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import unquote

from ..errors import RenderError
from ..models import SymbolKey
from ..style.schema import LayerStyle, LayerStyles
from .description import Instance, SchematicDescription, Shape, TemplatePin, Wire, parse_description
from .protocol import RenderOutput

logger = logging.getLogger(__name__)

SCALE = 200.0
ROOT_ID = "0"
INTERSECTION_LAYER_ID = "layer-wire-intersection"
DEFAULT_FONT_SIZE = 12.0
PIN_SIZE = 6.0
JUNCTION_SIZE = 3.0

Point = tuple[float, float]

# Orientation transforms in y-up schematic space
_ORIENT: dict[str, Callable[[float, float], Point]] = {
    "R0": lambda x, y: (x, y),
    "R90": lambda x, y: (-y, x),
    "R180": lambda x, y: (-x, -y),
    "R270": lambda x, y: (y, -x),
    "MX": lambda x, y: (x, -y),
    "MY": lambda x, y: (-x, y),
    "MXR90": lambda x, y: (y, x),
    "MYR90": lambda x, y: (-y, -x),
}

_TEXT_ROTATION = {"R90": -90, "R180": 180, "R270": 90}


def shape_layer_id(layer: str) -> str:
    return f"layer-{layer}-shape"


def label_layer_id(layer: str) -> str:
    return f"layer-{layer}-label"


def layer_stack(style: LayerStyles, schematic: bool) -> list[tuple[str, str, bool]]:
    """
    Layer container cells in emission order, bottom first.

    Returns:
        List of (cell id, value, visible). Symbol pages keep every layer
        visible; visibility flags only apply to the schematic.
    """
    cells: list[tuple[str, str, bool]] = []
    for name in reversed(style.layer_order):
        visible = style.layer(name).sch_visible if schematic else True
        if name == "wire":
            cells.append((INTERSECTION_LAYER_ID, "wire-intersection", style.wire_show_intersection if schematic else True))
        cells.append((shape_layer_id(name), f"{name}-shape", visible))
        cells.append((label_layer_id(name), f"{name}-label", visible))
    return cells


def _fmt(value: float) -> str:
    return f"{value:.6g}"


def _style_string(*prefixes: str, **attrs: Any) -> str:
    parts = [p for p in prefixes if p]
    parts.extend(f"{k}={v}" for k, v in attrs.items())
    return ";".join(parts) + ";"


def _px(p: Point) -> Point:
    return (p[0] * SCALE, -p[1] * SCALE)


def _safe_id(text: str) -> str:
    return re.sub(r"[^0-9A-Za-z_]", "_", text)


class _Page:
    """Builder for one diagram page."""

    def __init__(self, name: str, style: LayerStyles, schematic: bool):
        self.name = name
        self.style = style
        self.root = ET.Element("root")
        ET.SubElement(self.root, "mxCell", id=ROOT_ID)
        for cell_id, value, visible in layer_stack(style, schematic):
            ET.SubElement(self.root, "mxCell", id=cell_id, value=value, parent=ROOT_ID, visible="1" if visible else "0")
        self.ids: set[str] = {ROOT_ID} | {c[0] for c in layer_stack(style, schematic)}

    def _unique(self, cell_id: str) -> str:
        candidate, n = cell_id, 1
        while candidate in self.ids:
            n += 1
            candidate = f"{cell_id}-{n}"
        self.ids.add(candidate)
        return candidate

    def vertex(self, cell_id: str, parent: str, style: str, x: float, y: float, w: float, h: float, value: str = "") -> None:
        cell = ET.SubElement(
            self.root, "mxCell", id=self._unique(cell_id), value=value, style=style, parent=parent, vertex="1"
        )
        ET.SubElement(cell, "mxGeometry", x=_fmt(x), y=_fmt(y), width=_fmt(w), height=_fmt(h), **{"as": "geometry"})

    def edge(self, cell_id: str, parent: str, style: str, points: Iterable[Point]) -> None:
        pts = list(points)
        cell = ET.SubElement(self.root, "mxCell", id=self._unique(cell_id), value="", style=style, parent=parent, edge="1")
        geo = ET.SubElement(cell, "mxGeometry", relative="1", **{"as": "geometry"})
        ET.SubElement(geo, "mxPoint", x=_fmt(pts[0][0]), y=_fmt(pts[0][1]), **{"as": "sourcePoint"})
        ET.SubElement(geo, "mxPoint", x=_fmt(pts[-1][0]), y=_fmt(pts[-1][1]), **{"as": "targetPoint"})
        if len(pts) > 2:
            array = ET.SubElement(geo, "Array", **{"as": "points"})
            for x, y in pts[1:-1]:
                ET.SubElement(array, "mxPoint", x=_fmt(x), y=_fmt(y))

    def adopt(self, cell: ET.Element) -> None:
        self.ids.add(cell.get("id", ""))
        self.root.append(cell)


def _document(pages: Iterable[tuple[str, ET.Element]]) -> str:
    mxfile = ET.Element("mxfile", host="ckdraw")
    for name, root in pages:
        diagram = ET.SubElement(mxfile, "diagram", id=f"page-{_safe_id(name)}", name=name)
        model = ET.SubElement(diagram, "mxGraphModel", grid="1", gridSize="10", guides="1", page="0")
        model.append(root)
    ET.indent(mxfile)
    return ET.tostring(mxfile, encoding="unicode")


def _parse_document(content: str) -> ET.Element:
    try:
        mxfile = ET.fromstring(content)
    except ET.ParseError as exc:
        raise RenderError(f"diagram is not valid XML: {exc}") from exc
    if mxfile.tag != "mxfile":
        raise RenderError(f"diagram root must be <mxfile>, got <{mxfile.tag}>")
    return mxfile


def _diagram_root(diagram: ET.Element) -> ET.Element:
    """
    The <root> element of a page, inflating compressed pages in place.

    draw.io may save a page as base64(raw-deflate(urlencoded XML)).
    """
    model = diagram.find("mxGraphModel")
    if model is None:
        text = (diagram.text or "").strip()
        if not text:
            raise RenderError(f"page {diagram.get('name')!r} is empty")
        try:
            raw = zlib.decompress(base64.b64decode(text), -15)
            model = ET.fromstring(unquote(raw.decode("utf-8")))
        except (ValueError, zlib.error, ET.ParseError) as exc:
            raise RenderError(f"page {diagram.get('name')!r} cannot be decoded: {exc}") from exc
        diagram.text = None
        diagram.append(model)
    root = model.find("root")
    if root is None:
        raise RenderError(f"page {diagram.get('name')!r} has no <root>")
    return root


def restyle_document(content: str, style: LayerStyles, *, schematic: bool) -> str:
    """
    Rewrite only layer visibility and layer order of a document.

    Shapes are left untouched. Layer containers the viewer dropped are
    recreated; containers the user added stay above the known ones.
    """
    mxfile = _parse_document(content)
    stack = layer_stack(style, schematic)
    for diagram in mxfile.findall("diagram"):
        root = _diagram_root(diagram)
        existing = {c.get("id"): c for c in root.findall("mxCell") if c.get("parent") == ROOT_ID}
        for cell_id, _, _ in stack:
            if cell_id in existing:
                root.remove(existing[cell_id])
        children = list(root)
        insert_at = next((i + 1 for i, c in enumerate(children) if c.get("id") == ROOT_ID), 0)
        for cell_id, value, visible in stack:
            cell = existing.get(cell_id)
            if cell is None:
                cell = ET.Element("mxCell", id=cell_id, value=value, parent=ROOT_ID)
            cell.set("visible", "1" if visible else "0")
            root.insert(insert_at, cell)
            insert_at += 1
    ET.indent(mxfile)
    return ET.tostring(mxfile, encoding="unicode")


def layer_visibility(content: str) -> dict[str, bool]:
    """Visible flag of every layer container on the first page."""
    mxfile = _parse_document(content)
    diagram = mxfile.find("diagram")
    if diagram is None:
        return {}
    root = _diagram_root(diagram)
    return {
        c.get("id", ""): c.get("visible", "1") != "0"
        for c in root.findall("mxCell")
        if c.get("parent") == ROOT_ID
    }


def layer_order(content: str) -> list[str]:
    """Layer container ids on the first page, bottom first."""
    return list(layer_visibility(content))


def page_cells(content: str) -> list[ET.Element]:
    """Every non-container cell of the first page of a document."""
    mxfile = _parse_document(content)
    diagram = mxfile.find("diagram")
    if diagram is None:
        raise RenderError("diagram has no page")
    root = _diagram_root(diagram)
    layer_ids = {c.get("id") for c in root.findall("mxCell") if c.get("parent") == ROOT_ID}
    return [c for c in root.findall("mxCell") if c.get("id") != ROOT_ID and c.get("id") not in layer_ids]


# -----------------------------------------------------------------------------
# Drawing primitives
# -----------------------------------------------------------------------------


def _stroke(ls: LayerStyle, fill_style: int = 1, fill_color: str | None = None) -> dict[str, str]:
    return {
        "strokeColor": ls.stroke_color,
        "strokeWidth": _fmt(ls.stroke_width),
        "fillColor": "none" if fill_style == 1 else (fill_color or ls.stroke_color),
        "priority": str(ls.priority),
    }


def _font_size(ls: LayerStyle, height: float) -> float:
    base = height * SCALE if height > 0 else DEFAULT_FONT_SIZE
    return base * ls.font_zoom


def _draw_label(page: _Page, cell_id: str, layer: str, ls: LayerStyle, text: str, at: Point,
                height: float, justify: str = "centerCenter", orient: str = "R0") -> None:
    size = _font_size(ls, height)
    w = max(len(text), 1) * size * 0.6
    h = size * 1.2
    ax, ay = _px(at)
    vertical, horizontal = re.match(r"(upper|center|lower)(Left|Center|Right)", justify).groups()
    x = {"Left": ax, "Center": ax - w / 2, "Right": ax - w}[horizontal]
    y = {"upper": ay, "center": ay - h / 2, "lower": ay - h}[vertical]
    attrs: dict[str, Any] = {
        "align": horizontal.lower(),
        "verticalAlign": {"upper": "top", "center": "middle", "lower": "bottom"}[vertical],
        "fontColor": ls.text_color,
        "fontFamily": ls.font_family,
        "fontSize": _fmt(size),
        "strokeColor": "none",
        "fillColor": "none",
    }
    if orient in _TEXT_ROTATION:
        attrs["rotation"] = _TEXT_ROTATION[orient]
    page.vertex(cell_id, label_layer_id(layer), _style_string("text", "html=1", **attrs), x, y, w, h, value=text)


def _draw_shape(page: _Page, shape: Shape, style: LayerStyles, cell_id: str) -> None:
    ls = style.layer(shape.layer)
    if shape.type == "label":
        _draw_label(page, cell_id, shape.layer, ls, shape.text, shape.xy, shape.height, shape.justify, shape.orient)
        return
    if shape.type in ("rect", "ellipse"):
        (x1, y1), (x2, y2) = (_px(p) for p in shape.points[:2])
        prefix = "ellipse" if shape.type == "ellipse" else "rounded=0"
        page.vertex(
            cell_id,
            shape_layer_id(shape.layer),
            _style_string(prefix, "html=1", **_stroke(ls, shape.fill_style)),
            min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1),
        )
        return
    points = [_px(p) for p in shape.points]
    if shape.type == "polygon" and points[0] != points[-1]:
        points.append(points[0])
    page.edge(cell_id, shape_layer_id(shape.layer), _style_string("endArrow=none", "html=1", "rounded=0", **_stroke(ls)), points)


def _draw_pin(page: _Page, pin: TemplatePin, style: LayerStyles, cell_id: str) -> None:
    ls = style.pin
    cx, cy = _px((pin.x, pin.y))
    half = PIN_SIZE / 2
    page.vertex(f"{cell_id}-box", shape_layer_id("pin"), _style_string("rounded=0", "html=1", **_stroke(ls)),
                cx - half, cy - half, PIN_SIZE, PIN_SIZE)
    if pin.name:
        _draw_label(page, f"{cell_id}-name", "pin", ls, pin.name, (pin.x, pin.y), 0.0, "lowerLeft")


def _wire_junctions(wires: list[Wire]) -> list[Point]:
    """Points where three or more wire ends or a T-junction meet."""

    def key(p: Point) -> Point:
        return (round(p[0], 6), round(p[1], 6))

    counts: Counter[Point] = Counter()
    for wire in wires:
        counts[key(wire.points[0])] += 1
        counts[key(wire.points[-1])] += 1
    for point in list(counts):
        for wire in wires:
            for a, b in zip(wire.points, wire.points[1:]):
                if _inside_segment(point, a, b):
                    counts[point] += 2
    return sorted(p for p, n in counts.items() if n >= 3)


def _inside_segment(p: Point, a: Point, b: Point, eps: float = 1e-6) -> bool:
    if math.dist(p, a) < eps or math.dist(p, b) < eps:
        return False
    cross = (b[0] - a[0]) * (p[1] - a[1]) - (b[1] - a[1]) * (p[0] - a[0])
    if abs(cross) > eps:
        return False
    return min(a[0], b[0]) - eps <= p[0] <= max(a[0], b[0]) + eps and min(a[1], b[1]) - eps <= p[1] <= max(a[1], b[1]) + eps


# -----------------------------------------------------------------------------
# Instance placement
# -----------------------------------------------------------------------------


def _placer(inst: Instance) -> Callable[[float, float], Point]:
    transform = _ORIENT[inst.orient]
    ox, oy = _px((inst.x, inst.y))

    def place(px: float, py: float) -> Point:
        x, y = transform(px, -py)
        return (x + ox, -y + oy)

    return place


def _place_cells(cells: list[ET.Element], inst: Instance, known_layers: set[str]) -> list[ET.Element]:
    place = _placer(inst)
    local_ids = {c.get("id") for c in cells}
    placed = []
    for original in cells:
        cell = ET.fromstring(ET.tostring(original))
        cell.set("id", f"{inst.name}/{cell.get('id')}")
        parent = cell.get("parent")
        top_level = parent not in local_ids
        if parent in local_ids:
            cell.set("parent", f"{inst.name}/{parent}")
        elif parent not in known_layers:
            cell.set("parent", shape_layer_id("device"))
        for attr in ("source", "target"):
            if cell.get(attr) in local_ids:
                cell.set(attr, f"{inst.name}/{cell.get(attr)}")
        geo = cell.find("mxGeometry")
        if geo is not None and top_level:
            if cell.get("edge") == "1":
                for pt in geo.iter("mxPoint"):
                    x, y = place(float(pt.get("x", 0)), float(pt.get("y", 0)))
                    pt.set("x", _fmt(x))
                    pt.set("y", _fmt(y))
            elif geo.get("relative") != "1":
                x, y = float(geo.get("x", 0)), float(geo.get("y", 0))
                w, h = float(geo.get("width", 0)), float(geo.get("height", 0))
                (ax, ay), (bx, by) = place(x, y), place(x + w, y + h)
                geo.set("x", _fmt(min(ax, bx)))
                geo.set("y", _fmt(min(ay, by)))
                geo.set("width", _fmt(abs(bx - ax)))
                geo.set("height", _fmt(abs(by - ay)))
        placed.append(cell)
    return placed


class DrawioRenderer:
    """Renders schematic descriptions into draw.io documents."""

    def render(self, description: dict[str, Any], style: LayerStyles) -> RenderOutput:
        desc = parse_description(description)
        symbols = {template.key: self._render_symbol(template, style) for template in desc.symbols}
        schematic = self._render_schematic(desc, style, symbols)
        logger.info("rendered %s/%s: %d symbols", desc.lib, desc.cell, len(symbols))
        return RenderOutput(schematic=schematic, symbols=symbols)

    def render_schematic(self, description: dict[str, Any], style: LayerStyles,
                         symbols: Mapping[SymbolKey, str]) -> str:
        return self._render_schematic(parse_description(description), style, symbols)

    def restyle_visibility(self, content: str, style: LayerStyles, *, schematic: bool) -> str:
        return restyle_document(content, style, schematic=schematic)

    def _render_symbol(self, template, style: LayerStyles) -> str:
        name = f"{template.lib}/{template.cell}"
        page = _Page(name, style, schematic=False)
        for idx, shape in enumerate(template.shapes):
            _draw_shape(page, shape, style, f"{name}-{shape.layer}-{idx}")
        for idx, pin in enumerate(template.pins):
            _draw_pin(page, pin, style, f"{name}-pin-{idx}")
        return _document([(name, page.root)])

    def _render_schematic(self, desc: SchematicDescription, style: LayerStyles,
                          symbols: Mapping[SymbolKey, str]) -> str:
        page = _Page(f"{desc.lib}/{desc.cell}", style, schematic=True)
        known_layers = {c[0] for c in layer_stack(style, schematic=True)}

        cache: dict[SymbolKey, list[ET.Element]] = {}
        for inst in desc.instances:
            if inst.key not in cache:
                content = symbols.get(inst.key)
                if content is None:
                    raise RenderError(f"instance {inst.name}: symbol {inst.key} has no diagram")
                cache[inst.key] = page_cells(content)
            for cell in _place_cells(cache[inst.key], inst, known_layers):
                page.adopt(cell)

        wire_style = _style_string("endArrow=none", "html=1", "rounded=0", **_stroke(style.wire))
        per_net: defaultdict[str, int] = defaultdict(int)
        for i, wire in enumerate(desc.wires):
            if wire.net:
                per_net[wire.net] += 1
                cell_id = f"wire-{_safe_id(wire.net)}-{per_net[wire.net]}"
            else:
                cell_id = f"wire-{i}"
            page.edge(cell_id, shape_layer_id("wire"), wire_style, (_px(p) for p in wire.points))

        size = JUNCTION_SIZE * style.wire.stroke_width * style.wire_intersection_scale
        junction_style = _style_string("ellipse", "html=1", **_stroke(style.wire, fill_style=0))
        for n, point in enumerate(_wire_junctions(desc.wires)):
            cx, cy = _px(point)
            page.vertex(f"junction-{n}", INTERSECTION_LAYER_ID, junction_style, cx - size / 2, cy - size / 2, size, size)

        for idx, pin in enumerate(desc.pins):
            _draw_pin(page, pin, style, f"pin-{_safe_id(pin.name) or idx}")
        for idx, label in enumerate(desc.labels):
            _draw_shape(page, label, style, f"label-{label.layer}-{idx}")
        for idx, shape in enumerate(desc.shapes):
            _draw_shape(page, shape, style, f"shape-{shape.layer}-{idx}")

        return _document([(page.name, page.root)])
