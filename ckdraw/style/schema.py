"""
Style configuration records.

A `LayerStyles` value describes how every logical layer of a diagram is
drawn, plus the global layer order and the wire junction display. Values are
frozen; edits produce new values with `dataclasses.replace`.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Literal

from ..errors import ValidationError

Layer = Literal["instance", "device", "annotate", "pin", "wire", "text"]

LAYERS: tuple[str, ...] = ("instance", "device", "annotate", "pin", "wire", "text")

_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

DEFAULT_FONT = "Helvetica"


@dataclass(frozen=True)
class LayerStyle:
    stroke_color: str = "#000000"
    stroke_width: float = 1.0
    text_color: str = "#000000"
    font_family: str = DEFAULT_FONT
    font_zoom: float = 1.0
    priority: int = 0
    sch_visible: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LayerStyles:
    """Full style configuration: one LayerStyle per layer plus global settings."""

    layer_order: tuple[str, ...] = ("text", "pin", "wire", "annotate", "instance", "device")
    instance: LayerStyle = field(default_factory=LayerStyle)
    device: LayerStyle = field(default_factory=LayerStyle)
    annotate: LayerStyle = field(default_factory=LayerStyle)
    pin: LayerStyle = field(default_factory=LayerStyle)
    wire: LayerStyle = field(default_factory=LayerStyle)
    text: LayerStyle = field(default_factory=LayerStyle)
    wire_show_intersection: bool = True
    wire_intersection_scale: float = 1.0

    def layer(self, name: str) -> LayerStyle:
        if name not in LAYERS:
            raise KeyError(name)
        return getattr(self, name)

    def with_layer(self, name: str, **changes: Any) -> LayerStyles:
        """Copy with attributes of one layer changed."""
        return replace(self, **{name: replace(self.layer(name), **changes)})

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"layer_order": list(self.layer_order)}
        for name in LAYERS:
            data[name] = self.layer(name).to_dict()
        data["wire_show_intersection"] = self.wire_show_intersection
        data["wire_intersection_scale"] = self.wire_intersection_scale
        return data

    @classmethod
    def from_dict(cls, data: Any) -> LayerStyles:
        """
        Build a style from an uploaded payload.

        Missing optional attributes fall back to defaults; wrong types,
        bad colors and an invalid layer order are collected and raised
        together.

        Raises:
            ValidationError: Payload is malformed
        """
        errors: list[str] = []
        if not isinstance(data, dict):
            raise ValidationError("style must be an object")

        order = data.get("layer_order")
        if not isinstance(order, (list, tuple)) or not all(isinstance(x, str) for x in order):
            errors.append("layer_order must be a list of layer names")
            order = list(cls().layer_order)
        else:
            unknown = [x for x in order if x not in LAYERS]
            if unknown:
                errors.append(f"layer_order has unknown layers: {', '.join(unknown)}")
            duplicated = sorted({x for x in order if order.count(x) > 1})
            if duplicated:
                errors.append(f"layer_order repeats layers: {', '.join(duplicated)}")
            missing = [x for x in LAYERS if x not in order]
            if missing:
                errors.append(f"layer_order is missing layers: {', '.join(missing)}")

        layers: dict[str, LayerStyle] = {}
        for name in LAYERS:
            raw = data.get(name)
            if not isinstance(raw, dict):
                errors.append(f"{name}: layer style must be an object")
                continue
            layers[name] = _layer_from_dict(name, raw, errors, default_priority=_default_priority(name))

        show = data.get("wire_show_intersection", True)
        if not isinstance(show, bool):
            errors.append("wire_show_intersection must be a boolean")
        scale = data.get("wire_intersection_scale", 1.0)
        if not _is_number(scale) or scale <= 0:
            errors.append("wire_intersection_scale must be a positive number")

        if errors:
            raise ValidationError(errors)

        return cls(
            layer_order=tuple(order),
            wire_show_intersection=show,
            wire_intersection_scale=float(scale),
            **layers,
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _default_priority(name: str) -> int:
    return LAYERS.index(name)


def _layer_from_dict(name: str, raw: dict[str, Any], errors: list[str], default_priority: int) -> LayerStyle:
    base = LayerStyle()
    values: dict[str, Any] = {}

    for attr in ("stroke_color", "text_color"):
        value = raw.get(attr, getattr(base, attr))
        if not isinstance(value, str) or not _COLOR.match(value):
            errors.append(f"{name}.{attr} must be a hex color like #RRGGBB, got {value!r}")
        values[attr] = value

    for attr in ("stroke_width", "font_zoom"):
        value = raw.get(attr, getattr(base, attr))
        if not _is_number(value) or value <= 0:
            errors.append(f"{name}.{attr} must be a positive number, got {value!r}")
            value = getattr(base, attr)
        values[attr] = float(value)

    font = raw.get("font_family", DEFAULT_FONT)
    if not isinstance(font, str) or not font.strip():
        errors.append(f"{name}.font_family must be a non-empty string")
        font = DEFAULT_FONT
    values["font_family"] = font

    priority = raw.get("priority", default_priority)
    if isinstance(priority, bool) or not isinstance(priority, int):
        errors.append(f"{name}.priority must be an integer")
        priority = default_priority
    values["priority"] = priority

    visible = raw.get("sch_visible", True)
    if not isinstance(visible, bool):
        errors.append(f"{name}.sch_visible must be a boolean")
        visible = True
    values["sch_visible"] = visible

    return LayerStyle(**values)


def default_layer_styles() -> LayerStyles:
    """The style installed when nothing else has been selected."""
    return LayerStyles(
        layer_order=("text", "pin", "wire", "annotate", "instance", "device"),
        device=LayerStyle("#00FF00", 2.0, "#FF0000", DEFAULT_FONT, 1.0, 1, True),
        instance=LayerStyle("#0000FF", 1.0, "#0000FF", DEFAULT_FONT, 1.0, 0, False),
        wire=LayerStyle("#00FFFF", 2.0, "#00CCCC", DEFAULT_FONT, 1.0, 4, True),
        annotate=LayerStyle("#00FF00", 1.0, "#FF9900", DEFAULT_FONT, 1.0, 2, False),
        pin=LayerStyle("#FF0000", 2.0, "#FF0000", DEFAULT_FONT, 1.0, 3, True),
        text=LayerStyle("#666666", 1.0, "#666666", DEFAULT_FONT, 1.0, 5, True),
        wire_show_intersection=True,
        wire_intersection_scale=1.0,
    )
