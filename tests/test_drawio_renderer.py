from __future__ import annotations

import base64
import xml.etree.ElementTree as ET
import zlib
from dataclasses import replace
from urllib.parse import quote

import pytest

from ckdraw.errors import RenderError
from ckdraw.models import SymbolKey
from ckdraw.render import DrawioRenderer, Renderer, layer_order, layer_visibility, restyle_document
from ckdraw.render.drawio import SCALE, page_cells
from ckdraw.style.schema import default_layer_styles

RES = SymbolKey("analogLib", "res")


@pytest.fixture
def output(description):
    return DrawioRenderer().render(description, default_layer_styles())


def _cells(content: str) -> dict[str, ET.Element]:
    return {c.get("id"): c for c in ET.fromstring(content).iter("mxCell")}


def test_renderer_satisfies_protocol() -> None:
    assert isinstance(DrawioRenderer(), Renderer)


def test_one_document_per_symbol(output) -> None:
    assert set(output.symbols) == {RES, SymbolKey("analogLib", "gnd"), SymbolKey("basic", "ipin")}
    for content in [output.schematic, *output.symbols.values()]:
        root = ET.fromstring(content)
        assert root.tag == "mxfile"
        assert len(root.findall("diagram")) == 1


def test_schematic_layer_visibility_follows_style(output) -> None:
    visible = layer_visibility(output.schematic)
    # instance and annotate are hidden by default
    assert visible["layer-instance-shape"] is False
    assert visible["layer-annotate-label"] is False
    assert visible["layer-device-shape"] is True
    assert visible["layer-wire-intersection"] is True


def test_symbol_pages_keep_every_layer_visible(output) -> None:
    assert all(layer_visibility(output.symbols[RES]).values())


def test_layer_containers_emitted_bottom_first(output) -> None:
    order = layer_order(output.schematic)
    assert order[-2:] == ["layer-text-shape", "layer-text-label"]
    assert order[:2] == ["layer-device-shape", "layer-device-label"]
    assert order.index("layer-wire-intersection") == order.index("layer-wire-shape") - 1


def test_instances_are_placed_with_prefixed_ids(output) -> None:
    cells = _cells(output.schematic)
    assert any(cell_id.startswith("R0/") for cell_id in cells)
    assert any(cell_id.startswith("R1/") for cell_id in cells)
    # R1 sits 0.5 units below R0
    r0 = cells["R0/analogLib/res-device-0"].find("mxGeometry")
    r1 = cells["R1/analogLib/res-device-0"].find("mxGeometry")
    assert float(r1.get("y")) - float(r0.get("y")) == pytest.approx(0.5 * SCALE)


def test_mirrored_instance_is_flipped(output) -> None:
    cells = _cells(output.schematic)
    geo = cells["I0/basic/ipin-pin-0"].find("mxGeometry")
    # Centered on the instance origin after mirroring
    assert float(geo.get("x")) + float(geo.get("width")) / 2 == pytest.approx(-0.5 * SCALE)


def test_wires_named_by_net(output) -> None:
    cells = _cells(output.schematic)
    assert "wire-IN-1" in cells
    assert "wire-MID-1" in cells
    assert cells["wire-IN-1"].get("edge") == "1"


def test_junction_dots() -> None:
    description = {
        "design": {"lib": "l", "cell": "t"},
        "wires": [
            {"net": "N", "points": [[0, 0], [1, 0]]},
            {"net": "N", "points": [[1, 0], [2, 0]]},
            {"net": "N", "points": [[1, 0], [1, 1]]},
            {"net": "M", "points": [[5, 0], [5, 2]]},
            {"net": "M", "points": [[4, 1], [5, 1]]},
        ],
    }
    style = replace(default_layer_styles(), wire_intersection_scale=2.0)
    content = DrawioRenderer().render(description, style).schematic
    junctions = [c for c in ET.fromstring(content).iter("mxCell") if c.get("id", "").startswith("junction-")]
    assert len(junctions) == 2
    assert all(j.get("parent") == "layer-wire-intersection" for j in junctions)
    size = float(junctions[0].find("mxGeometry").get("width"))
    assert size == pytest.approx(3.0 * style.wire.stroke_width * 2.0)


def test_y_axis_is_flipped() -> None:
    description = {
        "design": {"lib": "l", "cell": "t"},
        "pins": [{"name": "P", "direction": "input", "x": 1.0, "y": 2.0}],
    }
    content = DrawioRenderer().render(description, default_layer_styles()).schematic
    geo = _cells(content)["pin-P-box"].find("mxGeometry")
    assert float(geo.get("x")) + float(geo.get("width")) / 2 == pytest.approx(1.0 * SCALE)
    assert float(geo.get("y")) + float(geo.get("height")) / 2 == pytest.approx(-2.0 * SCALE)


def test_priority_written_into_styles(output) -> None:
    assert "priority=4" in _cells(output.schematic)["wire-IN-1"].get("style")


@pytest.mark.parametrize(
    "description, message",
    [
        ({}, "design"),
        ({"design": {"lib": "l", "cell": "c"}, "wires": [{"points": [[0, 0]]}]}, "at least 2 points"),
        ({"design": {"lib": "l", "cell": "c"}, "shapes": [{"type": "blob", "layer": "wire"}]}, "unknown shape type"),
        ({"design": {"lib": "l", "cell": "c"}, "labels": [{"type": "label", "layer": "metal1"}]}, "unknown layer"),
        ({"design": {"lib": "a/b", "cell": "c"}}, "not a valid path segment"),
    ],
)
def test_malformed_descriptions_raise(description, message) -> None:
    with pytest.raises(RenderError, match=message):
        DrawioRenderer().render(description, default_layer_styles())


def test_duplicate_instance_names_raise(description) -> None:
    duplicate = {**description, "instances": [*description["instances"], dict(description["instances"][0])]}
    with pytest.raises(RenderError, match="duplicate instance name 'R0'"):
        DrawioRenderer().render(duplicate, default_layer_styles())


def test_restyle_document_changes_only_layers(output) -> None:
    style = default_layer_styles().with_layer("instance", sch_visible=True)
    restyled = restyle_document(output.schematic, style, schematic=True)

    assert layer_visibility(restyled)["layer-instance-shape"] is True
    before = [c.get("id") for c in page_cells(output.schematic)]
    after = [c.get("id") for c in page_cells(restyled)]
    assert before == after


def test_restyle_recreates_dropped_layer(output) -> None:
    root = ET.fromstring(output.schematic)
    graph_root = root.find("diagram/mxGraphModel/root")
    text_layer = next(c for c in graph_root if c.get("id") == "layer-text-label")
    graph_root.remove(text_layer)

    restyled = restyle_document(ET.tostring(root, encoding="unicode"), default_layer_styles(), schematic=True)
    assert "layer-text-label" in layer_visibility(restyled)


def test_compressed_pages_are_inflated(output) -> None:
    root = ET.fromstring(output.symbols[RES])
    diagram = root.find("diagram")
    model = diagram.find("mxGraphModel")
    raw = quote(ET.tostring(model, encoding="unicode"))
    deflate = zlib.compressobj(9, zlib.DEFLATED, -15)
    diagram.remove(model)
    diagram.text = base64.b64encode(deflate.compress(raw.encode()) + deflate.flush()).decode()
    compressed = ET.tostring(root, encoding="unicode")

    assert layer_visibility(compressed) == layer_visibility(output.symbols[RES])
    assert len(page_cells(compressed)) == len(page_cells(output.symbols[RES]))


def test_not_a_diagram() -> None:
    with pytest.raises(RenderError):
        layer_visibility("<html/>")
    with pytest.raises(RenderError):
        layer_visibility("not xml")
