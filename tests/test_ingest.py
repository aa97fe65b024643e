from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path
from typing import Any

from ckdraw.codec import ProjectCodec
from ckdraw.errors import RenderError
from ckdraw.ingest import IngestPipeline
from ckdraw.models import SCHEMATIC, SymbolKey
from ckdraw.render.drawio import DrawioRenderer
from ckdraw.render.protocol import RenderOutput
from ckdraw.store.artifacts import ArtifactStore
from ckdraw.store.history import HistoryEngine
from ckdraw.style.registry import StyleRegistry
from ckdraw.style.schema import LayerStyles, default_layer_styles


class FailingRenderer:
    def render(self, description: dict[str, Any], style: LayerStyles) -> RenderOutput:
        raise RenderError("layout exploded")

    def render_schematic(self, description, style, symbols) -> str:
        raise RenderError("layout exploded")

    def restyle_visibility(self, content: str, style: LayerStyles, *, schematic: bool) -> str:
        return content


def _pipeline(renderer=None) -> IngestPipeline:
    return IngestPipeline(ArtifactStore(), HistoryEngine(), StyleRegistry(), renderer or DrawioRenderer())


def test_description_populates_store_and_history(description) -> None:
    pipeline = _pipeline()
    result = pipeline.ingest_from_description(description)

    assert result.ok
    assert result.symbol_keys == [
        SymbolKey("analogLib", "gnd"),
        SymbolKey("analogLib", "res"),
        SymbolKey("basic", "ipin"),
    ]
    assert pipeline.store.has(SCHEMATIC)
    for key in pipeline.store.keys():
        info = pipeline.history.info(key)
        assert (info.current_index, info.length) == (0, 1)
    assert pipeline.description is description


def test_default_preset_installed_when_no_style() -> None:
    pipeline = _pipeline()
    pipeline.ingest_from_description({"design": {"lib": "l", "cell": "c"}})
    assert pipeline.styles.current_name == "default"
    assert pipeline.styles.current == default_layer_styles()


def test_style_survives_reingest(description) -> None:
    pipeline = _pipeline()
    custom = default_layer_styles().with_layer("wire", stroke_color="#112233")
    pipeline.styles.update_current(custom)

    pipeline.ingest_from_description(description)
    assert pipeline.styles.current == custom


def test_explicit_style_becomes_current(description) -> None:
    pipeline = _pipeline()
    custom = default_layer_styles().with_layer("pin", stroke_width=5.0)
    pipeline.ingest_from_description(description, custom)
    assert pipeline.styles.current == custom


def test_render_failure_leaves_store_untouched(description) -> None:
    pipeline = _pipeline()
    pipeline.ingest_from_description(description)
    before = pipeline.store.list_symbols()
    schematic_before = pipeline.store.schematic

    pipeline.renderer = FailingRenderer()
    result = pipeline.ingest_from_description({"design": {"lib": "x", "cell": "y"}})

    assert not result.applied
    assert result.message == "layout exploded"
    assert pipeline.store.list_symbols() == before
    assert pipeline.store.schematic == schematic_before
    assert pipeline.description is description


def test_invalid_description_reports_every_problem() -> None:
    pipeline = _pipeline()
    result = pipeline.ingest_from_description(
        {"design": {"lib": "l"}, "instances": [{"name": "I0", "lib": "a", "cell": "b", "x": 0, "y": 0}]}
    )
    assert not result.applied
    assert "design.cell" in result.message
    assert "unknown symbol a/b" in result.message
    assert pipeline.store.is_empty()


def test_archive_restore_seeds_single_entry_history(description) -> None:
    source = _pipeline()
    source.ingest_from_description(description)
    source.history.push(SCHEMATIC, "<mxfile>edited</mxfile>")
    source.store.put(SCHEMATIC, "<mxfile>edited</mxfile>")
    data = ProjectCodec().serialize(source.store, source.styles, source.description)

    target = _pipeline()
    result = target.ingest_from_archive(data)

    assert result.ok
    assert target.store.schematic == "<mxfile>edited</mxfile>"
    assert all(target.history.info(k).length == 1 for k in target.store.keys())
    assert target.description == description
    assert target.styles.current == source.styles.current


def test_corrupt_archive_keeps_previous_state(description) -> None:
    pipeline = _pipeline()
    pipeline.ingest_from_description(description)
    result = pipeline.ingest_from_archive(b"PK\x03\x04 truncated")
    assert not result.applied
    assert pipeline.store.symbol_count == 3


def test_file_dispatch(tmp_path: Path, description) -> None:
    path = tmp_path / "divider.json"
    path.write_text(json.dumps(description), encoding="utf-8")
    assert _pipeline().ingest_from_file(path).ok

    other = tmp_path / "divider.txt"
    other.write_text("x", encoding="utf-8")
    result = _pipeline().ingest_from_file(other)
    assert not result.applied
    assert "unsupported" in result.message

    bad = tmp_path / "bad.json"
    bad.write_text("[]", encoding="utf-8")
    assert not _pipeline().ingest_from_file(bad).applied


def test_damaged_archive_member_is_a_failed_result(description) -> None:
    source = _pipeline()
    source.ingest_from_description(description)
    data = bytearray(source.codec.serialize(source.store, source.styles, source.description))
    with zipfile.ZipFile(io.BytesIO(bytes(data))) as zf:
        info = zf.getinfo("schematic.drawio")
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    for offset in range(start + 2, start + 10):
        data[offset] ^= 0xFF

    target = _pipeline()
    target.ingest_from_description(description)
    result = target.ingest_from_archive(bytes(data))
    assert not result.applied
    assert result.message
    assert target.store.symbol_count == 3
