from __future__ import annotations

import io
import json
import zipfile

import pytest

from ckdraw.codec import MANIFEST_MEMBER, STYLE_MEMBER, ProjectCodec
from ckdraw.errors import CorruptArchiveError, MissingSchematicError, MissingStyleError
from ckdraw.models import SymbolKey
from ckdraw.store.artifacts import ArtifactStore
from ckdraw.style.registry import StyleRegistry
from ckdraw.style.schema import default_layer_styles

SYMBOLS = {
    SymbolKey("analogLib", "res"): "<mxfile><diagram name='res'/></mxfile>",
    SymbolKey("analogLib", "cap"): "<mxfile><diagram name='cap'/></mxfile>",
    SymbolKey("my lib", "nmos4"): "<mxfile><diagram name='nmos'/></mxfile>",
}
SCHEMATIC_CONTENT = "<mxfile><diagram name='top'>ünïcode</diagram></mxfile>"


def _zip(members: dict[str, str | bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def _members(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


@pytest.fixture
def project() -> tuple[ArtifactStore, StyleRegistry]:
    store = ArtifactStore()
    store.replace_all(SCHEMATIC_CONTENT, SYMBOLS)
    styles = StyleRegistry()
    styles.add_preset("default", default_layer_styles())
    styles.add_preset("custom", default_layer_styles().with_layer("wire", stroke_color="#ABCDEF", sch_visible=False))
    styles.set_current_preset("custom")
    return store, styles


def test_round_trip_preserves_content_and_style(project) -> None:
    store, styles = project
    codec = ProjectCodec()
    restored = codec.deserialize(codec.serialize(store, styles))

    assert restored.schematic == SCHEMATIC_CONTENT
    assert restored.symbols == SYMBOLS
    assert restored.style == styles.current
    assert restored.fixed == styles.fixed
    assert restored.current_name == "custom"
    assert set(restored.presets) == {"default", "custom"}
    assert restored.warnings == []
    assert restored.schematic_error is None


def test_members_use_route_suffixes(project) -> None:
    store, styles = project
    names = set(_members(ProjectCodec().serialize(store, styles, description={"design": {}})))
    assert names == {
        "schematic.drawio",
        "symbols/analogLib/res.drawio",
        "symbols/analogLib/cap.drawio",
        "symbols/my lib/nmos4.drawio",
        STYLE_MEMBER,
        "description.json",
        MANIFEST_MEMBER,
    }


def test_description_survives(project) -> None:
    store, styles = project
    description = {"design": {"lib": "work", "cell": "top"}}
    codec = ProjectCodec()
    assert codec.deserialize(codec.serialize(store, styles, description)).description == description


def test_garbage_is_corrupt() -> None:
    with pytest.raises(CorruptArchiveError, match="cannot be opened"):
        ProjectCodec().deserialize(b"definitely not a zip")


def test_manifest_mismatch_is_corrupt(project) -> None:
    store, styles = project
    members = _members(ProjectCodec().serialize(store, styles))
    members["schematic.drawio"] = b"<mxfile>tampered</mxfile>"
    with pytest.raises(CorruptArchiveError, match="checksum"):
        ProjectCodec().deserialize(_zip(members))


def test_manifest_member_missing_is_corrupt(project) -> None:
    store, styles = project
    members = _members(ProjectCodec().serialize(store, styles))
    del members["symbols/analogLib/cap.drawio"]
    with pytest.raises(CorruptArchiveError, match="missing"):
        ProjectCodec().deserialize(_zip(members))


def test_missing_style_recovers_with_default() -> None:
    restored = ProjectCodec().deserialize(_zip({"schematic.drawio": "<s/>"}))
    assert restored.schematic == "<s/>"
    assert restored.style == default_layer_styles()
    assert not restored.style_recovered
    assert any(isinstance(w, MissingStyleError) for w in restored.warnings)


def test_invalid_style_recovers_with_default() -> None:
    restored = ProjectCodec().deserialize(_zip({"schematic.drawio": "<s/>", STYLE_MEMBER: "{broken"}))
    assert restored.style == default_layer_styles()
    assert not restored.style_recovered


def test_bare_style_mapping_is_accepted() -> None:
    style = default_layer_styles().with_layer("pin", stroke_width=4.0)
    restored = ProjectCodec().deserialize(
        _zip({"schematic.drawio": "<s/>", STYLE_MEMBER: json.dumps(style.to_dict())})
    )
    assert restored.style == style
    assert restored.style_recovered


def test_missing_schematic_keeps_symbols() -> None:
    restored = ProjectCodec().deserialize(_zip({"symbols/a/b.drawio": "<b/>"}))
    assert restored.schematic is None
    assert isinstance(restored.schematic_error, MissingSchematicError)
    assert restored.symbols == {SymbolKey("a", "b"): "<b/>"}


def test_wrapper_directory_is_stripped() -> None:
    restored = ProjectCodec().deserialize(
        _zip({"project/schematic.drawio": "<s/>", "project/symbols/a/b.drawio": "<b/>"})
    )
    assert restored.schematic == "<s/>"
    assert SymbolKey("a", "b") in restored.symbols


def test_unknown_members_are_ignored() -> None:
    restored = ProjectCodec().deserialize(_zip({"schematic.drawio": "<s/>", "README.txt": "hi"}))
    assert restored.symbols == {}
    assert restored.schematic == "<s/>"


def test_symbols_only_archive_is_not_unwrapped() -> None:
    restored = ProjectCodec().deserialize(
        _zip({"symbols/a/b.drawio": "<b/>", "symbols/a/c.drawio": "<c/>"})
    )
    assert restored.symbols == {SymbolKey("a", "b"): "<b/>", SymbolKey("a", "c"): "<c/>"}
    assert isinstance(restored.schematic_error, MissingSchematicError)


def test_wrapper_without_known_members_is_kept() -> None:
    restored = ProjectCodec().deserialize(_zip({"notes/readme.txt": "hi"}))
    assert restored.symbols == {}
    assert restored.schematic is None


def _deflated_with_damage(name: str, content: str) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, content)
    data = bytearray(buffer.getvalue())
    with zipfile.ZipFile(io.BytesIO(bytes(data))) as zf:
        info = zf.getinfo(name)
    # Local header is 30 bytes plus the file name and extra field
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    for offset in range(start + 2, min(start + 10, start + info.compress_size)):
        data[offset] ^= 0xFF
    return bytes(data)


def test_damaged_deflate_stream_is_corrupt() -> None:
    content = "".join(f"<mxCell id='c{i}' value='{i * 7919}'/>" for i in range(400))
    data = _deflated_with_damage("schematic.drawio", content)
    with pytest.raises(CorruptArchiveError):
        ProjectCodec().deserialize(data)
