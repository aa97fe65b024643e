from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from ckdraw.errors import ValidationError
from ckdraw.style.presets import builtin_presets, load_preset_dir, load_preset_file, parse_style_text
from ckdraw.style.schema import default_layer_styles


def test_builtin_presets_load() -> None:
    presets = builtin_presets()
    assert {"dark", "monochrome"} <= set(presets)
    assert presets["dark"].wire_intersection_scale == pytest.approx(1.2)


def test_yaml_preset_name_comes_from_document(tmp_path: Path) -> None:
    data = default_layer_styles().to_dict()
    path = tmp_path / "file-stem.yaml"
    path.write_text(yaml.safe_dump({"name": "Print", **data}), encoding="utf-8")

    name, style = load_preset_file(path)
    assert name == "Print"
    assert style == default_layer_styles()


def test_json_preset_name_falls_back_to_stem(tmp_path: Path) -> None:
    path = tmp_path / "slides.json"
    path.write_text(json.dumps(default_layer_styles().to_dict()), encoding="utf-8")
    name, _ = load_preset_file(path)
    assert name == "slides"


def test_invalid_preset_file_names_the_file(tmp_path: Path) -> None:
    data = default_layer_styles().to_dict()
    data["device"]["stroke_color"] = "green"
    path = tmp_path / "broken.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(ValidationError, match="broken.json"):
        load_preset_file(path)


def test_load_preset_dir_skips_other_files(tmp_path: Path) -> None:
    (tmp_path / "a.json").write_text(json.dumps(default_layer_styles().to_dict()), encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not a preset", encoding="utf-8")
    assert list(load_preset_dir(tmp_path)) == ["a"]
    assert load_preset_dir(tmp_path / "missing") == {}


def test_parse_style_text_rejects_garbage() -> None:
    with pytest.raises(ValidationError, match="JSON"):
        parse_style_text("{not json", "json")
    with pytest.raises(ValidationError):
        parse_style_text("[1, 2]", "yaml")


def test_load_preset_dir_skips_invalid_presets(tmp_path: Path) -> None:
    (tmp_path / "good.json").write_text(json.dumps(default_layer_styles().to_dict()), encoding="utf-8")
    (tmp_path / "bad.yaml").write_text("layer_order: 5\n", encoding="utf-8")
    (tmp_path / "torn.yml").write_text("device: [unclosed\n", encoding="utf-8")
    (tmp_path / "latin1.json").write_bytes(b"{\"name\": \"caf\xe9\"}")
    assert list(load_preset_dir(tmp_path)) == ["good"]
