"""Pytest configuration and fixtures."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest

from ckdraw.config import EngineConfig
from ckdraw.engine import Engine
from ckdraw.journal import Journal

_DIVIDER: dict[str, Any] = {
    "design": {"lib": "work", "cell": "divider"},
    "symbols": [
        {
            "lib": "analogLib",
            "cell": "res",
            "shapes": [
                {"type": "rect", "layer": "device", "bBox": [[-0.0625, -0.125], [0.0625, -0.375]]},
                {"type": "line", "layer": "device", "points": [[0, 0], [0, -0.125]]},
                {"type": "line", "layer": "device", "points": [[0, -0.375], [0, -0.5]]},
                {"type": "label", "layer": "annotate", "text": "R", "xy": [0.1, -0.25], "height": 0.0625},
            ],
            "pins": [
                {"name": "PLUS", "direction": "inputOutput", "x": 0, "y": 0},
                {"name": "MINUS", "direction": "inputOutput", "x": 0, "y": -0.5},
            ],
        },
        {
            "lib": "analogLib",
            "cell": "gnd",
            "shapes": [
                {"type": "polygon", "layer": "device", "points": [[-0.0625, 0], [0.0625, 0], [0, -0.0625]]},
            ],
            "pins": [{"name": "gnd!", "direction": "inputOutput", "x": 0, "y": 0}],
        },
        {
            "lib": "basic",
            "cell": "ipin",
            "shapes": [
                {"type": "ellipse", "layer": "pin", "bBox": [[-0.03, 0.03], [0.03, -0.03]]},
            ],
            "pins": [{"name": "A", "direction": "input", "x": 0, "y": 0}],
        },
    ],
    "instances": [
        {"name": "R0", "lib": "analogLib", "cell": "res", "x": 0.0, "y": 1.0},
        {"name": "R1", "lib": "analogLib", "cell": "res", "x": 0.0, "y": 0.5},
        {"name": "G0", "lib": "analogLib", "cell": "gnd", "x": 0.0, "y": 0.0, "orient": "R0"},
        {"name": "I0", "lib": "basic", "cell": "ipin", "x": -0.5, "y": 1.0, "orient": "MY"},
    ],
    "wires": [
        {"net": "IN", "points": [[-0.5, 1.0], [0.0, 1.0]]},
        {"net": "MID", "points": [[0.0, 0.5], [0.5, 0.5]]},
    ],
    "pins": [{"name": "MID", "direction": "output", "x": 0.5, "y": 0.5}],
    "labels": [],
    "shapes": [],
}


@pytest.fixture
def description() -> dict[str, Any]:
    """A voltage divider using three symbols."""
    return copy.deepcopy(_DIVIDER)


@pytest.fixture
def engine() -> Engine:
    """Engine with default settings and no journal."""
    return Engine(EngineConfig())


@pytest.fixture
def loaded_engine(engine: Engine, description: dict[str, Any]) -> Engine:
    """Engine holding the rendered divider."""
    result = engine.ingest_description(description)
    assert result.ok, result.message
    return engine


@pytest.fixture
def journal_path(tmp_path: Path) -> Path:
    return tmp_path / ".ckdraw" / "journal.log"


@pytest.fixture
def journaled_engine(journal_path: Path) -> Engine:
    """Engine that records to a journal under tmp_path."""
    config = EngineConfig(journal_path=journal_path)
    return Engine(config, journal=Journal(journal_path))
