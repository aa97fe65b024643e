"""
ckdraw - stateful document engine for rendered circuit schematics.

The engine owns every symbol and schematic diagram produced by a renderer,
keeps a bounded undo/redo history per diagram, manages named style presets,
serves diagrams to an embedded viewer through virtual paths, and packs the
whole working set into a single zip archive.
"""

__version__ = "0.3.0"

from .engine import Engine
from .errors import (
    CkdrawError,
    CorruptArchiveError,
    MissingSchematicError,
    MissingStyleError,
    NoHistoryError,
    NotFoundError,
    RenderError,
    ValidationError,
)
from .ingest import IngestResult
from .models import SCHEMATIC, Artifact, ArtifactKind, EntityKey, SymbolKey
from .style import LayerStyle, LayerStyles, StyleDiff, StyleRegistry

__all__ = [
    "__version__",
    # Engine
    "Engine",
    "IngestResult",
    # Models
    "SCHEMATIC",
    "Artifact",
    "ArtifactKind",
    "EntityKey",
    "SymbolKey",
    # Style
    "LayerStyle",
    "LayerStyles",
    "StyleDiff",
    "StyleRegistry",
    # Errors
    "CkdrawError",
    "CorruptArchiveError",
    "MissingSchematicError",
    "MissingStyleError",
    "NoHistoryError",
    "NotFoundError",
    "RenderError",
    "ValidationError",
]
