"""
Ingest pipeline.

Populates the store, history and style registry from either a schematic
description (through the renderer) or a project archive (already rendered).
Both paths replace the whole working set; a failed ingest leaves the
previous state untouched.

Ingest reports through `IngestResult` instead of raising, so a caller can
show the message and keep working with what it had.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .codec import ProjectCodec
from .errors import CkdrawError, CorruptArchiveError, RenderError
from .models import SCHEMATIC, SymbolKey
from .render.description import load_description_text
from .render.protocol import Renderer
from .store.artifacts import ArtifactStore
from .store.history import HistoryEngine
from .style.registry import DEFAULT_PRESET, StyleRegistry
from .style.schema import LayerStyles, default_layer_styles

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """
    Outcome of an ingest.

    `applied` tells whether the working set was replaced. A project without
    a schematic is still applied (its symbols are loaded) but reports
    `schematic_ok=False` with a message.
    """

    symbol_keys: list[SymbolKey] = field(default_factory=list)
    schematic_ok: bool = False
    message: str | None = None
    warnings: list[str] = field(default_factory=list)
    applied: bool = True

    @property
    def ok(self) -> bool:
        return self.applied and self.schematic_ok

    @classmethod
    def failed(cls, message: str) -> IngestResult:
        return cls(message=message, applied=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol_keys": [str(k) for k in self.symbol_keys],
            "schematic_ok": self.schematic_ok,
            "message": self.message,
            "warnings": list(self.warnings),
            "applied": self.applied,
        }


class IngestPipeline:
    """Replaces the working set from a description or an archive."""

    def __init__(
        self,
        store: ArtifactStore,
        history: HistoryEngine,
        styles: StyleRegistry,
        renderer: Renderer,
        codec: ProjectCodec | None = None,
        default_preset: str = DEFAULT_PRESET,
    ):
        self.store = store
        self.history = history
        self.styles = styles
        self.renderer = renderer
        self.codec = codec or ProjectCodec()
        self.default_preset = default_preset
        # Source of the live working set, kept for re-rendering and export
        self.description: dict[str, Any] | None = None

    def _render_style(self, style: LayerStyles | None) -> LayerStyles:
        if style is not None:
            return style
        if self.styles.is_set:
            return self.styles.current
        if self.styles.has_preset(self.default_preset):
            return self.styles.get_preset(self.default_preset)
        return default_layer_styles()

    def _install_default_style(self) -> None:
        if self.styles.has_preset(self.default_preset):
            self.styles.set_current_preset(self.default_preset)
        else:
            if self.default_preset != DEFAULT_PRESET:
                logger.warning("default preset %r not found; using %r", self.default_preset, DEFAULT_PRESET)
            self.styles.install_default()

    def _seed_history(self) -> None:
        self.history.clear()
        for key in self.store.keys():
            self.history.seed(key, self.store.get(key).content)

    def ingest_from_description(self, raw: dict[str, Any], style: LayerStyles | None = None) -> IngestResult:
        """
        Render a description and make the result the working set.

        Args:
            raw: Decoded schematic description
            style: Style to render with and make current; when omitted the
                current style is kept (or the default preset installed)
        """
        render_style = self._render_style(style)
        try:
            output = self.renderer.render(raw, render_style)
        except RenderError as exc:
            logger.error("render failed: %s", exc)
            return IngestResult.failed(str(exc))

        self.store.replace_all(output.schematic, output.symbols)
        self._seed_history()
        self.description = raw

        if style is not None:
            self.styles.update_current(style)
        elif not self.styles.is_set:
            self._install_default_style()

        keys = sorted(output.symbols)
        logger.info("ingested description: %d symbols", len(keys))
        return IngestResult(symbol_keys=keys, schematic_ok=True)

    def ingest_from_archive(self, data: bytes) -> IngestResult:
        """Restore a project archive as the working set."""
        try:
            restored = self.codec.deserialize(data)
        except CorruptArchiveError as exc:
            logger.error("archive rejected: %s", exc)
            return IngestResult.failed(str(exc))

        self.store.replace_all(restored.schematic, restored.symbols)
        self._seed_history()
        self.description = restored.description

        if restored.style_recovered:
            presets = {**self.styles.presets, **restored.presets}
            self.styles.restore(presets, restored.current_name, restored.style, restored.fixed)
        else:
            self._install_default_style()

        warnings = [str(w) for w in restored.warnings]
        message = str(restored.schematic_error) if restored.schematic_error else None
        keys = sorted(restored.symbols)
        logger.info(
            "restored archive: %d symbols, schematic=%s",
            len(keys),
            self.store.has(SCHEMATIC),
        )
        return IngestResult(
            symbol_keys=keys,
            schematic_ok=restored.schematic is not None,
            message=message,
            warnings=warnings,
        )

    def ingest_from_file(self, path: Path, style: LayerStyles | None = None) -> IngestResult:
        """Ingest a `.json` description or a `.zip` project archive."""
        suffix = path.suffix.lower()
        try:
            if suffix == ".zip":
                return self.ingest_from_archive(path.read_bytes())
            if suffix == ".json":
                raw = load_description_text(path.read_text(encoding="utf-8"))
                return self.ingest_from_description(raw, style)
        except (OSError, UnicodeDecodeError) as exc:
            return IngestResult.failed(f"cannot read {path}: {exc}")
        except CkdrawError as exc:
            return IngestResult.failed(str(exc))
        return IngestResult.failed(f"unsupported file type: {path.name} (expected .json or .zip)")
