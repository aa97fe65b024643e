"""
The engine object.

One `Engine` is created per session and owns every component: artifact
store, history, style registry, router, codec and ingest pipeline. All
presentation code talks to the engine; nothing is process-global.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .codec import ProjectCodec
from .config import EngineConfig
from .demo import list_demos
from .demo import load_demo as read_demo
from .errors import RenderError
from .ingest import IngestPipeline, IngestResult
from .journal import Discarded, Journal, Produced
from .models import SCHEMATIC, EntityKey, SymbolKey
from .render.drawio import DrawioRenderer
from .render.protocol import Renderer
from .router import VirtualRouter
from .store.artifacts import ArtifactStore
from .store.history import HistoryEngine, HistoryInfo
from .style.presets import builtin_presets, load_preset_dir
from .style.registry import DEFAULT_PRESET, StyleDiff, StyleRegistry, diff_styles
from .style.schema import LayerStyles, default_layer_styles

logger = logging.getLogger(__name__)


class Engine:
    """
    Stateful document engine for one editing session.

    Args:
        config: Engine settings (defaults when omitted)
        renderer: Layout collaborator (the draw.io reference renderer by default)
        journal: Operation journal (from `config.journal_path` by default)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        renderer: Renderer | None = None,
        journal: Journal | None = None,
    ):
        self.config = config or EngineConfig()
        self.renderer = renderer or DrawioRenderer()
        self.journal = journal or Journal(self.config.journal_path)

        self.store = ArtifactStore()
        self.history = HistoryEngine(self.config.history_limit)
        self.styles = StyleRegistry()
        self.router = VirtualRouter(self.store)
        self.codec = ProjectCodec()
        self.pipeline = IngestPipeline(
            self.store,
            self.history,
            self.styles,
            self.renderer,
            codec=self.codec,
            default_preset=self.config.default_preset,
        )
        self._load_presets()

    def _load_presets(self) -> None:
        self.styles.add_preset(DEFAULT_PRESET, default_layer_styles())
        for name, style in builtin_presets().items():
            self.styles.add_preset(name, style)
        for directory in self.config.preset_dirs:
            for name, style in load_preset_dir(directory).items():
                self.styles.add_preset(name, style)
        logger.debug("loaded presets: %s", ", ".join(self.styles.preset_names()))

    @property
    def description(self) -> dict[str, Any] | None:
        """Description the working set was rendered from, when known."""
        return self.pipeline.description

    # -------------------------------------------------------------------------
    # Ingest
    # -------------------------------------------------------------------------

    def _discarded(self) -> Discarded:
        return Discarded(
            symbols=self.store.symbol_count,
            schematic=1 if self.store.has(SCHEMATIC) else 0,
            history_entries=sum(self.history.info(k).length for k in self.store.keys() if self.history.has(k)),
        )

    def _record_ingest(self, operation: str, result: IngestResult, discarded: Discarded, **metadata: Any) -> None:
        if not result.applied:
            return
        self.journal.record(
            operation,
            discarded=discarded,
            produced=Produced(symbols=len(result.symbol_keys), schematic=1 if result.schematic_ok else 0),
            metadata={k: v for k, v in metadata.items() if v is not None},
        )

    def ingest_description(self, raw: dict[str, Any], style: LayerStyles | None = None) -> IngestResult:
        """Render a description into a fresh working set."""
        discarded = self._discarded()
        result = self.pipeline.ingest_from_description(raw, style)
        design = raw.get("design") if isinstance(raw, dict) else None
        self._record_ingest(
            "ingest",
            result,
            discarded,
            design=f"{design.get('lib')}/{design.get('cell')}" if isinstance(design, dict) else None,
        )
        return result

    def ingest_archive(self, data: bytes) -> IngestResult:
        """Restore a project archive into a fresh working set."""
        discarded = self._discarded()
        result = self.pipeline.ingest_from_archive(data)
        self._record_ingest("restore", result, discarded, warnings=len(result.warnings) or None)
        return result

    def ingest_file(self, path: Path, style: LayerStyles | None = None) -> IngestResult:
        discarded = self._discarded()
        result = self.pipeline.ingest_from_file(path, style)
        operation = "restore" if path.suffix.lower() == ".zip" else "ingest"
        self._record_ingest(operation, result, discarded, source=str(path))
        return result

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def symbols(self) -> list[SymbolKey]:
        return sorted(self.store.list_symbols())

    def has_schematic(self) -> bool:
        return self.store.has(SCHEMATIC)

    def content(self, key: EntityKey) -> str:
        """
        Live content of an entity.

        Raises:
            NotFoundError: No such entity
        """
        return self.store.get(key).content

    def route(self, path: str) -> str:
        """Content served to the viewer for a request path."""
        return self.router.resolve(path)

    def routes(self, base: str = "") -> list[str]:
        return self.router.routes(base)

    def commit(self, key: EntityKey, content: str) -> HistoryInfo | None:
        """
        Save an edit: write the store, then record a history entry.

        The store write is authoritative. If recording history runs out of
        memory the edit stays saved and None is returned.
        """
        self.store.put(key, content)
        try:
            return self.history.push(key, content)
        except MemoryError:
            logger.error("history not recorded for %s: out of memory", key)
            return None

    def undo(self, key: EntityKey) -> str:
        """
        Step an entity back and return the restored content.

        Raises:
            NotFoundError: No history for `key`
            NoHistoryError: Nothing to undo
        """
        content = self.history.undo(key)
        self.store.put(key, content)
        return content

    def redo(self, key: EntityKey) -> str:
        content = self.history.redo(key)
        self.store.put(key, content)
        return content

    def history_info(self, key: EntityKey) -> HistoryInfo:
        return self.history.info(key)

    # -------------------------------------------------------------------------
    # Style
    # -------------------------------------------------------------------------

    @property
    def current_style(self) -> LayerStyles:
        return self.styles.current

    @property
    def fixed_style(self) -> LayerStyles:
        return self.styles.fixed

    def preset_names(self) -> list[str]:
        return self.styles.preset_names()

    def add_preset(self, name: str, style: LayerStyles) -> None:
        self.styles.add_preset(name, style)

    def set_preset(self, name: str, apply: bool = True) -> LayerStyles:
        """
        Activate a preset, restyling the working set unless `apply` is False.

        Raises:
            NotFoundError: No such preset
        """
        style = self.styles.get_preset(name)
        if apply:
            self.apply_style(style)
        self.styles.set_current_preset(name)
        return style

    def update_style(self, style: LayerStyles) -> None:
        """Change the current style without touching any artifact."""
        self.styles.update_current(style)

    def fix_style(self) -> LayerStyles:
        return self.styles.fix_current()

    def reset_style(self, apply: bool = True) -> LayerStyles:
        """Drop unsaved style changes, restyling the working set unless `apply` is False."""
        fixed = self.styles.fixed
        if apply:
            self.apply_style(fixed)
        return self.styles.reset_current_to_fixed()

    def style_diff(self) -> StyleDiff:
        return self.styles.diff()

    @property
    def has_style_drift(self) -> bool:
        return self.styles.has_drift

    def apply_style(self, style: LayerStyles) -> StyleDiff:
        """
        Make `style` current and restyle every artifact to match.

        A visibility-only change rewrites layer containers in place; any
        other change re-renders from the source description. Each rewritten
        artifact is committed, so a restyle can be undone per entity.

        Raises:
            RenderError: A full re-render is needed but no description is known
        """
        previous = self.styles.current if self.styles.is_set else None
        diff = diff_styles(style, previous) if previous is not None else StyleDiff(changed=True, only_visibility_changed=False)

        if not diff.changed or self.store.is_empty():
            self.styles.update_current(style)
            return diff

        if diff.only_visibility_changed:
            updates = {
                key: self.renderer.restyle_visibility(self.content(key), style, schematic=key == SCHEMATIC)
                for key in self.store.keys()
            }
            mode = "visibility"
        else:
            if self.description is None:
                raise RenderError("working set has no source description; only layer visibility can change")
            output = self.renderer.render(self.description, style)
            updates = {**output.symbols, SCHEMATIC: output.schematic}
            mode = "render"

        self.styles.update_current(style)
        # Symbols first so a failure never leaves a schematic ahead of its symbols
        symbols = sum(
            self._commit_if_changed(key, updates[key])
            for key in sorted(k for k in updates if isinstance(k, SymbolKey))
        )
        schematic = SCHEMATIC in updates and self._commit_if_changed(SCHEMATIC, updates[SCHEMATIC])

        logger.info("restyled %d symbols, schematic=%s (%s)", symbols, schematic, mode)
        self.journal.record(
            "restyle",
            produced=Produced(symbols=symbols, schematic=int(schematic)),
            metadata={"mode": mode},
        )
        return diff

    def _commit_if_changed(self, key: EntityKey, content: str) -> bool:
        if self.store.has(key) and self.store.get(key).content == content:
            return False
        self.commit(key, content)
        return True

    def rebuild_schematic(self) -> str:
        """
        Re-render the schematic from the live (possibly edited) symbols.

        Raises:
            RenderError: No source description is known, or rendering failed
        """
        if self.description is None:
            raise RenderError("working set has no source description")
        style = self.styles.current if self.styles.is_set else default_layer_styles()
        content = self.renderer.render_schematic(self.description, style, dict(self.store.symbol_items()))
        self.commit(SCHEMATIC, content)
        return content

    # -------------------------------------------------------------------------
    # Export and demos
    # -------------------------------------------------------------------------

    def export_project(self) -> bytes:
        """Archive bytes of the whole working set."""
        data = self.codec.serialize(self.store, self.styles, self.description)
        self.journal.record(
            "export",
            produced=Produced(
                symbols=self.store.symbol_count,
                schematic=1 if self.has_schematic() else 0,
                bytes_written=len(data),
            ),
            metadata={"filename": self.export_filename()},
        )
        return data

    def export_filename(self) -> str:
        """Download name: the design cell when known, else the configured default."""
        design = self.description.get("design") if self.description else None
        cell = design.get("cell") if isinstance(design, dict) else None
        if isinstance(cell, str) and cell and "/" not in cell:
            return f"{cell}.zip"
        return self.config.export_filename

    def info(self) -> dict[str, Any]:
        """Summary of the working set."""
        return {
            "schematic": self.has_schematic(),
            "symbols": [str(k) for k in self.symbols()],
            "style": self.styles.current_name,
            "style_drift": self.has_style_drift,
            "history": {
                str(k): self.history.info(k).to_dict()
                for k in self.store.keys()
                if self.history.has(k)
            },
        }

    def demo_names(self) -> list[str]:
        return list_demos()

    def load_demo(self, name: str) -> IngestResult:
        """
        Load a bundled demo, activating its style when it ships one.

        Raises:
            NotFoundError: No such demo
        """
        demo = read_demo(name)
        result = self.ingest_description(demo.description, demo.style)
        if result.applied and demo.style is not None:
            preset = demo.name.removesuffix(".json")
            self.styles.add_preset(preset, demo.style)
            self.styles.set_current_preset(preset)
        return result
