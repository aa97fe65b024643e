"""Renderer collaborator interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

from ..models import SymbolKey
from ..style.schema import LayerStyles


@dataclass(frozen=True)
class RenderOutput:
    """Diagram documents produced from one schematic description."""

    schematic: str
    symbols: dict[SymbolKey, str] = field(default_factory=dict)


@runtime_checkable
class Renderer(Protocol):
    """
    Converts a schematic description into diagram documents.

    Implementations raise RenderError for descriptions they reject. The
    engine never inspects how layout is done.
    """

    def render(self, description: dict[str, Any], style: LayerStyles) -> RenderOutput:
        """Render every symbol and the schematic."""
        ...

    def render_schematic(
        self,
        description: dict[str, Any],
        style: LayerStyles,
        symbols: Mapping[SymbolKey, str],
    ) -> str:
        """Render the schematic from existing (possibly edited) symbol documents."""
        ...

    def restyle_visibility(self, content: str, style: LayerStyles, *, schematic: bool) -> str:
        """Apply only layer visibility and layer order to an existing document."""
        ...
