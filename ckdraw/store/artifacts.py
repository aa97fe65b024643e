"""
Live artifact content.

The store is the single source of truth for what the viewer sees. It never
records history: callers that want undo support pair every `put` with a
`HistoryEngine.push` (see `Engine.commit`).
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterator, Mapping

from ..errors import NotFoundError
from ..models import SCHEMATIC, Artifact, ArtifactKind, EntityKey, SchematicKey, SymbolKey, kind_of

logger = logging.getLogger(__name__)


def compute_hash(content: bytes | str) -> str:
    """
    Compute sha256 hash of content.

    Args:
        content: Raw bytes or string (hashed as UTF-8)

    Returns:
        Hex-encoded sha256 hash
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


class ArtifactStore:
    """
    Owns the content of the schematic artifact and every symbol artifact.

    Symbols are keyed by `SymbolKey`; the schematic is addressed by the
    `SCHEMATIC` singleton. Both mappings are replaced wholesale on ingest so
    a reader never observes a half-populated store.
    """

    def __init__(self) -> None:
        self._schematic: str | None = None
        self._symbols: dict[SymbolKey, str] = {}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, key: EntityKey) -> Artifact:
        """
        Get the live artifact for an entity.

        Raises:
            NotFoundError: No artifact exists for `key`
        """
        if isinstance(key, SchematicKey):
            if self._schematic is None:
                raise NotFoundError("no schematic loaded")
            return Artifact(ArtifactKind.SCHEMATIC, self._schematic)
        content = self._symbols.get(key)
        if content is None:
            raise NotFoundError(f"symbol {key} not found")
        return Artifact(ArtifactKind.SYMBOL, content)

    def has(self, key: EntityKey) -> bool:
        if isinstance(key, SchematicKey):
            return self._schematic is not None
        return key in self._symbols

    def list_symbols(self) -> set[SymbolKey]:
        """All symbol keys currently held."""
        return set(self._symbols)

    def keys(self) -> Iterator[EntityKey]:
        """Every entity key, schematic first when present, symbols sorted."""
        if self._schematic is not None:
            yield SCHEMATIC
        yield from sorted(self._symbols)

    def symbol_items(self) -> list[tuple[SymbolKey, str]]:
        return sorted(self._symbols.items())

    @property
    def schematic(self) -> str | None:
        return self._schematic

    @property
    def symbol_count(self) -> int:
        return len(self._symbols)

    def is_empty(self) -> bool:
        return self._schematic is None and not self._symbols

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def put(self, key: EntityKey, content: str) -> None:
        """
        Replace the live content for `key`.

        Args:
            key: Schematic or symbol key
            content: New diagram document
        """
        if not isinstance(content, str):
            raise TypeError(f"artifact content must be str, got {type(content).__name__}")
        kind_of(key)
        if isinstance(key, SchematicKey):
            self._schematic = content
        else:
            self._symbols[key] = content
        logger.debug("put %s (%d chars)", key, len(content))

    def replace_all(self, schematic: str | None, symbols: Mapping[SymbolKey, str]) -> None:
        """
        Swap in a complete new working set.

        The new symbol mapping is built first and then assigned, so the
        previous state stays intact if building it fails.
        """
        new_symbols = dict(symbols)
        for key, content in new_symbols.items():
            if not isinstance(key, SymbolKey):
                raise TypeError(f"symbol key expected, got {key!r}")
            if not isinstance(content, str):
                raise TypeError(f"content for {key} must be str")
        self._schematic, self._symbols = schematic, new_symbols
        logger.debug(
            "replaced store: schematic=%s symbols=%d",
            schematic is not None,
            len(new_symbols),
        )

    def clear_all(self) -> None:
        """Drop every artifact."""
        self.replace_all(None, {})

    def digest(self, key: EntityKey) -> str:
        """sha256 of the live content for `key`."""
        return compute_hash(self.get(key).content)
