"""
Virtual file paths for the embedded viewer.

The viewer expects to fetch diagrams from a real filesystem. The router
synthesizes one over the ArtifactStore:

    <any deployment prefix>/embedded/schematic.drawio
    <any deployment prefix>/embedded/symbols/<lib>/<cell>.drawio

Only the canonical suffix after the last `/embedded/` marker matters. The
same suffixes name members of a project archive. Routes are computed from
the store on every request, never cached.
"""

from __future__ import annotations

import logging
from urllib.parse import quote, unquote, urlsplit

from .errors import NotFoundError, ValidationError
from .models import SCHEMATIC, EntityKey, SchematicKey, SymbolKey
from .store.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

MOUNT = "embedded"
DIAGRAM_SUFFIX = ".drawio"
SCHEMATIC_SUFFIX = f"schematic{DIAGRAM_SUFFIX}"
SYMBOLS_DIR = "symbols"


def canonical_suffix(key: EntityKey) -> str:
    """Canonical suffix naming an entity, e.g. `symbols/analogLib/res.drawio`."""
    if isinstance(key, SchematicKey):
        return SCHEMATIC_SUFFIX
    return f"{SYMBOLS_DIR}/{key.lib}/{key.cell}{DIAGRAM_SUFFIX}"


def embedded_path(key: EntityKey, base: str = "") -> str:
    """
    Absolute viewer path for an entity under a deployment base.

    Args:
        key: Entity to address
        base: Deployment prefix such as "/apps/ckdraw" ("" for the site root)
    """
    base = base.rstrip("/")
    return f"{base}/{MOUNT}/" + quote(canonical_suffix(key))


def parse_suffix(suffix: str) -> EntityKey:
    """
    Map a canonical suffix back to its entity key.

    Raises:
        NotFoundError: Suffix does not follow the grammar
    """
    parts = suffix.split("/")
    if parts == [SCHEMATIC_SUFFIX]:
        return SCHEMATIC
    if len(parts) == 3 and parts[0] == SYMBOLS_DIR and parts[2].endswith(DIAGRAM_SUFFIX):
        cell = parts[2][: -len(DIAGRAM_SUFFIX)]
        try:
            return SymbolKey(parts[1], cell)
        except ValidationError:
            raise NotFoundError(f"malformed symbol path: {suffix!r}") from None
    raise NotFoundError(f"no route for {suffix!r}")


def extract_suffix(path: str) -> str:
    """
    Strip the deployment prefix, query string and fragment from a request path.

    Raises:
        NotFoundError: Path has no `/embedded/` marker
    """
    pathname = urlsplit(path).path
    marker = f"/{MOUNT}/"
    if not pathname.startswith("/"):
        pathname = "/" + pathname
    idx = pathname.rfind(marker)
    if idx < 0:
        raise NotFoundError(f"not an embedded path: {path!r}")
    return unquote(pathname[idx + len(marker):])


class VirtualRouter:
    """Resolves viewer request paths against the live store."""

    def __init__(self, store: ArtifactStore):
        self.store = store

    def parse(self, path: str) -> EntityKey:
        """Entity addressed by a request path, whether or not it exists."""
        return parse_suffix(extract_suffix(path))

    def resolve(self, path: str) -> str:
        """
        Content the viewer receives for a request path.

        Raises:
            NotFoundError: Path is malformed or names no live artifact
        """
        key = self.parse(path)
        if not self.store.has(key):
            logger.debug("route miss: %s", path)
            raise NotFoundError(f"nothing at {path!r}")
        return self.store.get(key).content

    def routes(self, base: str = "") -> list[str]:
        """Every path that currently resolves, schematic first."""
        return [embedded_path(key, base) for key in self.store.keys()]
