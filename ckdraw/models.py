"""Data models for engine entities."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import ValidationError

# Path separators and control characters cannot appear in a key part:
# lib and cell become directory and file names in routes and archives.
_FORBIDDEN = re.compile(r"[/\\\x00-\x1f]")


class ArtifactKind(str, Enum):
    SYMBOL = "symbol"
    SCHEMATIC = "schematic"


@dataclass(frozen=True, order=True)
class SymbolKey:
    """Identity of a symbol artifact and its history stream."""

    lib: str
    cell: str

    def __post_init__(self) -> None:
        errors = []
        for part, value in (("lib", self.lib), ("cell", self.cell)):
            if not isinstance(value, str) or not value:
                errors.append(f"{part} must be a non-empty string")
            elif _FORBIDDEN.search(value) or value in {".", ".."}:
                errors.append(f"{part} {value!r} is not a valid path segment")
        if errors:
            raise ValidationError(errors)

    def __str__(self) -> str:
        return f"{self.lib}/{self.cell}"

    def to_dict(self) -> dict[str, str]:
        return {"lib": self.lib, "cell": self.cell}


@dataclass(frozen=True)
class SchematicKey:
    """Identity of the single schematic artifact."""

    def __str__(self) -> str:
        return "schematic"


SCHEMATIC = SchematicKey()

EntityKey = Union[SchematicKey, SymbolKey]


def kind_of(key: EntityKey) -> ArtifactKind:
    """Artifact kind addressed by an entity key."""
    if isinstance(key, SymbolKey):
        return ArtifactKind.SYMBOL
    if isinstance(key, SchematicKey):
        return ArtifactKind.SCHEMATIC
    raise TypeError(f"not an entity key: {key!r}")


@dataclass(frozen=True)
class Artifact:
    """A rendered diagram document for one symbol or for the schematic."""

    kind: ArtifactKind
    content: str

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))
