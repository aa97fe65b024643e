"""
Error taxonomy for the document engine.

Every failure the engine reports is one of these types, so callers can
render a precise message without probing result shapes.
"""

from __future__ import annotations


class CkdrawError(Exception):
    """Base class for all engine errors."""


class NotFoundError(CkdrawError):
    """Referenced entity, preset, demo or path does not exist."""


class NoHistoryError(CkdrawError):
    """Undo or redo requested at a history boundary."""


class RenderError(CkdrawError):
    """The renderer rejected a schematic description."""


class CorruptArchiveError(CkdrawError):
    """A project archive could not be opened or failed verification."""


class MissingStyleError(CkdrawError):
    """A project archive has no usable style member."""


class MissingSchematicError(CkdrawError):
    """A project archive has no schematic member."""


class ValidationError(CkdrawError):
    """
    A style payload or configuration value is malformed.

    All problems found are collected in `errors` rather than stopping at
    the first one.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
