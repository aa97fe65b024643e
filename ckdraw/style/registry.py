"""
Named style presets with a live `current` style and a saved `fixed` snapshot.

`fixed` is only ever a prior value of `current`: it moves when the user
explicitly saves (`fix_current`) or switches presets. Drift is any structural
difference between the two.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from ..errors import NotFoundError, ValidationError
from .schema import LAYERS, LayerStyle, LayerStyles, default_layer_styles

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "default"

# Numeric attributes round-trip through JSON and UI widgets
EPSILON = 1e-9

_NUMERIC = ("stroke_width", "font_zoom")
_EXACT = ("stroke_color", "text_color", "font_family", "priority")


@dataclass(frozen=True)
class StyleDiff:
    """
    Outcome of comparing two styles.

    `only_visibility_changed` is true when the styles differ and every
    difference is a layer visibility flag, the junction visibility, or the
    layer order. Such changes can be applied without re-rendering.
    """

    changed: bool
    only_visibility_changed: bool

    def to_dict(self) -> dict[str, bool]:
        return {"changed": self.changed, "only_visibility_changed": self.only_visibility_changed}


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=0.0, abs_tol=EPSILON)


def _appearance_equal(a: LayerStyle, b: LayerStyle) -> bool:
    if any(getattr(a, attr) != getattr(b, attr) for attr in _EXACT):
        return False
    return all(_close(getattr(a, attr), getattr(b, attr)) for attr in _NUMERIC)


def diff_styles(current: LayerStyles, fixed: LayerStyles) -> StyleDiff:
    """Compare `current` against `fixed`."""
    appearance_same = _close(current.wire_intersection_scale, fixed.wire_intersection_scale) and all(
        _appearance_equal(current.layer(name), fixed.layer(name)) for name in LAYERS
    )
    visibility_same = (
        tuple(current.layer_order) == tuple(fixed.layer_order)
        and current.wire_show_intersection == fixed.wire_show_intersection
        and all(current.layer(name).sch_visible == fixed.layer(name).sch_visible for name in LAYERS)
    )
    changed = not (appearance_same and visibility_same)
    return StyleDiff(changed=changed, only_visibility_changed=changed and appearance_same)


def styles_equal(a: LayerStyles, b: LayerStyles) -> bool:
    return not diff_styles(a, b).changed


class StyleRegistry:
    """
    Owns style presets, the active preset name, and current/fixed styles.

    Styles are frozen values, so storing one is already a copy.
    """

    def __init__(self) -> None:
        self._presets: dict[str, LayerStyles] = {}
        self.current_name: str | None = None
        self._current: LayerStyles | None = None
        self._fixed: LayerStyles | None = None

    # -------------------------------------------------------------------------
    # Presets
    # -------------------------------------------------------------------------

    def add_preset(self, name: str, style: LayerStyles) -> None:
        """Insert or overwrite a preset."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("preset name must be a non-empty string")
        if not isinstance(style, LayerStyles):
            raise TypeError(f"LayerStyles expected, got {type(style).__name__}")
        if name in self._presets:
            logger.info("overwriting style preset %r", name)
        self._presets[name] = style

    def get_preset(self, name: str) -> LayerStyles:
        try:
            return self._presets[name]
        except KeyError:
            raise NotFoundError(f"style preset {name!r} not found") from None

    def remove_preset(self, name: str) -> None:
        if name not in self._presets:
            raise NotFoundError(f"style preset {name!r} not found")
        if name == self.current_name:
            raise ValidationError(f"cannot remove the active preset {name!r}")
        del self._presets[name]

    def preset_names(self) -> list[str]:
        return sorted(self._presets)

    def has_preset(self, name: str) -> bool:
        return name in self._presets

    @property
    def presets(self) -> dict[str, LayerStyles]:
        return dict(self._presets)

    # -------------------------------------------------------------------------
    # Current / fixed
    # -------------------------------------------------------------------------

    @property
    def is_set(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> LayerStyles:
        if self._current is None:
            raise NotFoundError("no current style")
        return self._current

    @property
    def fixed(self) -> LayerStyles:
        if self._fixed is None:
            raise NotFoundError("no fixed style")
        return self._fixed

    def set_current_preset(self, name: str) -> LayerStyles:
        """
        Activate a preset.

        Switching is a save point: both current and fixed become the preset,
        so there is no drift right after the switch.
        """
        style = self.get_preset(name)
        self.current_name = name
        self._current = style
        self._fixed = style
        logger.debug("active style preset: %s", name)
        return style

    def update_current(self, style: LayerStyles) -> None:
        """Apply a live edit without saving it."""
        if not isinstance(style, LayerStyles):
            raise TypeError(f"LayerStyles expected, got {type(style).__name__}")
        self._current = style
        if self._fixed is None:
            self._fixed = style

    def fix_current(self) -> LayerStyles:
        """Save current as fixed, and into the active preset when it exists."""
        current = self.current
        self._fixed = current
        if self.current_name is not None and self.current_name in self._presets:
            self._presets[self.current_name] = current
        return current

    def reset_current_to_fixed(self) -> LayerStyles:
        """Discard live drift."""
        self._current = self.fixed
        return self._current

    def diff(self, current: LayerStyles | None = None, fixed: LayerStyles | None = None) -> StyleDiff:
        return diff_styles(current or self.current, fixed or self.fixed)

    @property
    def has_drift(self) -> bool:
        if self._current is None or self._fixed is None:
            return False
        return self.diff().changed

    def install_default(self) -> LayerStyles:
        """Make sure the default preset exists and activate it."""
        if DEFAULT_PRESET not in self._presets:
            self._presets[DEFAULT_PRESET] = default_layer_styles()
        return self.set_current_preset(DEFAULT_PRESET)

    def restore(
        self,
        presets: dict[str, LayerStyles],
        current_name: str | None,
        current: LayerStyles,
        fixed: LayerStyles | None = None,
    ) -> None:
        """Replace the whole registry state, as read from a project archive."""
        self._presets = dict(presets)
        self.current_name = current_name
        self._current = current
        self._fixed = fixed if fixed is not None else current

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "current_name": self.current_name,
            "current": self._current.to_dict() if self._current else None,
            "fixed": self._fixed.to_dict() if self._fixed else None,
            "presets": {name: style.to_dict() for name, style in sorted(self._presets.items())},
        }
