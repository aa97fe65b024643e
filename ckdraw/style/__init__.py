"""
Visual style configuration.

- schema: LayerStyle / LayerStyles records and payload validation
- registry: named presets with current vs. fixed styles and drift diffing
- presets: YAML/JSON preset files and the built-in set
"""

from .presets import builtin_presets, load_preset_dir, load_preset_file, parse_style_text
from .registry import DEFAULT_PRESET, StyleDiff, StyleRegistry, diff_styles, styles_equal
from .schema import LAYERS, LayerStyle, LayerStyles, default_layer_styles

__all__ = [
    "DEFAULT_PRESET",
    "LAYERS",
    "LayerStyle",
    "LayerStyles",
    "StyleDiff",
    "StyleRegistry",
    "builtin_presets",
    "default_layer_styles",
    "diff_styles",
    "load_preset_dir",
    "load_preset_file",
    "parse_style_text",
    "styles_equal",
]
