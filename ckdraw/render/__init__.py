"""
Renderer collaborator.

The engine only depends on the `Renderer` protocol. `DrawioRenderer` is the
bundled implementation producing draw.io documents.
"""

from .description import SchematicDescription, load_description_text, parse_description
from .drawio import DrawioRenderer, layer_order, layer_visibility, restyle_document
from .protocol import Renderer, RenderOutput

__all__ = [
    "DrawioRenderer",
    "RenderOutput",
    "Renderer",
    "SchematicDescription",
    "layer_order",
    "layer_visibility",
    "load_description_text",
    "parse_description",
    "restyle_document",
]
