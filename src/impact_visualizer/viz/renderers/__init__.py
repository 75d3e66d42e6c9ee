"""Renderers for manifest views."""

from impact_visualizer.viz.renderers.base import OutputFormat, ViewRenderer, ColorScheme
from impact_visualizer.viz.renderers.text import TextRenderer
from impact_visualizer.viz.renderers.json_renderer import JSONRenderer

__all__ = [
    "OutputFormat",
    "ViewRenderer",
    "ColorScheme",
    "TextRenderer",
    "JSONRenderer",
]
