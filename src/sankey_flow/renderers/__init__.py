"""Renderers: render model, SVG output and PNG export."""

from sankey_flow.renderers.model import RenderModel, build_render_model
from sankey_flow.renderers.png import PngExporter
from sankey_flow.renderers.svg import DiagramSurface, SvgRenderer

__all__ = ["DiagramSurface", "PngExporter", "RenderModel", "SvgRenderer", "build_render_model"]
