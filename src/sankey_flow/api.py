"""Public API — one-call entry points from raw graph data to layout/SVG/PNG."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sankey_flow.config import SankeyConfig
from sankey_flow.graph import FlowGraph, build_graph, parse_graph
from sankey_flow.layout import LayoutResult, full_layout
from sankey_flow.renderers.model import RenderModel, build_render_model
from sankey_flow.renderers.png import PngExporter
from sankey_flow.renderers.svg import DiagramSurface, SvgRenderer
from sankey_flow.style import DEFAULT_STYLE, StyleResolver

GraphSource = str | Mapping[str, Any] | FlowGraph


def _to_graph(source: GraphSource, style: StyleResolver) -> FlowGraph:
    if isinstance(source, FlowGraph):
        return source
    if isinstance(source, str):
        return parse_graph(source, style)
    return build_graph(source, style)


def layout(
    source: GraphSource,
    width: float | None = None,
    height: float | None = None,
    config: SankeyConfig | None = None,
    style: StyleResolver = DEFAULT_STYLE,
) -> LayoutResult:
    """Validate ``source`` (JSON text, mapping or FlowGraph) and lay it out.

    ``style`` assigns node categories; a prebuilt ``FlowGraph`` keeps its own.

    Raises ``ValidationError`` / ``CyclicGraphError`` before anything is drawn.
    """
    config = (config or SankeyConfig()).with_canvas(width, height)
    return full_layout(_to_graph(source, style), config)


def render_model(
    source: GraphSource,
    config: SankeyConfig | None = None,
    style: StyleResolver = DEFAULT_STYLE,
) -> RenderModel:
    config = config or SankeyConfig()
    return build_render_model(layout(source, config=config, style=style), style, config)


def render_svg(
    source: GraphSource,
    config: SankeyConfig | None = None,
    style: StyleResolver = DEFAULT_STYLE,
) -> str:
    """Render ``source`` to an SVG document string."""
    return SvgRenderer().render(render_model(source, config, style))


def render_png(
    source: GraphSource,
    config: SankeyConfig | None = None,
    style: StyleResolver = DEFAULT_STYLE,
    dpi: float = 100,
) -> bytes:
    """Render ``source`` and rasterize it to PNG bytes."""
    surface = DiagramSurface()
    surface.mount(render_model(source, config, style))
    return PngExporter(dpi=dpi).capture(surface)
