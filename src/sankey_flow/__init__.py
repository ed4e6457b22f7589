"""Public API for sankey_flow."""

from sankey_flow.api import layout, render_model, render_png, render_svg
from sankey_flow.config import NodeAlign, SankeyConfig
from sankey_flow.errors import ConfigError, CyclicGraphError, RenderCaptureError, SankeyError, ValidationError
from sankey_flow.graph import FlowGraph, FlowLink, FlowNode, build_graph, load_graph, parse_graph
from sankey_flow.layout import LayoutResult, full_layout
from sankey_flow.style import Category, StyleResolver

__all__ = [
    "Category",
    "ConfigError",
    "CyclicGraphError",
    "FlowGraph",
    "FlowLink",
    "FlowNode",
    "LayoutResult",
    "NodeAlign",
    "RenderCaptureError",
    "SankeyConfig",
    "SankeyError",
    "StyleResolver",
    "ValidationError",
    "build_graph",
    "full_layout",
    "layout",
    "load_graph",
    "parse_graph",
    "render_model",
    "render_png",
    "render_svg",
]
