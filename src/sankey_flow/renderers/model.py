"""Render model — drawing instructions derived from a layout and a style.

Everything a renderer needs is precomputed here (colors, tooltips, label
anchors, gradient definitions), so the SVG and PNG renderers only translate
shapes into their own output format.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sankey_flow.config import SankeyConfig
from sankey_flow.layout import LayoutResult, Point
from sankey_flow.style import DEFAULT_STYLE, LegendItem, LinkGradient, StyleResolver, darker

# Height of the band below the diagram that holds the legend.
LEGEND_HEIGHT = 30
# Height of the band above the diagram that holds the title.
TITLE_HEIGHT = 30


@dataclass(frozen=True)
class NodeRect:
    id: str
    x0: float
    y0: float
    x1: float
    y1: float
    color: str
    stroke: str
    label: str
    tooltip: str
    label_x: float
    label_y: float
    label_anchor: str  # "start" | "end"


@dataclass(frozen=True)
class LinkPath:
    source_id: str
    target_id: str
    path_data: str
    gradient_id: str
    stroke_width: float
    opacity: float
    tooltip: str
    points: tuple[Point, ...] = field(repr=False)


@dataclass(frozen=True)
class GradientDef:
    """A link gradient pinned to the horizontal span between two nodes."""

    gradient: LinkGradient
    x1: float
    x2: float

    @property
    def id(self) -> str:
        return self.gradient.id


@dataclass(frozen=True)
class RenderModel:
    """Everything needed to draw one diagram, in canvas coordinates.

    Node and link coordinates are relative to the diagram origin at
    (``offset_x``, ``offset_y``) on the canvas.
    """

    width: float
    height: float
    offset_x: float
    offset_y: float
    nodes: tuple[NodeRect, ...]
    links: tuple[LinkPath, ...]
    gradients: dict[tuple[str, str], GradientDef]
    legend: tuple[LegendItem, ...]
    title: str | None
    font_size: float
    legend_y: float

    def gradient(self, source_id: str, target_id: str) -> GradientDef:
        return self.gradients[(source_id, target_id)]


def build_render_model(
    result: LayoutResult,
    style: StyleResolver = DEFAULT_STYLE,
    config: SankeyConfig | None = None,
) -> RenderModel:
    """Attach colors, labels and tooltips to a finished layout."""
    config = config or SankeyConfig()
    inner_width = config.width - config.margin.left - config.margin.right

    nodes: list[NodeRect] = []
    for p in result.nodes:
        color = style.color_for(p.node)
        if p.x0 < inner_width / 2:
            label_x, anchor = p.x1 + config.label_offset, "start"
        else:
            label_x, anchor = p.x0 - config.label_offset, "end"
        nodes.append(
            NodeRect(
                id=p.id,
                x0=p.x0,
                y0=p.y0,
                x1=p.x1,
                y1=p.y1,
                color=color,
                stroke=darker(color, 2),
                label=p.name,
                tooltip=f"{p.name}\n{config.format_value(p.value)}",
                label_x=label_x,
                label_y=(p.y0 + p.y1) / 2,
                label_anchor=anchor,
            )
        )

    gradients: dict[tuple[str, str], GradientDef] = {}
    links: list[LinkPath] = []
    for r in result.links:
        key = (r.source_id, r.target_id)
        grad = gradients.get(key)
        if grad is None:
            grad = gradients[key] = GradientDef(gradient=style.gradient_for(r.link), x1=r.x0, x2=r.x1)
        links.append(
            LinkPath(
                source_id=r.source_id,
                target_id=r.target_id,
                path_data=r.path_data,
                gradient_id=grad.id,
                stroke_width=r.stroke_width,
                opacity=config.link_opacity,
                tooltip=f"{r.link.source.name} → {r.link.target.name}\n{config.format_value(r.value)}",
                points=tuple(r.sample()),
            )
        )

    offset_y = config.margin.top + (TITLE_HEIGHT if config.title else 0)
    diagram_bottom = offset_y + config.height - config.margin.top
    legend = tuple(style.legend()) if config.legend else ()

    return RenderModel(
        width=config.width,
        height=diagram_bottom + (LEGEND_HEIGHT if legend else 0),
        offset_x=config.margin.left,
        offset_y=offset_y,
        nodes=tuple(nodes),
        links=tuple(links),
        gradients=gradients,
        legend=legend,
        title=config.title,
        font_size=config.font_size,
        legend_y=diagram_bottom,
    )
