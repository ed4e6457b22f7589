"""SVG renderer — renders a RenderModel to an SVG string."""

from __future__ import annotations

from sankey_flow.layout import format_number as _n
from sankey_flow.renderers.base import Renderer
from sankey_flow.renderers.model import GradientDef, LinkPath, NodeRect, RenderModel

# ─── Constants ──────────────────────────────────────────────────────────────

FONT_FAMILY = "sans-serif"
LEGEND_SWATCH = 20  # legend color box size in pixels
LEGEND_GAP = 10  # gap after each legend entry
LEGEND_LEFT = 100  # legend indent from the canvas edge
LEGEND_CHAR_W = 7  # rough label advance per character, for legend spacing


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _font(size: float) -> str:
    return f'font-family="{FONT_FAMILY}" font-size="{_n(size)}"'


# ─── Element Rendering ──────────────────────────────────────────────────────


def _render_gradient(grad: GradientDef) -> str:
    g = grad.gradient
    return "\n".join(
        [
            f'  <linearGradient id="{g.id}" gradientUnits="userSpaceOnUse" '
            f'x1="{_n(grad.x1)}" x2="{_n(grad.x2)}" y1="0" y2="0">',
            f'    <stop offset="0%" stop-color="{g.start_color}"/>',
            f'    <stop offset="100%" stop-color="{g.stop_color}"/>',
            "  </linearGradient>",
        ]
    )


def _render_link(lp: LinkPath) -> str:
    return (
        f'<path class="link" d="{lp.path_data}" fill="none" stroke="url(#{lp.gradient_id})" '
        f'stroke-opacity="{_n(lp.opacity)}" stroke-width="{_n(lp.stroke_width)}">'
        f"<title>{_escape(lp.tooltip)}</title></path>"
    )


def _render_node(nr: NodeRect, font_size: float) -> str:
    w = nr.x1 - nr.x0
    h = nr.y1 - nr.y0
    rect = (
        f'<rect x="{_n(nr.x0)}" y="{_n(nr.y0)}" width="{_n(w)}" height="{_n(h)}" '
        f'fill="{nr.color}" stroke="{nr.stroke}"><title>{_escape(nr.tooltip)}</title></rect>'
    )
    label = (
        f'<text x="{_n(nr.label_x)}" y="{_n(nr.label_y)}" dy=".35em" text-anchor="{nr.label_anchor}" '
        f"{_font(font_size)}>{_escape(nr.label)}</text>"
    )
    return f'<g class="node">{rect}\n{label}</g>'


def _render_legend(model: RenderModel) -> str:
    if not model.legend:
        return ""
    parts = [f'<g class="legend" transform="translate({_n(LEGEND_LEFT)},{_n(model.legend_y)})">']
    x = 0.0
    for item in model.legend:
        parts.append(
            f'<rect x="{_n(x)}" y="0" width="{LEGEND_SWATCH}" height="{LEGEND_SWATCH}" fill="{item.color}"/>'
        )
        parts.append(
            f'<text x="{_n(x + LEGEND_SWATCH + 5)}" y="{_n(LEGEND_SWATCH / 2)}" dy=".35em" '
            f"{_font(model.font_size + 2)}>{_escape(item.label)}</text>"
        )
        x += LEGEND_SWATCH + 5 + len(item.label) * LEGEND_CHAR_W + LEGEND_GAP
    parts.append("</g>")
    return "\n".join(parts)


# ─── Public Renderer ────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer — consumes a RenderModel, produces an SVG string."""

    def render(self, model: RenderModel) -> str:
        w, h = _n(model.width), _n(model.height)
        parts = [f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">']

        if model.title:
            parts.append(
                f'<text class="title" x="{_n(model.width / 2)}" y="{_n(model.offset_y / 2)}" dy=".35em" '
                f'text-anchor="middle" {_font(model.font_size + 6)}>{_escape(model.title)}</text>'
            )

        parts.append(f'<g transform="translate({_n(model.offset_x)},{_n(model.offset_y)})">')
        parts.append("<defs>")
        for grad in model.gradients.values():
            parts.append(_render_gradient(grad))
        parts.append("</defs>")

        # Links (behind nodes), in input order.
        parts.append('<g class="links">')
        for lp in model.links:
            parts.append(_render_link(lp))
        parts.append("</g>")

        # Nodes (on top)
        parts.append('<g class="nodes">')
        for nr in model.nodes:
            parts.append(_render_node(nr, model.font_size))
        parts.append("</g>")
        parts.append("</g>")

        legend = _render_legend(model)
        if legend:
            parts.append(legend)

        parts.append("</svg>")
        return "\n".join(parts)


# ─── Surface ────────────────────────────────────────────────────────────────


class DiagramSurface:
    """A mount point for a rendered diagram; the handle exporters capture from.

    The surface starts unmounted. ``mount`` swaps in a new immutable
    (model, svg) pair in one assignment, so a capture already reading the
    previous model is not affected.
    """

    def __init__(self, renderer: Renderer | None = None) -> None:
        self._renderer: Renderer = renderer or SvgRenderer()
        self._mounted: tuple[RenderModel, str] | None = None

    @property
    def mounted(self) -> bool:
        return self._mounted is not None

    @property
    def model(self) -> RenderModel | None:
        return self._mounted[0] if self._mounted else None

    @property
    def svg(self) -> str | None:
        return self._mounted[1] if self._mounted else None

    def mount(self, model: RenderModel) -> str:
        svg = self._renderer.render(model)
        self._mounted = (model, svg)
        return svg

    def unmount(self) -> None:
        self._mounted = None
