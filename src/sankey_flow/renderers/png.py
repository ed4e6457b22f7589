"""PNG export — rasterizes a mounted diagram with matplotlib's Agg canvas.

Links are drawn as sampled cubic curves whose segments are colored along
the source → target gradient; nodes, labels, title and legend follow the
SVG renderer's geometry.
"""

from __future__ import annotations

import asyncio
import io
import logging

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from sankey_flow.errors import ConfigError, RenderCaptureError
from sankey_flow.renderers.model import LinkPath, RenderModel
from sankey_flow.renderers.svg import LEGEND_CHAR_W, LEGEND_GAP, LEGEND_LEFT, LEGEND_SWATCH, DiagramSurface
from sankey_flow.style import mix

logger = logging.getLogger(__name__)


class PngExporter:
    """Turns a mounted ``DiagramSurface`` into PNG bytes.

    ``capture`` is synchronous; ``capture_async`` runs it in a worker thread
    and serializes concurrent exports through one lock per event loop.
    Failures raise ``RenderCaptureError`` and leave the surface untouched.
    """

    def __init__(self, dpi: float = 100) -> None:
        if dpi <= 0:
            raise ConfigError(f"dpi must be positive, got {dpi}")
        self.dpi = dpi
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @staticmethod
    def _mounted_model(surface: DiagramSurface | None) -> RenderModel:
        if surface is None:
            raise RenderCaptureError("no surface to capture")
        model = surface.model
        if model is None:
            raise RenderCaptureError("surface has not been rendered yet")
        return model

    def capture(self, surface: DiagramSurface | None) -> bytes:
        return self.rasterize(self._mounted_model(surface))

    async def capture_async(self, surface: DiagramSurface | None) -> bytes:
        # Snapshot the model before leaving the event loop; later mounts don't leak in.
        model = self._mounted_model(surface)
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            # asyncio locks bind to the loop they first wait on.
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        async with self._lock:
            return await asyncio.to_thread(self.rasterize, model)

    def rasterize(self, model: RenderModel) -> bytes:
        try:
            data = self._draw(model)
        except (ValueError, RuntimeError, OSError, MemoryError) as exc:
            raise RenderCaptureError(f"rasterization failed: {exc}") from exc
        logger.debug("rasterized %sx%s diagram into %d bytes", model.width, model.height, len(data))
        return data

    # ─── Drawing ─────────────────────────────────────────────────────────────

    def _draw(self, model: RenderModel) -> bytes:
        pt = 72.0 / self.dpi  # points per pixel
        fig = Figure(figsize=(model.width / self.dpi, model.height / self.dpi), dpi=self.dpi)
        FigureCanvasAgg(fig)
        ax = fig.add_axes((0, 0, 1, 1))
        ax.set_xlim(0, model.width)
        ax.set_ylim(model.height, 0)
        ax.axis("off")

        ox, oy = model.offset_x, model.offset_y

        if model.title:
            ax.text(
                model.width / 2,
                model.offset_y / 2,
                model.title,
                ha="center",
                va="center",
                fontsize=(model.font_size + 6) * pt,
            )

        for lp in model.links:
            ax.add_collection(self._link_collection(model, lp, ox, oy, pt))

        for nr in model.nodes:
            ax.add_patch(
                Rectangle(
                    (nr.x0 + ox, nr.y0 + oy),
                    nr.x1 - nr.x0,
                    nr.y1 - nr.y0,
                    facecolor=nr.color,
                    edgecolor=nr.stroke,
                    linewidth=pt,
                )
            )
            ax.text(
                nr.label_x + ox,
                nr.label_y + oy,
                nr.label,
                ha="left" if nr.label_anchor == "start" else "right",
                va="center",
                fontsize=model.font_size * pt,
            )

        x = float(LEGEND_LEFT)
        for item in model.legend:
            ax.add_patch(Rectangle((x, model.legend_y), LEGEND_SWATCH, LEGEND_SWATCH, facecolor=item.color))
            ax.text(
                x + LEGEND_SWATCH + 5,
                model.legend_y + LEGEND_SWATCH / 2,
                item.label,
                ha="left",
                va="center",
                fontsize=(model.font_size + 2) * pt,
            )
            x += LEGEND_SWATCH + 5 + len(item.label) * LEGEND_CHAR_W + LEGEND_GAP

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=self.dpi, facecolor="white")
        return buf.getvalue()

    @staticmethod
    def _link_collection(model: RenderModel, lp: LinkPath, ox: float, oy: float, pt: float) -> LineCollection:
        grad = model.gradient(lp.source_id, lp.target_id)
        span = grad.x2 - grad.x1
        pts = [(p.x + ox, p.y + oy) for p in lp.points]
        segments = [[pts[i], pts[i + 1]] for i in range(len(pts) - 1)]
        colors = []
        for (xa, _ya), (xb, _yb) in segments:
            t = ((xa + xb) / 2 - ox - grad.x1) / span if span else 0.0
            r, g, b = mix(grad.gradient.start_color, grad.gradient.stop_color, min(1.0, max(0.0, t)))
            colors.append((r, g, b, lp.opacity))
        return LineCollection(segments, colors=colors, linewidths=lp.stroke_width * pt, capstyle="butt")
