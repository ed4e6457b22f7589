"""Tests for PNG export from a mounted diagram surface."""

from __future__ import annotations

import asyncio
import struct

import pytest

from sankey_flow.api import render_model, render_png
from sankey_flow.config import SankeyConfig
from sankey_flow.errors import ConfigError, RenderCaptureError
from sankey_flow.renderers.png import PngExporter
from sankey_flow.renderers.svg import DiagramSurface

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

RAW = {
    "nodes": [{"name": "Grassland 1970"}, {"name": "Agriculture 2020"}, {"name": "Grassland 2020"}],
    "links": [
        {"source": 0, "target": 1, "value": 40},
        {"source": 0, "target": 2, "value": 60},
    ],
}


def png_size(data: bytes) -> tuple[int, int]:
    """Width and height from the IHDR chunk."""
    return struct.unpack(">II", data[16:24])


@pytest.fixture
def surface() -> DiagramSurface:
    s = DiagramSurface()
    s.mount(render_model(RAW))
    return s


class TestCapture:
    def test_produces_png(self, surface):
        data = PngExporter().capture(surface)
        assert data.startswith(PNG_SIGNATURE)

    def test_canvas_size(self, surface):
        width, height = png_size(PngExporter().capture(surface))
        assert abs(width - 960) <= 1
        assert abs(height - surface.model.height) <= 1

    def test_dpi_scales_output(self):
        model = render_model(RAW, SankeyConfig(legend=False))
        s = DiagramSurface()
        s.mount(model)
        width, height = png_size(PngExporter(dpi=200).capture(s))
        assert abs(width - 960) <= 1
        assert abs(height - 600) <= 1

    def test_render_png_helper(self):
        assert render_png(RAW).startswith(PNG_SIGNATURE)

    def test_invalid_dpi(self):
        with pytest.raises(ConfigError):
            PngExporter(dpi=0)


class TestCaptureFailures:
    def test_no_surface(self):
        with pytest.raises(RenderCaptureError, match="no surface"):
            PngExporter().capture(None)

    def test_unmounted_surface(self):
        with pytest.raises(RenderCaptureError, match="not been rendered"):
            PngExporter().capture(DiagramSurface())

    def test_backend_failure_is_wrapped(self, surface, monkeypatch):
        """A drawing failure surfaces as a retryable capture error; the surface survives."""

        def broken_draw(self, model):
            raise RuntimeError("backend exploded")

        monkeypatch.setattr(PngExporter, "_draw", broken_draw)
        with pytest.raises(RenderCaptureError) as excinfo:
            PngExporter().capture(surface)
        assert excinfo.value.retryable
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert surface.mounted


class TestCaptureAsync:
    def test_capture_async(self, surface):
        data = asyncio.run(PngExporter().capture_async(surface))
        assert data.startswith(PNG_SIGNATURE)

    def test_concurrent_captures(self, surface):
        exporter = PngExporter()

        async def run_both():
            return await asyncio.gather(exporter.capture_async(surface), exporter.capture_async(surface))

        first, second = asyncio.run(run_both())
        assert first == second

    def test_async_unmounted(self):
        with pytest.raises(RenderCaptureError):
            asyncio.run(PngExporter().capture_async(DiagramSurface()))

    def test_exporter_reused_across_event_loops(self, surface):
        """One exporter serves concurrent captures under successive event loops."""
        exporter = PngExporter()

        async def run_both():
            return await asyncio.gather(exporter.capture_async(surface), exporter.capture_async(surface))

        for _ in range(2):
            first, second = asyncio.run(run_both())
            assert first.startswith(PNG_SIGNATURE)
            assert first == second
