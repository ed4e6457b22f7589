"""Base renderer protocol."""

from __future__ import annotations

from typing import Protocol

from sankey_flow.renderers.model import RenderModel


class Renderer(Protocol):
    """Protocol for renderers that turn a render model into markup text."""

    def render(self, model: RenderModel) -> str:
        """Render a styled diagram to an output string."""
        ...
