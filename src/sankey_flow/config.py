"""Layout and rendering configuration."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sankey_flow.errors import ConfigError


class NodeAlign(Enum):
    """Column alignment for nodes (mirrors d3-sankey's node aligns)."""

    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"
    JUSTIFY = "justify"


@dataclass(frozen=True)
class Margin:
    top: float = 10
    right: float = 10
    bottom: float = 10
    left: float = 10


@dataclass(frozen=True)
class Extent:
    """Drawing rectangle (in canvas pixels) that nodes and links must fit into."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass(frozen=True)
class SankeyConfig:
    """All tunables of a layout + render pass.

    ``width``/``height`` are the full canvas. The drawing extent is the canvas
    minus ``margin`` minus ``extent_inset`` (left, top, right, bottom).
    """

    width: float = 960
    height: float = 600
    margin: Margin = field(default_factory=Margin)
    extent_inset: tuple[float, float, float, float] = (1, 1, 1, 6)
    node_width: float = 20
    node_padding: float = 10
    iterations: int = 6
    ordering_passes: int = 8
    align: NodeAlign = NodeAlign.LEFT
    units: str = "Mha"
    value_format: str = ",.0f"
    title: str | None = None
    link_opacity: float = 0.5
    min_link_width: float = 1.0
    label_offset: float = 6
    font_size: float = 10
    legend: bool = True

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"canvas must be positive, got {self.width}x{self.height}")
        if self.node_width <= 0:
            raise ConfigError(f"node_width must be positive, got {self.node_width}")
        if self.node_padding < 0:
            raise ConfigError(f"node_padding must be non-negative, got {self.node_padding}")
        if self.iterations < 0 or self.ordering_passes < 0:
            raise ConfigError(
                f"iterations/ordering_passes must be non-negative, got {self.iterations}/{self.ordering_passes}"
            )
        if not 0 <= self.link_opacity <= 1:
            raise ConfigError(f"link_opacity must be within [0, 1], got {self.link_opacity}")
        if self.min_link_width < 0:
            raise ConfigError(f"min_link_width must be non-negative, got {self.min_link_width}")
        try:
            format(1234.5, self.value_format)
        except ValueError as exc:
            raise ConfigError(f"invalid value_format {self.value_format!r}") from exc
        ext = self.extent
        if ext.width < self.node_width or ext.height <= 0:
            raise ConfigError(f"canvas {self.width}x{self.height} leaves no room for the diagram")

    @property
    def extent(self) -> Extent:
        m = self.margin
        left, top, right, bottom = self.extent_inset
        inner_w = self.width - m.left - m.right
        inner_h = self.height - m.top - m.bottom
        return Extent(x0=left, y0=top, x1=inner_w - right, y1=inner_h - bottom)

    def format_value(self, value: float) -> str:
        text = format(value, self.value_format)
        return f"{text} {self.units}" if self.units else text

    def with_canvas(self, width: float | None = None, height: float | None = None) -> SankeyConfig:
        return dataclasses.replace(
            self,
            width=self.width if width is None else width,
            height=self.height if height is None else height,
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> SankeyConfig:
        """Build a config from plain values (strings for enums, dicts for margin)."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

        values = dict(mapping)
        if isinstance(values.get("align"), str):
            try:
                values["align"] = NodeAlign(values["align"].lower())
            except ValueError as exc:
                choices = ", ".join(a.value for a in NodeAlign)
                raise ConfigError(f"align must be one of {choices}, got {mapping['align']!r}") from exc
        if isinstance(values.get("margin"), Mapping):
            try:
                values["margin"] = Margin(**values["margin"])
            except TypeError as exc:
                raise ConfigError(f"invalid margin {mapping['margin']!r}") from exc
        if "extent_inset" in values:
            values["extent_inset"] = tuple(values["extent_inset"])
        return cls(**values)
