"""Style resolution — node category/color lookup and link gradients.

A node's category is derived from its display name only, by testing an
ordered table of rules (first match wins). The table is frozen when the
resolver is built, so resolving the same graph twice yields the same colors.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sankey_flow.graph import FlowLink, FlowNode

# ─── Categories ───────────────────────────────────────────────────────────────


class Category(Enum):
    AGRICULTURE = "Agriculture"
    FOREST = "Forest"
    GRASSLAND = "Grassland"
    NON_FOREST_VEGETATION = "NonForestVegetation"
    UNKNOWN = "Unknown"


DEFAULT_COLOR = "#000000"

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def normalise_name(name: str) -> str:
    """Lowercase and strip everything but letters/digits ("Non-Forested" → "nonforested")."""
    return _NON_ALNUM.sub("", name.lower())


def prefix(*prefixes: str) -> Callable[[str], bool]:
    """Predicate matching normalised names that start with any of ``prefixes``."""
    wanted = tuple(normalise_name(p) for p in prefixes)
    return lambda name: normalise_name(name).startswith(wanted)


@dataclass(frozen=True)
class CategoryRule:
    predicate: Callable[[str], bool]
    category: Category
    color: str
    label: str


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(prefix("agri"), Category.AGRICULTURE, "#FF6600", "Agriculture"),
    CategoryRule(prefix("forest"), Category.FOREST, "#347928", "Forested Natural Vegetation"),
    CategoryRule(prefix("grass"), Category.GRASSLAND, "#FCCD2A", "Grassland"),
    CategoryRule(
        prefix("nonforest"),
        Category.NON_FOREST_VEGETATION,
        "#B7E0FF",
        "Non-Forested Natural Vegetation",
    ),
)


# ─── Color Helpers ────────────────────────────────────────────────────────────


def parse_hex(color: str) -> tuple[int, int, int]:
    """Parse ``#rgb`` or ``#rrggbb`` into an (r, g, b) tuple."""
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"not a hex color: {color!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def to_hex(rgb: tuple[float, float, float]) -> str:
    r, g, b = (max(0, min(255, round(c))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def darker(color: str, k: float = 1.0) -> str:
    """Darken a color the way d3's ``rgb.darker(k)`` does (scale by 0.7**k)."""
    factor = 0.7**k
    r, g, b = parse_hex(color)
    return to_hex((r * factor, g * factor, b * factor))


def mix(start: str, stop: str, t: float) -> tuple[float, float, float]:
    """Linear interpolation between two hex colors, as 0..1 RGB floats."""
    a, b = parse_hex(start), parse_hex(stop)
    return tuple((ca + (cb - ca) * t) / 255.0 for ca, cb in zip(a, b))  # type: ignore[return-value]


# ─── Resolver ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LinkGradient:
    """Gradient for one (source, target) pair, drawn along the flow direction."""

    id: str
    source_id: str
    target_id: str
    start_color: str
    stop_color: str


@dataclass(frozen=True)
class LegendItem:
    label: str
    color: str


class StyleResolver:
    """Maps node names to categories and colors using an ordered rule table."""

    def __init__(
        self,
        rules: tuple[CategoryRule, ...] | list[CategoryRule] = CATEGORY_RULES,
        default_color: str = DEFAULT_COLOR,
    ) -> None:
        self.rules: tuple[CategoryRule, ...] = tuple(rules)
        self.default_color = default_color
        self._colors: dict[Category, str] = {}
        for rule in self.rules:
            self._colors.setdefault(rule.category, rule.color)

    def _match(self, name: str) -> CategoryRule | None:
        for rule in self.rules:
            if rule.predicate(name):
                return rule
        return None

    def category_for(self, name: str) -> Category:
        rule = self._match(name)
        return rule.category if rule is not None else Category.UNKNOWN

    def color_for(self, node: FlowNode | str) -> str:
        name = node if isinstance(node, str) else node.name
        rule = self._match(name)
        return rule.color if rule is not None else self.default_color

    def color_for_category(self, category: Category) -> str:
        return self._colors.get(category, self.default_color)

    def gradient_for(self, link: FlowLink) -> LinkGradient:
        return LinkGradient(
            id=f"linkGrad-{link.source.index}-{link.target.index}",
            source_id=link.source.id,
            target_id=link.target.id,
            start_color=self.color_for(link.source),
            stop_color=self.color_for(link.target),
        )

    def legend(self) -> list[LegendItem]:
        return [LegendItem(label=rule.label, color=rule.color) for rule in self.rules]


DEFAULT_STYLE = StyleResolver()
