"""Tests for style.py — category table, colors and gradients."""

from __future__ import annotations

import pytest

from sankey_flow.graph import build_graph
from sankey_flow.style import (
    CATEGORY_RULES,
    DEFAULT_COLOR,
    Category,
    CategoryRule,
    StyleResolver,
    darker,
    mix,
    normalise_name,
    parse_hex,
    prefix,
)


class TestCategoryResolution:
    @pytest.mark.parametrize(
        "name,category,color",
        [
            ("Forested Natural Vegetation", Category.FOREST, "#347928"),
            ("Non-Forested Natural Vegetation", Category.NON_FOREST_VEGETATION, "#B7E0FF"),
            ("Agriculture 2020", Category.AGRICULTURE, "#FF6600"),
            ("agri land", Category.AGRICULTURE, "#FF6600"),
            ("GRASSLAND", Category.GRASSLAND, "#FCCD2A"),
        ],
    )
    def test_known_prefixes(self, name, category, color):
        style = StyleResolver()
        assert style.category_for(name) is category
        assert style.color_for(name) == color

    def test_unknown_uses_default_color(self):
        style = StyleResolver()
        assert style.category_for("Unknown Thing") is Category.UNKNOWN
        assert style.color_for("Unknown Thing") == DEFAULT_COLOR == "#000000"

    def test_prefix_must_lead_the_name(self):
        """"Old Forest" does not start with a category prefix."""
        assert StyleResolver().category_for("Old Forest") is Category.UNKNOWN

    def test_first_match_wins(self):
        rules = (
            CategoryRule(prefix("for"), Category.GRASSLAND, "#111111", "Grass-ish"),
            *CATEGORY_RULES,
        )
        style = StyleResolver(rules)
        assert style.category_for("Forest") is Category.GRASSLAND
        assert style.color_for("Forest") == "#111111"

    def test_custom_default_color(self):
        style = StyleResolver(default_color="#cccccc")
        assert style.color_for("???") == "#cccccc"
        assert style.color_for_category(Category.UNKNOWN) == "#cccccc"

    def test_color_for_node(self):
        g = build_graph({"nodes": [{"name": "Grassland 1970"}], "links": []})
        assert StyleResolver().color_for(g.nodes[0]) == "#FCCD2A"

    def test_idempotent(self):
        """Resolving the same name twice gives the same answer."""
        style = StyleResolver()
        assert style.color_for("Forest") == style.color_for("Forest") == StyleResolver().color_for("Forest")

    def test_normalise_name(self):
        assert normalise_name("Non-Forested  Veg.") == "nonforestedveg"


class TestGradients:
    def test_gradient_runs_source_to_target(self):
        g = build_graph(
            {
                "nodes": [{"name": "Forest 1970"}, {"name": "Agriculture 2020"}],
                "links": [{"source": 0, "target": 1, "value": 1}],
            }
        )
        grad = StyleResolver().gradient_for(g.links[0])
        assert grad.id == "linkGrad-0-1"
        assert (grad.source_id, grad.target_id) == ("Forest 1970", "Agriculture 2020")
        assert grad.start_color == "#347928"
        assert grad.stop_color == "#FF6600"

    def test_legend_lists_rules_in_order(self):
        legend = StyleResolver().legend()
        assert [item.label for item in legend] == [
            "Agriculture",
            "Forested Natural Vegetation",
            "Grassland",
            "Non-Forested Natural Vegetation",
        ]


class TestColorHelpers:
    def test_parse_hex(self):
        assert parse_hex("#FF6600") == (255, 102, 0)
        assert parse_hex("#f60") == (255, 102, 0)

    def test_parse_hex_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_hex("#12345")

    def test_darker(self):
        assert darker("#646464", 1) == "#464646"
        assert darker("#000000", 2) == "#000000"
        assert darker("#ABCDEF", 0) == "#abcdef"

    def test_mix_endpoints(self):
        assert mix("#000000", "#ffffff", 0.0) == (0.0, 0.0, 0.0)
        assert mix("#000000", "#ffffff", 1.0) == (1.0, 1.0, 1.0)
