"""End-to-end checks over the bundled example graphs in examples/."""

from pathlib import Path

import pytest

from sankey_flow.api import layout, render_svg
from sankey_flow.graph import load_graph
from sankey_flow.layout import full_layout

EXAMPLES_DIR = Path(__file__).parent.parent.parent / "examples"

EXAMPLES = sorted(EXAMPLES_DIR.glob("*.json"))


@pytest.mark.parametrize("path", EXAMPLES, ids=[p.stem for p in EXAMPLES])
def test_render_is_byte_identical(path: Path) -> None:
    """Rendering the same file twice gives the same SVG."""
    src = path.read_text(encoding="utf-8")
    assert render_svg(src) == render_svg(src)


@pytest.mark.parametrize("path", EXAMPLES, ids=[p.stem for p in EXAMPLES])
def test_layout_properties(path: Path) -> None:
    result = full_layout(load_graph(path))
    ext = result.extent

    for r in result.links:
        source, target = result.node(r.source_id), result.node(r.target_id)
        assert target.rank > source.rank
        assert r.x0 == source.x1 and r.x1 == target.x0

    for p in result.nodes:
        assert ext.x0 - 1e-6 <= p.x0 < p.x1 <= ext.x1 + 1e-6
        assert ext.y0 - 1e-6 <= p.y0 < p.y1 <= ext.y1 + 1e-6

    for column in result.ordering:
        boxes = [result.node(nid) for nid in column]
        for above, below in zip(boxes, boxes[1:]):
            assert above.y1 <= below.y0 + 1e-6
        assert sum(b.height for b in boxes) <= ext.height + 1e-6


@pytest.mark.parametrize("path", EXAMPLES, ids=[p.stem for p in EXAMPLES])
def test_layout_round_trips(path: Path) -> None:
    """Laying out a previous layout's JSON gives the same geometry."""
    first = layout(path.read_text(encoding="utf-8"))
    second = layout(first.to_dict())
    assert second.to_dict() == first.to_dict()


def test_land_cover_columns() -> None:
    result = full_layout(load_graph(EXAMPLES_DIR / "land_cover.json"))
    assert result.column_count == 2
    assert [len(column) for column in result.ordering] == [4, 4]
