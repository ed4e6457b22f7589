"""Layout module — rank-based Sankey layout pipeline.

Phases:
  1. Rank assignment (longest path from sources; cycles are rejected)
  2. Crossing minimization (barycenter heuristic, bounded sweeps)
  3. Coordinate assignment (flow-proportional heights, d3-style relaxation)
  4. Link routing (stacked slots + horizontal-tangent cubic paths)

Every phase is a pure function of its inputs; ``full_layout`` chains them and
returns a frozen ``LayoutResult``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import networkx as nx

from sankey_flow.config import Extent, NodeAlign, SankeyConfig
from sankey_flow.errors import CyclicGraphError
from sankey_flow.graph import FlowGraph, FlowLink, FlowNode

logger = logging.getLogger(__name__)

# Height given to nodes that carry no flow, so every node stays visible.
MIN_NODE_HEIGHT: float = 1.0


def format_number(value: float) -> str:
    """Compact, stable number formatting for path data and SVG attributes."""
    if math.isclose(value, round(value), abs_tol=1e-9):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


# ─── Rank Assignment ──────────────────────────────────────────────────────────


def topological_order(graph: FlowGraph) -> list[str]:
    """Node ids in topological order, ties broken by input position.

    Raises:
        CyclicGraphError: if the graph contains a cycle.
    """
    try:
        return list(nx.lexicographical_topological_sort(graph.digraph, key=lambda nid: graph.by_id[nid].index))
    except nx.NetworkXUnfeasible:
        cycle = nx.find_cycle(graph.digraph)
        raise CyclicGraphError([(edge[0], edge[1]) for edge in cycle]) from None


def assign_ranks(graph: FlowGraph, align: NodeAlign = NodeAlign.LEFT) -> dict[str, int]:
    """Assign every node a column so each link points strictly rightwards.

    ``LEFT`` (the default) is the longest path from a source: rank 0 for nodes
    without incoming links, otherwise 1 + the highest predecessor rank. The
    other alignments shift nodes without breaking that ordering. Nodes with
    no links at all always sit in column 0.
    """
    order = topological_order(graph)

    depth: dict[str, int] = dict.fromkeys(order, 0)
    for node_id in order:
        for link in graph.outgoing[node_id]:
            depth[link.target_id] = max(depth[link.target_id], depth[node_id] + 1)

    height: dict[str, int] = dict.fromkeys(order, 0)
    for node_id in reversed(order):
        for link in graph.incoming[node_id]:
            height[link.source_id] = max(height[link.source_id], height[node_id] + 1)

    last = max(depth.values(), default=0)
    ranks: dict[str, int] = {}
    for node in graph.nodes:
        nid = node.id
        has_in = bool(graph.incoming[nid])
        has_out = bool(graph.outgoing[nid])
        if not has_in and not has_out:
            ranks[nid] = 0
        elif align is NodeAlign.RIGHT:
            ranks[nid] = last - height[nid]
        elif align is NodeAlign.JUSTIFY:
            ranks[nid] = depth[nid] if has_out else last
        elif align is NodeAlign.CENTER:
            if has_in:
                ranks[nid] = depth[nid]
            else:
                ranks[nid] = min(depth[link.target_id] for link in graph.outgoing[nid]) - 1
        else:
            ranks[nid] = depth[nid]

    logger.debug("assigned ranks: %d columns (%s)", max(ranks.values()) + 1, align.value)
    return ranks


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def initial_ordering(graph: FlowGraph, ranks: dict[str, int]) -> list[list[str]]:
    """Group node ids by rank, keeping input order inside each column."""
    column_count = max(ranks.values(), default=-1) + 1
    ordering: list[list[str]] = [[] for _ in range(column_count)]
    for node in graph.nodes:
        ordering[ranks[node.id]].append(node.id)
    return ordering


def _normalised_positions(ordering: list[list[str]]) -> dict[str, float]:
    """Position of each node within its column, scaled to (0, 1)."""
    return {nid: (i + 0.5) / len(column) for column in ordering for i, nid in enumerate(column)}


def _barycenter(links: tuple[FlowLink, ...], pos: dict[str, float], incoming: bool) -> float | None:
    """Mean position of the neighbours across ``links``; None without neighbours."""
    if not links:
        return None
    neighbours = [pos[link.source_id] if incoming else pos[link.target_id] for link in links]
    return sum(neighbours) / len(neighbours)


def _sweep_column(ordering: list[list[str]], col: int, graph: FlowGraph, incoming: bool) -> None:
    pos = _normalised_positions(ordering)

    def key(nid: str) -> tuple[float, int]:
        links = graph.incoming[nid] if incoming else graph.outgoing[nid]
        bc = _barycenter(links, pos, incoming)
        return (pos[nid] if bc is None else bc, graph.by_id[nid].index)

    ordering[col].sort(key=key)


def count_crossings(ordering: list[list[str]], graph: FlowGraph, ranks: dict[str, int]) -> int:
    """Count crossings between links spanning the same pair of columns (inversion count).

    A link that skips columns is only compared with links of the same span;
    where it crosses shorter links is not counted.
    """
    pos: dict[str, int] = {nid: i for column in ordering for i, nid in enumerate(column)}
    spans: dict[tuple[int, int], list[tuple[int, int]]] = {}
    for link in graph.links:
        span = (ranks[link.source_id], ranks[link.target_id])
        spans.setdefault(span, []).append((pos[link.source_id], pos[link.target_id]))

    total = 0
    for edges in spans.values():
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


def minimise_crossings(graph: FlowGraph, ranks: dict[str, int], max_passes: int = 8) -> list[list[str]]:
    """Order nodes inside each column to reduce link crossings.

    Each pass is a forward sweep (barycenter of predecessors) followed by a
    backward sweep (barycenter of successors). Ties keep input order. The
    loop stops once a pass fails to improve the crossing count, or after
    ``max_passes``; the best ordering seen is returned.
    """
    ordering = initial_ordering(graph, ranks)
    column_count = len(ordering)

    best_ordering = [list(column) for column in ordering]
    best = count_crossings(ordering, graph, ranks)

    for pass_idx in range(max_passes):
        if best == 0:
            break
        for col in range(1, column_count):
            _sweep_column(ordering, col, graph, incoming=True)
        for col in range(column_count - 2, -1, -1):
            _sweep_column(ordering, col, graph, incoming=False)

        new = count_crossings(ordering, graph, ranks)
        logger.debug("crossing pass %d: %d -> %d", pass_idx, best, new)
        if new >= best:
            break
        best = new
        best_ordering = [list(column) for column in ordering]

    return best_ordering


# ─── Coordinate Assignment ────────────────────────────────────────────────────


@dataclass(frozen=True)
class PositionedNode:
    """A node with its computed column, order, flow and pixel extent."""

    node: FlowNode
    rank: int
    order: int
    value: float
    x0: float
    x1: float
    y0: float
    y1: float

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def height(self) -> float:
        return self.y1 - self.y0


def empty_node_height(ordering: list[list[str]], extent: Extent) -> float:
    """Height of a zero-valued node: ``MIN_NODE_HEIGHT``, or less when the
    longest column holds more nodes than the extent has pixels."""
    longest = max((len(column) for column in ordering), default=0)
    if longest == 0:
        return MIN_NODE_HEIGHT
    return min(MIN_NODE_HEIGHT, extent.height / longest)


def column_padding(
    ordering: list[list[str]], extent: Extent, node_padding: float, min_height: float = MIN_NODE_HEIGHT
) -> float:
    """Inter-node padding, shrunk when the longest column could not fit otherwise."""
    longest = max((len(column) for column in ordering), default=0)
    if longest <= 1:
        return node_padding
    room = (extent.height - longest * min_height) / (longest - 1)
    return max(0.0, min(node_padding, room))


def vertical_scale(
    ordering: list[list[str]],
    values: dict[str, float],
    extent: Extent,
    padding: float,
    min_height: float = MIN_NODE_HEIGHT,
) -> float:
    """Pixels per unit of flow, chosen so the most demanding column fits exactly."""
    ky = math.inf
    for column in ordering:
        total = sum(values[nid] for nid in column)
        if total <= 0:
            continue
        empty = sum(1 for nid in column if values[nid] <= 0)
        room = extent.height - (len(column) - 1) * padding - empty * min_height
        ky = min(ky, room / total)
    if math.isinf(ky):
        return 0.0
    return max(0.0, ky)


def _resolve_top_to_bottom(
    column: list[str], y0: dict[str, float], y1: dict[str, float], y: float, start: int, py: float, alpha: float
) -> None:
    for nid in column[start:]:
        dy = (y - y0[nid]) * alpha
        if dy > 1e-6:
            y0[nid] += dy
            y1[nid] += dy
        y = y1[nid] + py


def _resolve_bottom_to_top(
    column: list[str], y0: dict[str, float], y1: dict[str, float], y: float, start: int, py: float, alpha: float
) -> None:
    for nid in reversed(column[: start + 1]):
        dy = (y1[nid] - y) * alpha
        if dy > 1e-6:
            y0[nid] -= dy
            y1[nid] -= dy
        y = y0[nid] - py


def _resolve_collisions(
    column: list[str], y0: dict[str, float], y1: dict[str, float], extent: Extent, py: float, alpha: float
) -> None:
    """Push overlapping nodes apart outward from the middle node, keeping order."""
    if not column:
        return
    mid = len(column) >> 1
    subject = column[mid]
    _resolve_bottom_to_top(column, y0, y1, y0[subject] - py, mid - 1, py, alpha)
    _resolve_top_to_bottom(column, y0, y1, y1[subject] + py, mid + 1, py, alpha)
    _resolve_bottom_to_top(column, y0, y1, extent.y1, len(column) - 1, py, alpha)
    _resolve_top_to_bottom(column, y0, y1, extent.y0, 0, py, alpha)


def _relax(
    columns: list[list[str]],
    graph: FlowGraph,
    ranks: dict[str, int],
    y0: dict[str, float],
    y1: dict[str, float],
    incoming: bool,
    alpha: float,
) -> None:
    """Move each node toward the flow-weighted centre of its neighbours."""
    for column in columns:
        for nid in column:
            links = graph.incoming[nid] if incoming else graph.outgoing[nid]
            total = 0.0
            weight = 0.0
            for link in links:
                other = link.source_id if incoming else link.target_id
                w = link.value * abs(ranks[nid] - ranks[other])
                total += (y0[other] + y1[other]) / 2 * w
                weight += w
            if not weight > 0:
                continue
            dy = (total / weight - (y0[nid] + y1[nid]) / 2) * alpha
            y0[nid] += dy
            y1[nid] += dy


def assign_coordinates(
    graph: FlowGraph,
    ranks: dict[str, int],
    ordering: list[list[str]],
    extent: Extent,
    config: SankeyConfig,
) -> tuple[dict[str, PositionedNode], float]:
    """Assign pixel extents to every node; returns (positions by id, ky).

    Heights are ``value * ky`` (``empty_node_height`` for empty nodes). Columns
    are spread evenly over the extent width. Vertical positions start evenly
    spread, are relaxed toward connected nodes for ``config.iterations``
    rounds, and end with a strict collision pass so nodes never overlap nor
    leave the extent. The column order from ``ordering`` is preserved.
    """
    values = {node.id: graph.node_value(node.id) for node in graph.nodes}
    column_count = len(ordering)
    min_height = empty_node_height(ordering, extent)
    py = column_padding(ordering, extent, config.node_padding, min_height)
    ky = vertical_scale(ordering, values, extent, py, min_height)
    logger.debug("coordinates: %d columns, padding=%.3f, ky=%.6f", column_count, py, ky)

    kx = (extent.width - config.node_width) / (column_count - 1) if column_count > 1 else 0.0

    y0: dict[str, float] = {}
    y1: dict[str, float] = {}
    for column in ordering:
        y = extent.y0
        for nid in column:
            height = values[nid] * ky
            if height <= 0:
                height = min_height
            y0[nid] = y
            y1[nid] = y + height
            y = y1[nid] + py
        spare = (extent.y1 - y + py) / (len(column) + 1)
        for i, nid in enumerate(column):
            y0[nid] += spare * (i + 1)
            y1[nid] += spare * (i + 1)

    for i in range(config.iterations):
        alpha = 0.99**i
        beta = max(1 - alpha, (i + 1) / config.iterations)
        for column in reversed(ordering[:-1]):
            _relax([column], graph, ranks, y0, y1, incoming=False, alpha=alpha)
            _resolve_collisions(column, y0, y1, extent, py, beta)
        for column in ordering[1:]:
            _relax([column], graph, ranks, y0, y1, incoming=True, alpha=alpha)
            _resolve_collisions(column, y0, y1, extent, py, beta)

    positions: dict[str, PositionedNode] = {}
    for rank, column in enumerate(ordering):
        _resolve_bottom_to_top(column, y0, y1, extent.y1, len(column) - 1, py, 1.0)
        _resolve_top_to_bottom(column, y0, y1, extent.y0, 0, py, 1.0)
        x0 = extent.x0 + rank * kx
        for order, nid in enumerate(column):
            positions[nid] = PositionedNode(
                node=graph.by_id[nid],
                rank=rank,
                order=order,
                value=values[nid],
                x0=x0,
                x1=x0 + config.node_width,
                y0=y0[nid],
                y1=y1[nid],
            )

    return positions, ky


# ─── Link Routing ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class RoutedLink:
    """A link with its slot thickness and the centre line of its path.

    ``width`` is the flow-proportional slot thickness; ``stroke_width`` is
    what gets drawn (never thinner than the configured minimum).
    """

    link: FlowLink
    width: float
    stroke_width: float
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def source_id(self) -> str:
        return self.link.source_id

    @property
    def target_id(self) -> str:
        return self.link.target_id

    @property
    def value(self) -> float:
        return self.link.value

    def control_points(self) -> tuple[Point, Point, Point, Point]:
        """Cubic Bézier points with horizontal tangents at both ends."""
        xm = (self.x0 + self.x1) / 2
        return (Point(self.x0, self.y0), Point(xm, self.y0), Point(xm, self.y1), Point(self.x1, self.y1))

    def sample(self, steps: int = 32) -> list[Point]:
        """Points along the curve at ``steps + 1`` evenly spaced parameters."""
        p0, p1, p2, p3 = self.control_points()
        points: list[Point] = []
        for i in range(steps + 1):
            t = i / steps
            u = 1 - t
            a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
            points.append(Point(a * p0.x + b * p1.x + c * p2.x + d * p3.x, a * p0.y + b * p1.y + c * p2.y + d * p3.y))
        return points

    @property
    def path_data(self) -> str:
        p0, p1, p2, p3 = (f"{format_number(p.x)},{format_number(p.y)}" for p in self.control_points())
        return f"M{p0}C{p1} {p2} {p3}"


def route_links(
    graph: FlowGraph,
    positions: dict[str, PositionedNode],
    ky: float,
    min_width: float = 1.0,
) -> list[RoutedLink]:
    """Stack link slots on node edges (input order) and build each link's path.

    A link leaves from the right edge of its source and enters the left edge
    of its target; consecutive links sharing a node take consecutive slots,
    each ``value * ky`` tall.
    """
    source_offset: dict[str, float] = {nid: p.y0 for nid, p in positions.items()}
    target_offset: dict[str, float] = {nid: p.y0 for nid, p in positions.items()}

    routes: list[RoutedLink] = []
    for link in graph.links:
        source = positions[link.source_id]
        target = positions[link.target_id]
        width = link.value * ky

        y0 = source_offset[source.id] + width / 2
        source_offset[source.id] += width
        y1 = target_offset[target.id] + width / 2
        target_offset[target.id] += width

        routes.append(
            RoutedLink(
                link=link,
                width=width,
                stroke_width=max(min_width, width),
                x0=source.x1,
                y0=y0,
                x1=target.x0,
                y1=y1,
            )
        )
    return routes


# ─── Full Layout Pipeline ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutResult:
    """Immutable output of one layout pass. Nodes and links keep input order."""

    graph: FlowGraph
    nodes: tuple[PositionedNode, ...]
    links: tuple[RoutedLink, ...]
    ordering: tuple[tuple[str, ...], ...]
    extent: Extent
    ky: float

    @property
    def column_count(self) -> int:
        return len(self.ordering)

    def node(self, node_id: str) -> PositionedNode:
        for positioned in self.nodes:
            if positioned.id == node_id:
                return positioned
        raise KeyError(node_id)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready document; feeding it back to ``build_graph`` rebuilds the same graph."""
        return {
            "extent": {"x0": self.extent.x0, "y0": self.extent.y0, "x1": self.extent.x1, "y1": self.extent.y1},
            "nodes": [
                {
                    "id": p.id,
                    "name": p.name,
                    "category": p.node.category.value,
                    "rank": p.rank,
                    "order": p.order,
                    "value": p.value,
                    "x0": p.x0,
                    "x1": p.x1,
                    "y0": p.y0,
                    "y1": p.y1,
                }
                for p in self.nodes
            ],
            "links": [
                {
                    "source": r.source_id,
                    "target": r.target_id,
                    "value": r.value,
                    "width": r.width,
                    "y0": r.y0,
                    "y1": r.y1,
                    "path": r.path_data,
                }
                for r in self.links
            ],
        }


def full_layout(graph: FlowGraph, config: SankeyConfig | None = None) -> LayoutResult:
    """Run the full layout pipeline on a validated graph."""
    config = config or SankeyConfig()
    extent = config.extent

    ranks = assign_ranks(graph, config.align)
    ordering = minimise_crossings(graph, ranks, config.ordering_passes)
    positions, ky = assign_coordinates(graph, ranks, ordering, extent, config)
    routes = route_links(graph, positions, ky, config.min_link_width)

    return LayoutResult(
        graph=graph,
        nodes=tuple(positions[node.id] for node in graph.nodes),
        links=tuple(routes),
        ordering=tuple(tuple(column) for column in ordering),
        extent=extent,
        ky=ky,
    )
