"""Graph model — validated flow graph with resolved node references.

The raw input is a JSON-like document::

    {"nodes": [{"name": "A"}, ...],
     "links": [{"source": 0 | "A", "target": 1 | "B", "value": 10}, ...]}

``build_graph`` checks it and produces a ``FlowGraph`` whose links point at
``FlowNode`` objects directly. A networkx ``MultiDiGraph`` mirrors the
topology (edge key = link index) for the layout phases.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import networkx as nx

from sankey_flow.errors import ValidationError
from sankey_flow.style import DEFAULT_STYLE, Category, StyleResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowNode:
    """A named node. ``index`` is its position in the input document."""

    id: str
    name: str
    category: Category
    index: int


@dataclass(frozen=True)
class FlowLink:
    """A directed, valued link between two resolved nodes."""

    index: int
    source: FlowNode
    target: FlowNode
    value: float

    @property
    def source_id(self) -> str:
        return self.source.id

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass
class FlowGraph:
    """Validated flow graph. Built once by ``build_graph``; never mutated."""

    nodes: tuple[FlowNode, ...]
    links: tuple[FlowLink, ...]
    digraph: nx.MultiDiGraph = field(repr=False)
    by_id: dict[str, FlowNode] = field(repr=False)
    incoming: dict[str, tuple[FlowLink, ...]] = field(repr=False)
    outgoing: dict[str, tuple[FlowLink, ...]] = field(repr=False)

    def node(self, node_id: str) -> FlowNode:
        return self.by_id[node_id]

    def node_value(self, node_id: str) -> float:
        """Flow through a node: max of total inflow and total outflow."""
        inflow = sum(link.value for link in self.incoming[node_id])
        outflow = sum(link.value for link in self.outgoing[node_id])
        return max(inflow, outflow)


# ─── Validation Helpers ───────────────────────────────────────────────────────


def _require_list(raw: Mapping[str, Any], key: str) -> list[Any]:
    if key not in raw:
        raise ValidationError(f"missing '{key}' collection", path=key)
    value = raw[key]
    if not isinstance(value, list | tuple):
        raise ValidationError(f"expected a list, got {type(value).__name__}", path=key)
    return list(value)


def _require_text(entry: Mapping[str, Any], key: str, path: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{key}' must be a non-empty string", path=f"{path}.{key}")
    return value


def _link_value(entry: Mapping[str, Any], path: str) -> float:
    if "value" not in entry:
        raise ValidationError("missing 'value'", path=f"{path}.value")
    raw = entry["value"]
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise ValidationError(f"value must be a number, got {raw!r}", path=f"{path}.value")
    try:
        value = float(raw)
    except OverflowError as exc:
        raise ValidationError("value must be finite, got an out-of-range integer", path=f"{path}.value") from exc
    if not math.isfinite(value):
        raise ValidationError(f"value must be finite, got {raw!r}", path=f"{path}.value")
    if value < 0:
        raise ValidationError(f"value must be non-negative, got {raw!r}", path=f"{path}.value")
    return value


def _resolve_endpoint(
    ref: Any,
    nodes: list[FlowNode],
    by_id: dict[str, FlowNode],
    by_name: dict[str, FlowNode],
    path: str,
) -> FlowNode:
    """Resolve a link endpoint given as a node index, id or name."""
    if isinstance(ref, bool):
        raise ValidationError(f"invalid node reference {ref!r}", path=path)
    if isinstance(ref, int):
        if 0 <= ref < len(nodes):
            return nodes[ref]
        raise ValidationError(f"node index {ref} out of range", path=path)
    if isinstance(ref, str):
        node = by_id.get(ref) or by_name.get(ref)
        if node is not None:
            return node
        raise ValidationError(f"unknown node {ref!r}", path=path)
    # Layout output nests endpoints as objects; accept those too.
    if isinstance(ref, Mapping) and isinstance(ref.get("id"), str):
        return _resolve_endpoint(ref["id"], nodes, by_id, by_name, path)
    raise ValidationError(f"invalid node reference {ref!r}", path=path)


# ─── Public Constructors ──────────────────────────────────────────────────────


def build_graph(raw: Any, style: StyleResolver = DEFAULT_STYLE) -> FlowGraph:
    """Validate a raw graph document and resolve it into a ``FlowGraph``.

    Node categories come from ``style``, so a custom rule table shows up in
    both the drawn colors and the exported layout.

    Raises:
        ValidationError: if the document is malformed, references an unknown
            node, contains a self-link, or carries a negative / non-finite
            value. Nothing is built in that case.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(f"graph document must be a mapping, got {type(raw).__name__}")

    raw_nodes = _require_list(raw, "nodes")
    raw_links = _require_list(raw, "links")
    if not raw_nodes:
        raise ValidationError("graph has no nodes", path="nodes")

    nodes: list[FlowNode] = []
    by_id: dict[str, FlowNode] = {}
    by_name: dict[str, FlowNode] = {}
    for i, entry in enumerate(raw_nodes):
        path = f"nodes[{i}]"
        if not isinstance(entry, Mapping):
            raise ValidationError("node must be a mapping", path=path)
        name = _require_text(entry, "name", path)
        node_id = _require_text(entry, "id", path) if "id" in entry else name
        if node_id in by_id:
            raise ValidationError(f"duplicate node id {node_id!r}", path=path)
        node = FlowNode(id=node_id, name=name, category=style.category_for(name), index=i)
        nodes.append(node)
        by_id[node_id] = node
        by_name.setdefault(name, node)

    links: list[FlowLink] = []
    for i, entry in enumerate(raw_links):
        path = f"links[{i}]"
        if not isinstance(entry, Mapping):
            raise ValidationError("link must be a mapping", path=path)
        for key in ("source", "target"):
            if key not in entry:
                raise ValidationError(f"missing '{key}'", path=f"{path}.{key}")
        source = _resolve_endpoint(entry["source"], nodes, by_id, by_name, f"{path}.source")
        target = _resolve_endpoint(entry["target"], nodes, by_id, by_name, f"{path}.target")
        if source.id == target.id:
            raise ValidationError(f"self-link on {source.id!r}", path=path)
        links.append(FlowLink(index=i, source=source, target=target, value=_link_value(entry, path)))

    digraph: nx.MultiDiGraph = nx.MultiDiGraph()
    for node in nodes:
        digraph.add_node(node.id, data=node)
    for link in links:
        digraph.add_edge(link.source.id, link.target.id, key=link.index, data=link)

    incoming: dict[str, list[FlowLink]] = {node.id: [] for node in nodes}
    outgoing: dict[str, list[FlowLink]] = {node.id: [] for node in nodes}
    for link in links:
        outgoing[link.source.id].append(link)
        incoming[link.target.id].append(link)

    logger.debug("built flow graph: %d nodes, %d links", len(nodes), len(links))

    return FlowGraph(
        nodes=tuple(nodes),
        links=tuple(links),
        digraph=digraph,
        by_id=by_id,
        incoming={k: tuple(v) for k, v in incoming.items()},
        outgoing={k: tuple(v) for k, v in outgoing.items()},
    )


def parse_graph(text: str, style: StyleResolver = DEFAULT_STYLE) -> FlowGraph:
    """Parse a JSON graph document and build it."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    except ValueError as exc:
        # Integer literals past the interpreter's digit limit.
        raise ValidationError(f"invalid JSON: {exc}") from exc
    return build_graph(raw, style)


def load_graph(path: str | Path, style: StyleResolver = DEFAULT_STYLE) -> FlowGraph:
    """Read and build a graph from a UTF-8 JSON file."""
    path = Path(path)
    logger.info("loading graph from %s", path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError(f"{path} is not valid UTF-8: {exc.reason} at byte {exc.start}") from exc
    return parse_graph(text, style)
