"""LayeringEngine — topological leveling and row layout.

Kahn traversal over a NetworkX DiGraph: roots (in-degree 0, isolated nodes
included) form layer 0, and each node lands one layer below the parent whose
processing dropped its in-degree to zero. Layers stack top-to-bottom, nodes
within a layer are centered left-to-right.

Cycles are not rejected. Nodes the traversal never reaches sit in layer 0, and
when nothing is reachable at all every node goes into one flat row. Every
input node always receives exactly one position.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field

import networkx as nx

from learnmap.config.models import ExpansionConfig, LayoutConfig
from learnmap.domain.models import Edge, Node, Position

type _Graph = nx.DiGraph


@dataclass(frozen=True)
class Layout:
    """Result of :func:`compute_layout`.

    Attributes:
        layers: Layer index per node id.
        positions: Canvas position per node id.
        fallback: True when the flat single-row placement was used.
    """

    layers: dict[str, int] = field(default_factory=dict)
    positions: dict[str, Position] = field(default_factory=dict)
    fallback: bool = False

    @property
    def depth(self) -> int:
        """Number of layers."""
        return max(self.layers.values(), default=-1) + 1


def build_digraph(nodes: Sequence[Node], edges: Sequence[Edge]) -> _Graph:
    """Build a DiGraph of node ids, skipping edges with an unknown endpoint."""
    g: _Graph = nx.DiGraph()
    g.add_nodes_from(node.id for node in nodes)
    for edge in edges:
        if edge.source in g and edge.target in g:
            g.add_edge(edge.source, edge.target)
    return g


def assign_layers(g: _Graph) -> tuple[list[str], dict[str, int]]:
    """Run the Kahn traversal. Returns ``(visit_order, layers)`` for visited nodes."""
    in_degree: dict[str, int] = {node_id: g.in_degree(node_id) for node_id in g.nodes}
    queue: deque[str] = deque(node_id for node_id, deg in in_degree.items() if deg == 0)
    layers: dict[str, int] = {}
    order: list[str] = []

    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        layer = max(layers.get(node_id, 0), 0)
        layers[node_id] = layer
        for successor in g.successors(node_id):
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)
                layers[successor] = layer + 1

    return order, layers


def compute_layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    config: LayoutConfig | None = None,
) -> Layout:
    """Assign a layer and position to every node.

    Deterministic for a given input order. Duplicate node ids in *nodes*
    collapse to one entry.
    """
    config = config or LayoutConfig()
    g = build_digraph(nodes, edges)
    if g.number_of_nodes() == 0:
        return Layout()

    order, layers = assign_layers(g)
    if not order:
        return _single_row(list(g.nodes), config)

    # Unreached nodes (cycle members and their dependents) join layer 0.
    visited = set(order)
    for node_id in g.nodes:
        if node_id not in visited:
            order.append(node_id)
            layers[node_id] = 0

    rows: dict[int, list[str]] = {}
    for node_id in order:
        rows.setdefault(layers[node_id], []).append(node_id)

    positions: dict[str, Position] = {}
    for layer, row in rows.items():
        total_width = (len(row) - 1) * config.spacing_x
        for index, node_id in enumerate(row):
            positions[node_id] = Position(
                x=index * config.spacing_x - total_width / 2,
                y=layer * config.spacing_y,
            )

    return Layout(layers=layers, positions=positions)


def _single_row(node_ids: list[str], config: LayoutConfig) -> Layout:
    """Flat left-to-right placement used when traversal reaches nothing."""
    return Layout(
        layers={node_id: 0 for node_id in node_ids},
        positions={
            node_id: Position(x=index * config.fallback_spacing_x, y=0.0)
            for index, node_id in enumerate(node_ids)
        },
        fallback=True,
    )


def place_children(
    parent: Position,
    count: int,
    config: ExpansionConfig | None = None,
) -> list[Position]:
    """Positions for *count* children in one row centered below *parent*."""
    config = config or ExpansionConfig()
    return [
        Position(
            x=parent.x + (index - (count - 1) / 2) * config.child_spacing_x,
            y=parent.y + config.child_offset_y,
        )
        for index in range(count)
    ]
