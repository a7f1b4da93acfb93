"""GraphModel — in-memory bookkeeping for the accumulated learning map.

Holds every node and edge seen in the session (initial map plus expansions),
plus derived per-node attributes: position, color, and visibility. It has no
algorithmic behavior beyond keeping these consistent.

INVARIANT: Node ids are unique across the accumulated graph. ``add_node`` with
a known id is a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from learnmap.domain.models import Edge, LearningMap, Node, Position

logger = logging.getLogger(__name__)


class GraphModel:
    """Accumulated nodes and edges with positions, colors, and hidden ids.

    Edges may reference ids that are not (yet) nodes. They are kept as-is;
    layering and projection ignore them.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[tuple[str, str], Edge] = {}
        self._positions: dict[str, Position] = {}
        self._colors: dict[str, str] = {}
        self._hidden: set[str] = set()

    @classmethod
    def from_map(cls, learning_map: LearningMap) -> GraphModel:
        """Seed a model from a map document. Duplicate ids keep the first node."""
        model = cls()
        for node in learning_map.nodes:
            if not model.add_node(node):
                logger.debug("Ignoring duplicate node id in map: %s", node.id)
        for edge in learning_map.edges:
            model.add_edge(edge)
        return model

    def to_map(self, main_topic: str, subtopics: Iterable[str] = ()) -> LearningMap:
        """Export the accumulated graph, hidden nodes included."""
        return LearningMap(
            main_topic=main_topic,
            subtopics=list(subtopics),
            nodes=list(self._nodes.values()),
            edges=list(self._edges.values()),
        )

    # ------------------------------------------------------------------
    # Nodes and edges
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def add_node(self, node: Node) -> bool:
        """Add *node*. Returns False (and changes nothing) if the id is known."""
        if node.id in self._nodes:
            return False
        self._nodes[node.id] = node
        return True

    def add_edge(self, edge: Edge) -> bool:
        """Add *edge*. Returns False if the same source/target pair exists."""
        if edge.key in self._edges:
            return False
        self._edges[edge.key] = edge
        return True

    # ------------------------------------------------------------------
    # Derived attributes
    # ------------------------------------------------------------------

    def set_position(self, node_id: str, position: Position) -> None:
        self._positions[node_id] = position

    def position(self, node_id: str) -> Position | None:
        return self._positions.get(node_id)

    def set_color(self, node_id: str, color: str) -> None:
        self._colors[node_id] = color

    def color(self, node_id: str) -> str | None:
        return self._colors.get(node_id)

    def hide(self, node_ids: Iterable[str]) -> None:
        self._hidden.update(nid for nid in node_ids if nid in self._nodes)

    def show(self, node_ids: Iterable[str]) -> None:
        self._hidden.difference_update(node_ids)

    def is_visible(self, node_id: str) -> bool:
        """True if the node exists and is not hidden by a collapse."""
        return node_id in self._nodes and node_id not in self._hidden

    def visible_ids(self) -> list[str]:
        return [nid for nid in self._nodes if nid not in self._hidden]
