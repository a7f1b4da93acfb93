"""ViewProjection — the renderable slice of the graph.

:func:`project` is pure: it reads the graph model and expansion records and
returns a fresh :class:`ViewFrame` without mutating either. It is recomputed
on every state change and never cached across changes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from learnmap.domain.levels import effective_level
from learnmap.domain.models import Edge, Node, Position
from learnmap.domain.types import Level, LevelFilter
from learnmap.infrastructure.graph.model import GraphModel
from learnmap.services.expansion import ExpansionRecord, NodeFlags, flags_for

FALLBACK_COLOR = "#2563eb"


@dataclass(frozen=True)
class RenderNode:
    """A visible node with everything one render frame needs."""

    node: Node
    position: Position
    color: str
    level: Level
    flags: NodeFlags = field(default_factory=NodeFlags)

    @property
    def id(self) -> str:
        return self.node.id

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.node.to_dict(),
            "position": self.position.to_dict(),
            "color": self.color,
            "effectiveLevel": str(self.level),
            **self.flags.to_dict(),
        }


@dataclass(frozen=True)
class ViewFrame:
    """Visible nodes and edges for one state of the session."""

    nodes: tuple[RenderNode, ...] = ()
    edges: tuple[Edge, ...] = ()
    level_filter: LevelFilter = LevelFilter.ALL

    @property
    def node_ids(self) -> list[str]:
        return [rn.id for rn in self.nodes]

    def to_dict(self) -> dict[str, Any]:
        return {
            "level_filter": str(self.level_filter),
            "nodes": [rn.to_dict() for rn in self.nodes],
            "edges": [edge.model_dump() for edge in self.edges],
        }


def project(
    model: GraphModel,
    records: Mapping[str, ExpansionRecord],
    level_filter: LevelFilter | str = LevelFilter.ALL,
) -> ViewFrame:
    """Derive the visible node/edge set.

    ``All`` keeps every visible node; any other filter keeps visible nodes
    whose explicit (or keyword-derived) level equals the filter. An edge is
    kept only when both endpoints are kept.
    """
    level_filter = LevelFilter(level_filter)
    rendered: list[RenderNode] = []
    for node_id in model.visible_ids():
        node = model.get_node(node_id)
        if node is None:
            continue
        level = effective_level(node)
        if level_filter is not LevelFilter.ALL and str(level) != str(level_filter):
            continue
        rendered.append(
            RenderNode(
                node=node,
                position=model.position(node_id) or Position(0.0, 0.0),
                color=model.color(node_id) or FALLBACK_COLOR,
                level=level,
                flags=flags_for(records.get(node_id)),
            )
        )

    included = {rn.id for rn in rendered}
    edges = tuple(
        edge for edge in model.edges if edge.source in included and edge.target in included
    )
    return ViewFrame(nodes=tuple(rendered), edges=edges, level_filter=level_filter)
