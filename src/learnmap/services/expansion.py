"""ExpansionController — expand, cache, collapse, and restore node subtrees.

Each node gets an :class:`ExpansionRecord` on its first expansion attempt.
The record holds the node's state, the subtree fetched for it (fetched once
per session and never again), and which of the cached children are shown.

Scheduling is cooperative (asyncio). Expansions of different nodes may be in
flight at the same time; repeats for the same node are rejected by the
cooldown and the ``expanding``/``expanded`` guard. A result that arrives after
the session loaded a new map (generation bump) is dropped without touching
the graph.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from learnmap.config.models import ExpansionConfig
from learnmap.domain.lifecycle import is_valid_transition
from learnmap.domain.models import Edge, Node, Position
from learnmap.domain.types import ExpansionState
from learnmap.infrastructure.generation import GenerationClient, GenerationError
from learnmap.infrastructure.graph.layering import place_children
from learnmap.infrastructure.graph.model import GraphModel
from learnmap.services.colors import ColorAssigner
from learnmap.services.result import ServiceResult
from learnmap.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedSubtree:
    """Children fetched for one node, with their parent edges and positions."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    positions: dict[str, Position] = field(default_factory=dict)

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]


@dataclass
class ExpansionRecord:
    """Per-node expansion bookkeeping."""

    state: ExpansionState = ExpansionState.NOT_EXPANDED
    cached: CachedSubtree | None = None
    visible_children: list[str] = field(default_factory=list)
    last_attempt: float | None = None

    @property
    def has_cached_children(self) -> bool:
        return self.cached is not None and bool(self.cached.nodes)

    @property
    def children_visible(self) -> bool:
        return bool(self.visible_children)

    def transition(self, target: ExpansionState) -> None:
        if not is_valid_transition(self.state, target):
            raise ValueError(f"Invalid expansion transition {self.state} -> {target}")
        self.state = target


@dataclass(frozen=True)
class NodeFlags:
    """Transient per-node flags handed to the presentation layer."""

    is_expanding: bool = False
    is_expanded: bool = False
    has_cached_children: bool = False
    children_visible: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "isExpanding": self.is_expanding,
            "isExpanded": self.is_expanded,
            "hasCachedChildren": self.has_cached_children,
            "childrenVisible": self.children_visible,
        }


def flags_for(record: ExpansionRecord | None) -> NodeFlags:
    """Derive the render flags of a node from its record (None means untouched)."""
    if record is None:
        return NodeFlags()
    return NodeFlags(
        is_expanding=record.state is ExpansionState.EXPANDING,
        is_expanded=record.state is ExpansionState.EXPANDED,
        has_cached_children=record.has_cached_children,
        children_visible=record.children_visible,
    )


class ExpansionController:
    """Stateful owner of per-node expansion records for one graph session.

    Args:
        model: The session's graph bookkeeping.
        colors: The session's color assigner.
        client: Generation collaborator used to fetch children.
        config: Cooldown and child placement settings.
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        model: GraphModel,
        colors: ColorAssigner,
        client: GenerationClient,
        *,
        config: ExpansionConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._model = model
        self._colors = colors
        self._client = client
        self._config = config or ExpansionConfig()
        self._clock = clock
        self._records: dict[str, ExpansionRecord] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def records(self) -> Mapping[str, ExpansionRecord]:
        return self._records

    def record(self, node_id: str) -> ExpansionRecord | None:
        return self._records.get(node_id)

    def flags(self, node_id: str) -> NodeFlags:
        return flags_for(self._records.get(node_id))

    def reset(self, model: GraphModel, colors: ColorAssigner) -> int:
        """Start a new graph generation. In-flight results of older ones are dropped."""
        self._model = model
        self._colors = colors
        self._records = {}
        self._generation += 1
        return self._generation

    # ------------------------------------------------------------------
    # expand
    # ------------------------------------------------------------------

    @traced
    async def request_expansion(self, node_id: str) -> ServiceResult:
        """Fetch children for *node_id* and attach the ones with new ids."""
        op = "expand"
        node = self._model.get_node(node_id)
        if node is None:
            return ServiceResult.failure(op, "NOT_FOUND", f"Node '{node_id}' not found in graph")
        if not self._model.is_visible(node_id):
            return self._not_visible(op, node_id)

        record = self._records.get(node_id)
        if record is not None:
            if record.state is ExpansionState.EXPANDING:
                return ServiceResult.failure(
                    op, "ALREADY_EXPANDING", f"Node '{node_id}' is already expanding"
                )
            if record.state is ExpansionState.EXPANDED or record.cached is not None:
                return ServiceResult.failure(
                    op,
                    "ALREADY_EXPANDED",
                    f"Node '{node_id}' was already expanded; toggle its children instead",
                )

        now = self._clock()
        if record is not None and record.last_attempt is not None:
            elapsed_ms = (now - record.last_attempt) * 1000
            if elapsed_ms < self._config.cooldown_ms:
                return ServiceResult.failure(
                    op,
                    "COOLDOWN",
                    f"Node '{node_id}' was tried {elapsed_ms:.0f}ms ago; wait and retry",
                    retry_after_ms=round(self._config.cooldown_ms - elapsed_ms),
                )

        if record is None:
            record = self._records[node_id] = ExpansionRecord()
        record.last_attempt = now
        record.transition(ExpansionState.EXPANDING)
        generation = self._generation
        logger.debug("Expanding %s (generation %d)", node_id, generation)

        try:
            with trace_span("request_node_expansion"):
                candidates = await self._client.request_node_expansion(node.label)
        except GenerationError as exc:
            if generation != self._generation:
                return self._stale(op, node_id, generation)
            record.transition(ExpansionState.NOT_EXPANDED)
            logger.warning("Expansion of %s failed: %s", node_id, exc)
            return ServiceResult.failure(
                op,
                "GENERATION_FAILED",
                "Could not expand this node, try again.",
                node_id=node_id,
                reason=str(exc),
            )
        except BaseException:
            # Unexpected errors and cancellation must not leave the node stuck.
            if generation == self._generation:
                record.transition(ExpansionState.NOT_EXPANDED)
            raise

        if generation != self._generation:
            return self._stale(op, node_id, generation)

        fresh, skipped = self._dedupe(candidates)
        if not fresh:
            record.transition(ExpansionState.NOT_EXPANDED)
            return ServiceResult.failure(
                op,
                "EMPTY_EXPANSION",
                "Could not expand this node, try again.",
                node_id=node_id,
                candidates=len(candidates),
                skipped_ids=skipped,
            )

        cached = self._attach(node_id, fresh)
        record.cached = cached
        if self._model.is_visible(node_id):
            record.visible_children = cached.node_ids
        else:
            # An ancestor was collapsed while the request was in flight.
            self._model.hide(cached.node_ids)
            record.visible_children = []
        record.transition(ExpansionState.EXPANDED)
        logger.debug("Expanded %s with %d new node(s)", node_id, len(fresh))

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "node_id": node_id,
                "label": node.label,
                "added": len(fresh),
                "child_ids": cached.node_ids,
                "skipped_ids": skipped,
            },
        )

    def _not_visible(self, op: str, node_id: str) -> ServiceResult:
        return ServiceResult.failure(
            op,
            "NOT_VISIBLE",
            f"Node '{node_id}' is hidden by a collapsed ancestor; restore that first",
            node_id=node_id,
        )

    def _stale(self, op: str, node_id: str, generation: int) -> ServiceResult:
        logger.debug(
            "Dropping expansion of %s from stale generation %d (current %d)",
            node_id,
            generation,
            self._generation,
        )
        return ServiceResult.failure(
            op,
            "STALE_GENERATION",
            "The map was replaced while this expansion was in flight",
            node_id=node_id,
        )

    def _dedupe(self, candidates: list[Node]) -> tuple[list[Node], list[str]]:
        """Split candidates into genuinely new nodes and skipped duplicate ids."""
        fresh: list[Node] = []
        skipped: list[str] = []
        seen: set[str] = set()
        for child in candidates:
            if self._model.has_node(child.id) or child.id in seen:
                logger.debug("Dropping duplicate expansion candidate %s", child.id)
                skipped.append(child.id)
                continue
            seen.add(child.id)
            fresh.append(child)
        return fresh, skipped

    def _attach(self, parent_id: str, children: list[Node]) -> CachedSubtree:
        """Place, color, and add *children* under *parent_id*."""
        parent_position = self._model.position(parent_id) or Position(0.0, 0.0)
        positions = place_children(parent_position, len(children), self._config)
        edges = tuple(Edge(source=parent_id, target=child.id) for child in children)

        placed: dict[str, Position] = {}
        for child, position in zip(children, positions, strict=True):
            self._model.add_node(child)
            self._model.set_position(child.id, position)
            self._model.set_color(child.id, self._colors.assign(child.group_key))
            placed[child.id] = position
        for edge in edges:
            self._model.add_edge(edge)

        return CachedSubtree(nodes=tuple(children), edges=edges, positions=placed)

    # ------------------------------------------------------------------
    # collapse / restore / toggle
    # ------------------------------------------------------------------

    def descendant_ids(self, node_id: str) -> list[str]:
        """All cached descendants of *node_id*, following the cache chain."""
        record = self._records.get(node_id)
        if record is None or record.cached is None:
            return []
        result: list[str] = []
        seen: set[str] = {node_id}
        stack = list(reversed(record.cached.node_ids))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            nested = self._records.get(current)
            if nested is not None and nested.cached is not None:
                stack.extend(reversed(nested.cached.node_ids))
        return result

    @traced
    def collapse_children(self, node_id: str) -> ServiceResult:
        """Hide every visible descendant of *node_id*, keeping the cache."""
        op = "collapse"
        record = self._records.get(node_id)
        if record is None or not record.visible_children:
            return ServiceResult(
                ok=True, op=op, data={"node_id": node_id, "changed": False, "hidden_ids": []}
            )

        descendants = self.descendant_ids(node_id)
        hidden = [nid for nid in descendants if self._model.is_visible(nid)]
        self._model.hide(descendants)
        record.visible_children = []
        for nid in descendants:
            nested = self._records.get(nid)
            if nested is not None:
                nested.visible_children = []

        logger.debug("Collapsed %s, hid %d node(s)", node_id, len(hidden))
        return ServiceResult(
            ok=True, op=op, data={"node_id": node_id, "changed": True, "hidden_ids": hidden}
        )

    @traced
    def restore_children(self, node_id: str) -> ServiceResult:
        """Show the cached children of *node_id* again, without refetching."""
        op = "restore"
        if self._model.has_node(node_id) and not self._model.is_visible(node_id):
            return self._not_visible(op, node_id)
        record = self._records.get(node_id)
        if record is None or record.cached is None:
            return ServiceResult.failure(
                op, "NO_CACHED_CHILDREN", f"Node '{node_id}' has no cached children to restore"
            )
        if record.visible_children:
            return ServiceResult(
                ok=True, op=op, data={"node_id": node_id, "changed": False, "restored_ids": []}
            )

        cached = record.cached
        restored = [nid for nid in cached.node_ids if not self._model.is_visible(nid)]
        for nid in restored:
            position = cached.positions.get(nid)
            if position is not None:
                self._model.set_position(nid, position)
        self._model.show(restored)
        for edge in cached.edges:
            self._model.add_edge(edge)
        record.visible_children = restored

        return ServiceResult(
            ok=True,
            op=op,
            data={"node_id": node_id, "changed": bool(restored), "restored_ids": restored},
        )

    def toggle_children(self, node_id: str) -> ServiceResult:
        """Collapse when children are visible, restore otherwise."""
        record = self._records.get(node_id)
        if record is not None and record.visible_children:
            return self.collapse_children(node_id)
        return self.restore_children(node_id)
