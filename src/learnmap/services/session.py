"""MapSession — one learning-map graph session.

A session owns the graph model, the color assigner, the expansion controller,
and the level filter. Loading a new top-level map replaces all of them and
bumps the generation, so expansions still in flight for the old map are
discarded when they land.

Every state change projects a fresh :class:`ViewFrame` and hands it to the
``render_frame`` plugin hook.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from learnmap.config.models import LearnmapConfig
from learnmap.domain.models import LearningMap
from learnmap.domain.types import LevelFilter
from learnmap.infrastructure.generation import GenerationClient, GenerationError
from learnmap.infrastructure.graph.layering import compute_layout
from learnmap.infrastructure.graph.model import GraphModel
from learnmap.plugins.manager import PluginManager
from learnmap.services.colors import ColorAssigner
from learnmap.services.expansion import ExpansionController
from learnmap.services.projection import ViewFrame, project
from learnmap.services.result import ServiceResult
from learnmap.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class MapSession:
    """Stateful façade over layout, expansion, and projection.

    Args:
        client: Generation collaborator for maps and expansions.
        config: Layout, expansion, and palette settings.
        plugins: Plugin manager receiving render frames (optional).
        clock: Monotonic clock for expansion cooldowns.
    """

    def __init__(
        self,
        client: GenerationClient,
        *,
        config: LearnmapConfig | None = None,
        plugins: PluginManager | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._config = config or LearnmapConfig()
        self._plugins = plugins
        self._model = GraphModel()
        self._colors = ColorAssigner(self._config.colors.palette)
        self._controller = ExpansionController(
            self._model,
            self._colors,
            client,
            config=self._config.expansion,
            clock=clock,
        )
        self._main_topic = ""
        self._subtopics: list[str] = []
        self._level_filter = LevelFilter.ALL
        self._layers: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def model(self) -> GraphModel:
        return self._model

    @property
    def colors(self) -> ColorAssigner:
        return self._colors

    @property
    def controller(self) -> ExpansionController:
        return self._controller

    @property
    def generation(self) -> int:
        return self._controller.generation

    @property
    def main_topic(self) -> str:
        return self._main_topic

    @property
    def level_filter(self) -> LevelFilter:
        return self._level_filter

    @property
    def is_loaded(self) -> bool:
        return self.generation > 0

    def layer(self, node_id: str) -> int | None:
        """Layer assigned at load time (None for expansion children)."""
        return self._layers.get(node_id)

    # ------------------------------------------------------------------
    # Map lifecycle
    # ------------------------------------------------------------------

    @traced
    def load(self, learning_map: LearningMap) -> ServiceResult:
        """Replace the session graph with *learning_map* and lay it out."""
        model = GraphModel.from_map(learning_map)
        colors = ColorAssigner(self._config.colors.palette)
        colors.seed(model.nodes)

        with trace_span("compute_layout") as span:
            layout = compute_layout(model.nodes, model.edges, self._config.layout)
            if span:
                span.annotate("nodes", model.node_count)
                span.annotate("layers", layout.depth)

        for node in model.nodes:
            model.set_position(node.id, layout.positions[node.id])
            model.set_color(node.id, colors.assign(node.group_key))

        self._model = model
        self._colors = colors
        self._layers = dict(layout.layers)
        self._main_topic = learning_map.main_topic
        self._subtopics = list(learning_map.subtopics)
        self._level_filter = LevelFilter.ALL
        generation = self._controller.reset(model, colors)

        warnings: list[str] = []
        skipped = len(learning_map.nodes) - model.node_count
        if skipped:
            warnings.append(f"Ignored {skipped} node(s) with a duplicate id")
        if layout.fallback:
            warnings.append("No root node found; nodes were placed in a single row")

        warnings += self._dispatch(
            "post_load",
            main_topic=self._main_topic,
            node_count=model.node_count,
            generation=generation,
        )
        warnings += self._emit_frame()
        logger.debug("Loaded map %r (generation %d)", self._main_topic, generation)

        return ServiceResult(
            ok=True,
            op="load",
            data={
                "main_topic": self._main_topic,
                "generation": generation,
                "node_count": model.node_count,
                "edge_count": len(model.edges),
                "depth": layout.depth,
                "layers": self._layers,
            },
            warnings=warnings,
        )

    @traced
    async def generate(self, topic: str) -> ServiceResult:
        """Ask the collaborator for a new map on *topic* and load it.

        On failure the current session is left untouched.
        """
        topic = topic.strip()
        if not topic:
            return ServiceResult.failure(
                "generate", "INVALID_TOPIC", "Topic is required and must be a non-empty string"
            )
        try:
            learning_map = await self._client.request_map_generation(topic)
        except GenerationError as exc:
            logger.warning("Map generation for %r failed: %s", topic, exc)
            return ServiceResult.failure(
                "generate", "GENERATION_FAILED", str(exc), topic=topic
            )
        if not learning_map.nodes:
            return ServiceResult.failure(
                "generate", "GENERATION_FAILED", "Generated map contains no nodes", topic=topic
            )

        loaded = self.load(learning_map)
        return loaded.model_copy(update={"op": "generate"})

    def snapshot(self) -> LearningMap:
        """The accumulated graph (initial map plus every expansion) as a document."""
        return self._model.to_map(self._main_topic, self._subtopics)

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    async def expand(self, node_id: str) -> ServiceResult:
        result = await self._controller.request_expansion(node_id)
        if result.ok:
            warnings = self._dispatch(
                "post_expand", node_id=node_id, child_ids=result.data["child_ids"]
            )
            warnings += self._emit_frame()
            return _with_warnings(result, warnings)
        return result

    def collapse(self, node_id: str) -> ServiceResult:
        return self._after_toggle(self._controller.collapse_children(node_id))

    def restore(self, node_id: str) -> ServiceResult:
        return self._after_toggle(self._controller.restore_children(node_id))

    def toggle(self, node_id: str) -> ServiceResult:
        return self._after_toggle(self._controller.toggle_children(node_id))

    def _after_toggle(self, result: ServiceResult) -> ServiceResult:
        if not result.ok or not result.data.get("changed"):
            return result
        if result.op == "collapse":
            warnings = self._dispatch(
                "post_collapse",
                node_id=result.data["node_id"],
                hidden_ids=result.data["hidden_ids"],
            )
        else:
            warnings = self._dispatch(
                "post_restore",
                node_id=result.data["node_id"],
                restored_ids=result.data["restored_ids"],
            )
        warnings += self._emit_frame()
        return _with_warnings(result, warnings)

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def set_level_filter(self, level: LevelFilter | str) -> ServiceResult:
        try:
            self._level_filter = LevelFilter(level)
        except ValueError:
            allowed = ", ".join(str(lf) for lf in LevelFilter)
            return ServiceResult.failure(
                "level", "INVALID_LEVEL", f"Unknown level {level!r}; expected one of {allowed}"
            )
        warnings = self._emit_frame()
        return ServiceResult(
            ok=True, op="level", data={"level_filter": str(self._level_filter)}, warnings=warnings
        )

    def view(self) -> ViewFrame:
        """Project the current state. Recomputed on every call."""
        return project(self._model, self._controller.records, self._level_filter)

    @traced
    def view_result(self) -> ServiceResult:
        frame = self.view()
        data: dict[str, Any] = {
            "main_topic": self._main_topic,
            "level_filter": str(frame.level_filter),
            "node_count": len(frame.nodes),
            "edge_count": len(frame.edges),
            "items": [
                {**rn.to_dict(), "layer": self._layers.get(rn.id)} for rn in frame.nodes
            ],
            "edges": [edge.model_dump() for edge in frame.edges],
        }
        return ServiceResult(ok=True, op="view", data=data)

    # ------------------------------------------------------------------
    # Render boundary
    # ------------------------------------------------------------------

    def _emit_frame(self) -> list[str]:
        if self._plugins is None:
            return []
        return self._dispatch("render_frame", frame=self.view())

    def _dispatch(self, hook_name: str, **payload: Any) -> list[str]:
        if self._plugins is None:
            return []
        return self._plugins.dispatch(hook_name, **payload)


def _with_warnings(result: ServiceResult, warnings: list[str]) -> ServiceResult:
    if not warnings:
        return result
    return result.model_copy(update={"warnings": [*result.warnings, *warnings]})
